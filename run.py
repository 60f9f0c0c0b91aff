# run.py

import os

import uvicorn

from talenthunt.config import settings

# Render injects PORT; HOST stays 0.0.0.0 so the container accepts outside traffic
port = int(os.environ.get("PORT", 8000))
host = os.environ.get("HOST", "0.0.0.0")

if __name__ == "__main__":
    uvicorn.run(
        "talenthunt.main:app",
        host=host,
        port=port,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
