from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import os
import logging

from talenthunt.config import settings
from talenthunt.database import check_database_connection
from talenthunt.services.location_service import LocationCache

# Enable logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Edo Talent Hunt Backend starting up...")
    check_database_connection()
    app.state.location_cache = LocationCache()
    logger.info(f"📁 Static directory: {STATIC_DIR}")
    logger.info(f"🌐 CORS enabled for origins: {origins}")
    logger.info("✅ Server is ready to handle requests")
    yield
    logger.info("🛑 Edo Talent Hunt Backend shutting down...")


# Init app
app = FastAPI(title="Edo Talent Hunt Backend", lifespan=lifespan)

# Available before startup too (tests build the app without running the lifespan)
app.state.location_cache = LocationCache()

# CORS Setup
origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    "https://edotalenthunt.com",
    "https://www.edotalenthunt.com",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600
)

# Static Files
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
STATIC_DIR = os.path.join(BASE_DIR, "static")

if not os.path.exists(STATIC_DIR):
    logger.warning(f"Static directory not found at {STATIC_DIR}")
    os.makedirs(STATIC_DIR, exist_ok=True)
    logger.info(f"Created static directory at {STATIC_DIR}")
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


# Custom OpenAPI
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version="1.0.0",
        description="Edo Talent Hunt API - registration, bulk slots, payments, voting and tickets",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
        "description": "Enter JWT token in the format: Bearer <token>"
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# Route Registrations
from talenthunt.routes.auth import router as auth_router  # noqa: E402
from talenthunt.routes.registrations import router as registrations_router  # noqa: E402
from talenthunt.routes.bulk import router as bulk_router  # noqa: E402
from talenthunt.routes.payments import router as payments_router  # noqa: E402
from talenthunt.routes.contestants import router as contestants_router  # noqa: E402
from talenthunt.routes.tickets import router as tickets_router  # noqa: E402
from talenthunt.routes.locations import router as locations_router  # noqa: E402
from talenthunt.routes.health import router as health_router  # noqa: E402

routers = [
    auth_router,
    registrations_router,
    bulk_router,
    payments_router,
    contestants_router,
    tickets_router,
    locations_router,
    health_router,
]

for router in routers:
    app.include_router(router)
    logger.info(f"Included router: {router.prefix}")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "status": "ok",
        "message": "Welcome to the Edo Talent Hunt Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": [
            "/auth/* - Account registration, OTP verification and login",
            "/registrations/* - Registration wizard and submission",
            "/bulk/* - Bulk slot purchases and participants",
            "/payments/* - Webhook, verification and refunds",
            "/contestants/* - Contestants and paid voting",
            "/tickets/* - Event tickets",
            "/locations/* - States and LGAs",
            "/health - System health check"
        ]
    }


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "talenthunt.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
