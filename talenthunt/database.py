from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from talenthunt.config import settings
import logging

# Set up logging
logger = logging.getLogger(__name__)

engine_kwargs = {"pool_pre_ping": True}  # Auto-reconnect on broken connections
if settings.DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(
        pool_size=5,         # Adjust pool size for Render
        max_overflow=10,     # Allow some overflow connections
        pool_timeout=30,     # Connection timeout in seconds
        pool_recycle=1800,   # Recycle connections after 30 minutes
    )

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful!")
        return True
    except SQLAlchemyError as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False


# This line ensures models are registered before Alembic autogenerate
from talenthunt import models  # noqa: E402,F401
