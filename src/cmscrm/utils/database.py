import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from src.cmscrm.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_kwargs(url: str) -> dict:
    """
    Pool/timeout options only make sense for server databases;
    SQLite (dev + tests) gets the driver defaults.
    """
    kw = {
        "echo": settings.DB_ECHO,  # Logs all SQL queries if True
        "pool_pre_ping": True,     # Ensures the connections are valid before using them
    }
    if not url.startswith("sqlite"):
        kw.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            connect_args={"timeout": settings.DB_TIMEOUT},
        )
    return kw


# Create the asynchronous engine with connection pooling and timeout handling
try:
    engine = create_async_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
except SQLAlchemyError as e:
    logger.error("Error creating database engine: %s", e)
    raise

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,  # Don't expire objects after commit
)

# Base class for SQLAlchemy ORM models
Base = declarative_base()


# Dependency to retrieve a database session in FastAPI
# Ensures the session is properly closed after use
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def ping_database() -> None:
    """Round-trip `SELECT 1`; raises if the database is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
