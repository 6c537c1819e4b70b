"""
Database connection and session management.
"""
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from itemscan.core.config import settings
import logging

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None


def get_database_url() -> str:
    """
    Build database URL from settings.

    A full DATABASE_URL wins; otherwise a PostgreSQL asyncpg URL is
    assembled from the POSTGRES_* settings.
    """
    if settings.DATABASE_URL:
        url = settings.DATABASE_URL
        if "+psycopg2" in url:
            url = url.replace("+psycopg2", "+asyncpg")
        return url

    user = settings.POSTGRES_USER or "postgres"
    password = settings.POSTGRES_PASSWORD or ""
    host = settings.POSTGRES_HOST or "localhost"
    port = settings.POSTGRES_PORT or 5432
    db = settings.POSTGRES_DB or "itemscan"

    if password:
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"
    else:
        return f"postgresql+asyncpg://{user}@{host}:{port}/{db}"


def init_db(database_url: Optional[str] = None):
    """Initialize database engine and session maker."""
    global engine, AsyncSessionLocal

    database_url = database_url or get_database_url()
    logger.info(f"Initializing database: {database_url.split('@')[-1]}")

    engine = create_async_engine(
        database_url,
        poolclass=NullPool,  # Disable connection pooling for async
        echo=settings.DB_ECHO,  # Log SQL queries if enabled
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    logger.info("Database initialized successfully")


def get_session_factory() -> async_sessionmaker:
    """Return the session maker, initializing the engine on first use."""
    if AsyncSessionLocal is None:
        init_db()
    return AsyncSessionLocal


async def create_tables():
    """Create all database tables."""
    from itemscan.db.models import Base

    if engine is None:
        init_db()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created")


async def dispose_engine():
    """Close all pooled connections (called on app shutdown)."""
    global engine, AsyncSessionLocal

    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    AsyncSessionLocal = None
