"""
Database Configuration and Session Management
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
import structlog

from staff_authz.core.config import settings, DATABASE_CONFIG

logger = structlog.get_logger()

# Create declarative base
Base = declarative_base()


def build_engine(database_url: str = None) -> AsyncEngine:
    """Create an async engine; pool tuning only applies to server databases."""
    database_url = database_url or settings.DATABASE_URL
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine_kwargs = {"echo": DATABASE_CONFIG["echo"]}

    if "postgresql" in database_url:
        engine_kwargs.update(DATABASE_CONFIG)
        engine_kwargs["connect_args"] = {
            "server_settings": {
                "application_name": "staff-authz-api",
            }
        }

    return create_async_engine(database_url, **engine_kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)


async def check_database_health() -> bool:
    """
    Check database connectivity and basic functionality
    Used by health check endpoints
    """
    try:
        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def init_database(bind: AsyncEngine = None):
    """
    Initialize database tables
    Called during application startup
    """
    bind = bind or engine
    try:
        async with bind.begin() as conn:
            # Import all models to ensure they're registered
            from staff_authz.models import audit_log, staff_user  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise


async def close_database():
    """
    Close database connections
    Called during application shutdown
    """
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))
