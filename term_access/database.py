from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from term_access.config import settings
import logging

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_options() -> dict:
    options: dict = {"echo": settings.debug}
    # SQLite does not take pool sizing arguments
    if DATABASE_URL.startswith("sqlite"):
        return options
    production = settings.environment == "production"
    options.update(
        pool_size=20 if production else 10,
        max_overflow=50 if production else 20,
        pool_timeout=60 if production else 30,
        pool_recycle=1800,
    )
    return options


engine = create_async_engine(DATABASE_URL, **_engine_options())

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await db.rollback()
            raise
        finally:
            try:
                await db.close()
            except Exception as close_error:
                logger.warning(f"Error closing database session: {close_error}")
