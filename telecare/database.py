# telecare/database.py
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from .config import DATABASE_URL
from .models import Base

logger = logging.getLogger(__name__)

engine = create_async_engine(DATABASE_URL, echo=False)

# Workflow results are returned after commit, so loaded rows must stay usable.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Creates the users, sessions, requests and appointments tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("DATABASE: Tables ready (%s).", ", ".join(sorted(Base.metadata.tables)))


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. A failed workflow step leaves nothing half-written.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
