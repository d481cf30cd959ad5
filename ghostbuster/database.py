from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from contextlib import asynccontextmanager
import logging

from .errors import StoreUnavailable
from .models.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Async engine and session factory for one database URL"""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_async_engine(
            database_url,
            echo=echo,
            poolclass=NullPool,  # Use NullPool for better async compatibility
        )
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def insert(self, model):
        """INSERT construct supporting ON CONFLICT for the current dialect"""
        if self.dialect == 'postgresql':
            return postgresql.insert(model)
        return sqlite.insert(model)

    async def init(self):
        """Initialize database tables"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StoreUnavailable(f"Failed to initialize database: {e}") from e

    async def close(self):
        """Close database connections"""
        await self.engine.dispose()
        logger.info("Database connections closed")

    @asynccontextmanager
    async def session(self):
        """Transactional session; driver errors surface as StoreUnavailable"""
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreUnavailable(str(e)) from e
            except Exception:
                await session.rollback()
                raise
