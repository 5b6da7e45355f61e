"""
Database engine and session management.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from xplorium.core.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Base(DeclarativeBase):
    pass


class DatabaseManager:
    """Owns the async engine and the session factory"""

    def __init__(self) -> None:
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialize_engine()

    def _initialize_engine(self) -> None:
        db_url = settings.SQLALCHEMY_DATABASE_URI
        self.engine = create_async_engine(db_url, **self._get_engine_kwargs(db_url))
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine initialized with URL: %s", self._mask_url(db_url))

    def _get_engine_kwargs(self, db_url: str) -> Dict[str, Any]:
        """Get engine configuration based on database type"""
        base_kwargs: Dict[str, Any] = {"echo": settings.database.ECHO}

        if "sqlite" in db_url:
            base_kwargs.update(
                {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False, "timeout": 20},
                }
            )
        else:
            base_kwargs.update(
                {
                    "pool_pre_ping": settings.database.POOL_PRE_PING,
                    "pool_recycle": settings.database.POOL_RECYCLE,
                    "pool_size": settings.database.POOL_SIZE,
                    "max_overflow": settings.database.MAX_OVERFLOW,
                    "pool_timeout": settings.database.POOL_TIMEOUT,
                    "connect_args": {
                        "command_timeout": settings.database.COMMAND_TIMEOUT,
                        "server_settings": {
                            "application_name": f"{settings.PROJECT_NAME}_app",
                            "statement_timeout": settings.database.STATEMENT_TIMEOUT,
                        },
                    },
                }
            )

        return base_kwargs

    @staticmethod
    def _mask_url(url: str) -> str:
        if "@" not in url:
            return url
        scheme, rest = url.split("://", 1)
        return f"{scheme}://***@{rest.split('@', 1)[1]}"

    async def create_all(self) -> None:
        """Create tables directly; used for SQLite development databases"""
        if not self.engine:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> Dict[str, Any]:
        if not self.engine:
            return {"status": "unhealthy", "error": "engine not initialized"}
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "healthy"}
        except SQLAlchemyError as e:
            logger.error("Database health check failed: %s", e)
            return {"status": "unhealthy", "error": str(e)}

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")


db_manager = DatabaseManager()
SessionLocal = db_manager.session_factory
