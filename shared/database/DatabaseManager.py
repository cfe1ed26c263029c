"""
Database engine and session management
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.database.orm import Base
from shared.helper.HelperConfig import HelperConfig


class DatabaseManager:
    """Owns the async engine and hands out sessions to the stores."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.database_url = helper_config.get_string_val("DATABASE_URL", default="sqlite+aiosqlite:///./docchat.db")
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    async def init_db(self) -> None:
        """Create the engine and all tables."""
        kwargs: dict = {"echo": False}
        if self.database_url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
            # one shared connection, otherwise every session sees its own empty database
            kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        self._engine = create_async_engine(self.database_url, **kwargs)
        self._sessionmaker = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logging.info("Database initialized (%s).", self._engine.url.render_as_string(hide_password=True))

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialised. Call init_db() first.")
        return self._sessionmaker()

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self.logging.info("Database connections closed.")
