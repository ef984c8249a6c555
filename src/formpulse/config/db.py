# this file is adapted from litestar-fullstack

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool

from litestar.serialization import decode_json, encode_json

from formpulse.db.models.meta import FPAsyncSession
from formpulse.config.app import get_env, get_bool_env, logger


def get_int_env(var_name: str, default: int) -> int:
    value = os.getenv(var_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def use_explicit_begin(engine: AsyncEngine) -> None:
    """Emit BEGIN explicitly on sqlite connections so SAVEPOINTs nest properly."""

    @event.listens_for(engine.sync_engine, "connect")
    def _sqla_on_connect(dbapi_connection: Any, _: Any) -> Any:  # pragma: no cover
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _sqla_on_begin(dbapi_connection: Any) -> Any:  # pragma: no cover
        dbapi_connection.exec_driver_sql("BEGIN")


@dataclass
class DBConfig:
    """Database settings of the record stores, read from the environment."""

    URI: str = field(
        default_factory=lambda: get_env("DB_URI", "sqlite+aiosqlite:///formpulse.sqlite3")
    )
    """SQLAlchemy Database URL."""
    ECHO: bool = field(default_factory=lambda: get_bool_env("DATABASE_ECHO", False))
    """Enable SQLAlchemy engine logs."""
    POOL_DISABLED: bool = field(
        default_factory=lambda: get_bool_env("DATABASE_POOL_DISABLED", False)
    )
    """Use NullPool instead of a connection pool (server databases only)."""
    POOL_SIZE: int = field(default_factory=lambda: get_int_env("DATABASE_POOL_SIZE", 5))
    POOL_MAX_OVERFLOW: int = field(
        default_factory=lambda: get_int_env("DATABASE_MAX_POOL_OVERFLOW", 10)
    )
    POOL_TIMEOUT: int = field(
        default_factory=lambda: get_int_env("DATABASE_POOL_TIMEOUT", 30)
    )
    POOL_RECYCLE: int = field(
        default_factory=lambda: get_int_env("DATABASE_POOL_RECYCLE", 300)
    )

    _engine_instance: AsyncEngine | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.URI.startswith("sqlite")

    def engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = dict(
            json_serializer=encode_json,
            json_deserializer=decode_json,
            echo=self.ECHO,
            pool_recycle=self.POOL_RECYCLE,
        )
        if self.is_sqlite:
            return options

        if self.POOL_DISABLED:
            options["poolclass"] = NullPool
        else:
            options.update(
                pool_size=self.POOL_SIZE,
                max_overflow=self.POOL_MAX_OVERFLOW,
                pool_timeout=self.POOL_TIMEOUT,
                pool_use_lifo=True,
            )
        return options

    @property
    def engine(self) -> AsyncEngine:
        return self.get_engine()

    def get_engine(self) -> AsyncEngine:
        if self._engine_instance is None:
            engine = create_async_engine(self.URI, **self.engine_options())
            if self.is_sqlite:
                use_explicit_begin(engine)
            logger.debug("created engine for %s", engine.url.render_as_string())
            self._engine_instance = engine
        return self._engine_instance

    @property
    def session_factory(self) -> Callable[[], FPAsyncSession]:
        return self.get_session_factory()

    def get_session_factory(self) -> Callable[[], FPAsyncSession]:
        return async_sessionmaker(
            self.engine, class_=FPAsyncSession, expire_on_commit=False
        )

    async def create_tables(self, metadata: MetaData) -> None:
        """Create all tables of metadata that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        if self._engine_instance is not None:
            await self._engine_instance.dispose()
            self._engine_instance = None


# EOF
