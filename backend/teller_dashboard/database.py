from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool


class Database:
    """Owns the async connection pool shared by the PostgreSQL-backed stores."""

    def __init__(
        self,
        conninfo: str,
        *,
        ssl: bool = True,
        min_size: int = 1,
        max_size: int = 10,
    ) -> None:
        if not conninfo:
            raise ValueError("DATABASE_URL is required for PostgreSQL-backed stores")

        self.pool = AsyncConnectionPool(
            conninfo=conninfo,
            open=False,
            min_size=min_size,
            max_size=max_size,
            kwargs={
                "autocommit": True,
                "row_factory": dict_row,
                "sslmode": "require" if ssl else "disable",
            },
        )
        self._opened = False

    async def open(self) -> None:
        if self._opened:
            return

        await self.pool.open()
        self._opened = True

    async def close(self) -> None:
        if not self._opened:
            return

        await self.pool.close()
        self._opened = False

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        async with self.pool.connection() as connection:
            yield connection

    async def ping(self) -> None:
        async with self.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute("SELECT 1")
