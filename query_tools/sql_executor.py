import asyncio
import re
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List
import structlog

from services.config import Settings

logger = structlog.get_logger()

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_$]+(\.[A-Za-z0-9_$]+)?$")


def unique_column_names(names: Iterable[str]) -> List[str]:
    """
    Result column names with repeats suffixed by position ("id", "id_2"),
    so joined tables sharing a column name keep every value.
    """
    seen = set()
    columns = []
    for position, name in enumerate(names, start=1):
        candidate = name
        if candidate in seen:
            candidate = f"{name}_{position}"
        seen.add(candidate)
        columns.append(candidate)
    return columns


@dataclass
class ExecutionResult:
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


class LiveDatabase:
    """
    Per-run access to the live data store.

    Use as an async context manager; the pool is opened on enter and closed
    on exit, whatever path the run takes.
    """

    def __init__(self, settings: Settings):
        self.db_type = settings.live_db_type
        self.connection_details = {
            "host": settings.live_db_host,
            "port": settings.live_db_port,
            "database": settings.live_db_name,
            "username": settings.live_db_user,
            "password": settings.live_db_password,
        }
        self.pool_size = max(1, settings.live_db_pool_size)
        self.timeout = settings.query_timeout_seconds
        self.limit = settings.max_query_results
        self._pool = None

    async def __aenter__(self) -> "LiveDatabase":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        if self.db_type not in ("postgresql", "mysql"):
            raise ValueError(f"Unsupported database type: {self.db_type}")

        logger.info(
            "Opening live database pool",
            db_type=self.db_type,
            host=self.connection_details["host"],
            port=self.connection_details["port"],
            database=self.connection_details["database"],
            user=self.connection_details["username"]
        )

        try:
            if self.db_type == "postgresql":
                import asyncpg

                self._pool = await asyncpg.create_pool(
                    host=self.connection_details["host"],
                    port=self.connection_details["port"],
                    database=self.connection_details["database"],
                    user=self.connection_details["username"],
                    password=self.connection_details["password"],
                    min_size=1,
                    max_size=self.pool_size,
                    timeout=self.timeout
                )
            else:
                import aiomysql

                self._pool = await aiomysql.create_pool(
                    host=self.connection_details["host"],
                    port=self.connection_details["port"],
                    db=self.connection_details["database"],
                    user=self.connection_details["username"],
                    password=self.connection_details["password"],
                    minsize=1,
                    maxsize=self.pool_size,
                    connect_timeout=self.timeout,
                    autocommit=True
                )
        except Exception as e:
            # Explicitly prefix error to identify it as connection issue upstream
            logger.error("Live database connection failed", error=str(e), error_type=type(e).__name__)
            raise ConnectionError(f"DATABASE_CONNECTION_ERROR: {str(e)}") from e

    async def close(self) -> None:
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        if self.db_type == "postgresql":
            await pool.close()
        else:
            pool.close()
            await pool.wait_closed()
        logger.debug("Live database pool closed", db_type=self.db_type)

    def _require_pool(self):
        if self._pool is None:
            raise RuntimeError("Live database is not connected")
        return self._pool

    async def fetch_create_definition(self, table: str) -> str:
        """Return the store's own CREATE TABLE / CREATE VIEW text for a table or view."""
        if not TABLE_NAME_PATTERN.match(table or ""):
            raise ValueError(f"Invalid table name: {table!r}")

        if self.db_type == "postgresql":
            return await self._create_definition_postgres(table)
        return await self._create_definition_mysql(table)

    async def _create_definition_mysql(self, table: str) -> str:
        import aiomysql

        async with self._require_pool().acquire() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await asyncio.wait_for(
                    cursor.execute(f"SHOW CREATE TABLE {table}"),
                    timeout=self.timeout
                )
                row = await cursor.fetchone()

        if not row:
            raise LookupError(f"Table not found: {table}")

        definition = row.get("Create Table") or row.get("Create View")
        if not definition:
            raise LookupError(f"No create definition returned for {table}")
        return definition

    async def _create_definition_postgres(self, table: str) -> str:
        schema_name, _, relation_name = table.rpartition(".")

        async with self._require_pool().acquire() as conn:
            relation = await conn.fetchrow(
                """
                SELECT
                    n.nspname AS schema_name,
                    c.relkind,
                    CASE WHEN c.relkind IN ('v', 'm') THEN pg_get_viewdef(c.oid, true) END AS view_def
                FROM pg_class c
                JOIN pg_namespace n ON n.oid = c.relnamespace
                WHERE c.relname = $1
                  AND CASE WHEN $2::text = '' THEN n.nspname = ANY(current_schemas(false))
                           ELSE n.nspname = $2 END
                  AND c.relkind IN ('r', 'p', 'v', 'm')
                ORDER BY array_position(current_schemas(false), n.nspname)
                LIMIT 1
                """,
                relation_name,
                schema_name
            )

            if relation is None:
                raise LookupError(f"Table not found: {table}")

            if relation["view_def"]:
                return f"CREATE VIEW {table} AS {relation['view_def']}"

            columns = await conn.fetch(
                """
                SELECT column_name, data_type, is_nullable
                FROM information_schema.columns
                WHERE table_name = $1 AND table_schema = $2
                ORDER BY ordinal_position
                """,
                relation_name,
                relation["schema_name"]
            )
            primary_key = await conn.fetch(
                """
                SELECT kcu.column_name
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                  ON tc.constraint_name = kcu.constraint_name AND tc.table_schema = kcu.table_schema
                WHERE tc.constraint_type = 'PRIMARY KEY'
                  AND tc.table_name = $1 AND tc.table_schema = $2
                ORDER BY kcu.ordinal_position
                """,
                relation_name,
                relation["schema_name"]
            )

        parts = [
            f"{col['column_name']} {col['data_type']}" + ("" if col["is_nullable"] == "YES" else " NOT NULL")
            for col in columns
        ]
        if primary_key:
            parts.append(f"PRIMARY KEY ({', '.join(pk['column_name'] for pk in primary_key)})")

        return f"CREATE TABLE {table} (\n  " + ",\n  ".join(parts) + "\n)"

    async def execute(self, sql: str) -> ExecutionResult:
        if self.db_type == "postgresql":
            return await self._execute_postgres(sql)
        return await self._execute_mysql(sql)

    async def _execute_postgres(self, sql: str) -> ExecutionResult:
        async with self._require_pool().acquire() as conn:
            statement = await asyncio.wait_for(conn.prepare(sql), timeout=self.timeout)
            columns = unique_column_names(attribute.name for attribute in statement.get_attributes())
            # Server-side cursors only live inside a transaction
            async with conn.transaction():
                cursor = await statement.cursor()
                records = await asyncio.wait_for(cursor.fetch(self.limit), timeout=self.timeout)

        rows = [dict(zip(columns, record.values())) for record in records]
        logger.info(
            "PostgreSQL query executed",
            row_count=len(rows),
            sql_preview=sql[:100]
        )
        return ExecutionResult(columns=columns, rows=rows)

    async def _execute_mysql(self, sql: str) -> ExecutionResult:
        async with self._require_pool().acquire() as conn:
            async with conn.cursor() as cursor:
                await asyncio.wait_for(
                    cursor.execute(sql),
                    timeout=self.timeout
                )
                columns = unique_column_names(description[0] for description in (cursor.description or []))
                records = await cursor.fetchmany(self.limit)

        rows = [dict(zip(columns, record)) for record in records]
        logger.info(
            "MySQL query executed",
            row_count=len(rows),
            sql_preview=sql[:100]
        )
        return ExecutionResult(columns=columns, rows=rows)
