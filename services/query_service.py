"""
Natural-language query pipeline.

A request is answered from the translation cache when possible; otherwise the
blocklist is applied, the remaining tables are introspected, the question is
translated and the statement sanitized. The statement is then executed once
against the live store and the attempt is written to the audit log.
"""
import enum
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from agent.translator import PromptTranslator, TranslationError
from agent.utils import make_json_serializable
from db.models import TranslationLog
from query_tools.audit_logger import AuditLogger
from query_tools.blocklist import BlocklistFilter
from query_tools.schema_introspector import SchemaIntrospector
from query_tools.sql_executor import ExecutionResult, LiveDatabase
from query_tools.sql_sanitizer import sanitize_sql
from query_tools.translation_cache import TranslationCache, join_tables
from services.config import Settings

logger = structlog.get_logger()

RENDER_DELIMITER = ","


class QueryErrorKind(str, enum.Enum):
    INPUT = "input"
    TRANSLATION = "translation"
    EXECUTION = "execution"


MISSING_INPUT_MESSAGE = "Missing tables or prompt"
TRANSLATION_FAILED_MESSAGE = "Translation model request failed"
EMPTY_TRANSLATION_MESSAGE = "No response from the translation model"
INVALID_QUERY_MESSAGE = "Invalid query supplied by the translation model"
LIVE_DB_UNAVAILABLE_MESSAGE = "Live database unavailable"


@dataclass
class QueryRequest:
    prompt: str
    tables: List[str]
    use_cache: bool = True


@dataclass
class QueryResult:
    error: str = ""
    error_kind: Optional[QueryErrorKind] = None
    query: str = ""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    rendered_text: str = ""
    tokens_used: int = 0
    cached: bool = False
    log_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


def _render_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def render_rows(columns: Sequence[str], rows: Sequence[Dict[str, Any]]) -> str:
    """Header line of column names, then one delimited line per row."""
    header = RENDER_DELIMITER.join(columns)
    body = "\n".join(
        RENDER_DELIMITER.join(_render_value(row.get(column)) for column in columns)
        for row in rows
    )
    return f"{header}\n{body}"


class QueryService:
    def __init__(
        self,
        settings: Settings,
        session: AsyncSession,
        translator: Optional[PromptTranslator] = None,
        live_db_factory: Optional[Callable[[Settings], LiveDatabase]] = None,
        blocklist_filter: Optional[BlocklistFilter] = None
    ):
        self.settings = settings
        self.session = session
        self.cache = TranslationCache(session)
        self.audit_logger = AuditLogger(session)
        self.translator = translator or PromptTranslator(settings)
        self.live_db_factory = live_db_factory or LiveDatabase
        self.blocklist_filter = blocklist_filter or BlocklistFilter()

    async def run(self, request: QueryRequest) -> QueryResult:
        prompt = request.prompt or ""
        tables = [table for table in (request.tables or []) if table]

        if not prompt.strip() or not tables:
            logger.warning("Query rejected", reason="missing tables or prompt")
            return QueryResult(error=MISSING_INPUT_MESSAGE, error_kind=QueryErrorKind.INPUT)

        use_cache = bool(request.use_cache and self.settings.translation_cache_enabled)
        logger.info(
            "Query received",
            tables=join_tables(tables),
            prompt_preview=prompt[:100],
            use_cache=use_cache
        )

        cached_entry = await self.cache.lookup(tables, prompt, use_cache)

        async with AsyncExitStack() as stack:
            # Only opening the pool maps to "unavailable"; audit store errors propagate
            try:
                live_db = await stack.enter_async_context(self.live_db_factory(self.settings))
            except ConnectionError as e:
                logger.error("Live database unavailable", error=str(e))
                return QueryResult(error=LIVE_DB_UNAVAILABLE_MESSAGE, error_kind=QueryErrorKind.EXECUTION)

            return await self._resolve_and_execute(live_db, tables, prompt, use_cache, cached_entry)

    async def _resolve_and_execute(
        self,
        live_db: LiveDatabase,
        tables: List[str],
        prompt: str,
        use_cache: bool,
        cached_entry: Optional[TranslationLog]
    ) -> QueryResult:
        if cached_entry is not None:
            sql = cached_entry.query
            tokens_used = 0
        else:
            try:
                sql, tokens_used = await self._translate(live_db, tables, prompt)
            except TranslationError:
                return QueryResult(error=TRANSLATION_FAILED_MESSAGE, error_kind=QueryErrorKind.TRANSLATION)

            if not sql.strip():
                logger.warning("Translation returned no usable SQL", tokens_used=tokens_used)
                return QueryResult(
                    error=EMPTY_TRANSLATION_MESSAGE,
                    error_kind=QueryErrorKind.TRANSLATION,
                    tokens_used=tokens_used
                )

        reused = cached_entry is not None

        try:
            result = await live_db.execute(sql)
        except Exception as e:
            logger.error("Execution failed", error=str(e), sql_preview=sql[:100], reused=reused)
            failed_entry = await self.audit_logger.record_attempt(
                tables=tables,
                prompt=prompt,
                query=sql,
                success=False,
                cache_eligible=use_cache,
                tokens_used=tokens_used
            )
            await self.session.commit()
            return QueryResult(
                error=INVALID_QUERY_MESSAGE,
                error_kind=QueryErrorKind.EXECUTION,
                query=sql,
                tokens_used=tokens_used,
                cached=reused,
                log_id=failed_entry.id
            )

        if reused:
            entry = await self.audit_logger.mark_reused(cached_entry)
        else:
            entry = await self.audit_logger.record_attempt(
                tables=tables,
                prompt=prompt,
                query=sql,
                success=True,
                cache_eligible=use_cache,
                tokens_used=tokens_used
            )
        await self.session.commit()

        return self._success(sql, result, tokens_used, reused, entry.id)

    async def _translate(self, live_db: LiveDatabase, tables: List[str], prompt: str):
        rules = await self.audit_logger.load_block_rules(tables)
        classification = self.blocklist_filter.classify(tables, rules)

        introspector = SchemaIntrospector(live_db)
        schema_definitions = await introspector.describe(classification.searchable)

        translation = await self.translator.translate(
            schema_definitions,
            prompt,
            classification.restriction_clause
        )
        return sanitize_sql(translation.sql or ""), translation.tokens_used

    def _success(
        self,
        sql: str,
        result: ExecutionResult,
        tokens_used: int,
        reused: bool,
        log_id: int
    ) -> QueryResult:
        rows = make_json_serializable(result.rows)
        logger.info(
            "Query answered",
            log_id=log_id,
            row_count=len(rows),
            tokens_used=tokens_used,
            cached=reused
        )
        return QueryResult(
            query=sql,
            rows=rows,
            columns=list(result.columns),
            rendered_text=render_rows(result.columns, rows),
            tokens_used=tokens_used,
            cached=reused,
            log_id=log_id
        )
