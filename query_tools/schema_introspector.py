import asyncio
import re
from typing import List, Optional, Protocol, Sequence
import structlog

logger = structlog.get_logger()

# Everything from the storage-engine clause to the end of its line.
_ENGINE_CLAUSE = re.compile(r" ENGINE.*")
_VIEW_DECORATION = re.compile(
    r"\s+(?:ALGORITHM\s*=\s*\S+|DEFINER\s*=\s*\S+|SQL\s+SECURITY\s+(?:DEFINER|INVOKER))",
    re.IGNORECASE
)
_WHITESPACE = re.compile(r"\s+")
_QUOTES = re.compile(r"[`\"]")
# "IS NOT NULL" inside view bodies is a predicate, not a column constraint.
_NOT_NULL = re.compile(r"(?<!\bIS)(?<!\bis) NOT NULL")
_COLUMN_MARKERS = (" AUTO_INCREMENT", " unsigned")
_OPEN_PAREN_SPACE = re.compile(r"\(\s+")
_CLOSE_PAREN_SPACE = re.compile(r"\s+\)")


class CreateDefinitionSource(Protocol):
    async def fetch_create_definition(self, table: str) -> str:
        ...


def normalize_create_definition(create_sql: str) -> str:
    """
    Compact a CREATE TABLE / CREATE VIEW statement into a single model-friendly line.
    """
    if not create_sql:
        return ""

    text = _ENGINE_CLAUSE.sub("", create_sql, count=1)
    text = _VIEW_DECORATION.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    text = _QUOTES.sub("", text)
    text = _NOT_NULL.sub("", text)
    for marker in _COLUMN_MARKERS:
        text = text.replace(marker, "")
    text = _OPEN_PAREN_SPACE.sub("(", text)
    text = _CLOSE_PAREN_SPACE.sub(")", text)
    return _WHITESPACE.sub(" ", text).strip()


class SchemaIntrospector:
    def __init__(self, source: CreateDefinitionSource):
        self.source = source

    async def describe(self, searchable_tables: Sequence[str]) -> List[str]:
        """
        Fetch and normalize one definition per table, keeping the caller's order.

        Tables whose metadata cannot be fetched are left out; one bad table
        never fails the batch.
        """
        tables = list(searchable_tables)
        if not tables:
            return []

        results = await asyncio.gather(
            *(self.source.fetch_create_definition(table) for table in tables),
            return_exceptions=True
        )

        definitions = []
        for table, result in zip(tables, results):
            definition = self._accept(table, result)
            if definition:
                definitions.append(definition)

        logger.info(
            "Schema introspected",
            requested_count=len(tables),
            described_count=len(definitions)
        )
        return definitions

    def _accept(self, table: str, result) -> Optional[str]:
        if isinstance(result, Exception):
            logger.warning(
                "Schema introspection failed, table omitted",
                table=table,
                error=str(result),
                error_type=type(result).__name__
            )
            return None
        if isinstance(result, BaseException):
            raise result

        definition = normalize_create_definition(result)
        if not definition:
            logger.warning("Empty create definition, table omitted", table=table)
            return None
        return definition
