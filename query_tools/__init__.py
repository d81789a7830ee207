from .blocklist import BlocklistFilter, BlockRule, ColumnRule, WholeTableRule, rules_from_rows
from .schema_introspector import SchemaIntrospector, normalize_create_definition
from .translation_cache import TranslationCache
from .sql_sanitizer import sanitize_sql
from .sql_executor import LiveDatabase, ExecutionResult
from .audit_logger import AuditLogger

__all__ = [
    "BlocklistFilter",
    "BlockRule",
    "ColumnRule",
    "WholeTableRule",
    "rules_from_rows",
    "SchemaIntrospector",
    "normalize_create_definition",
    "TranslationCache",
    "sanitize_sql",
    "LiveDatabase",
    "ExecutionResult",
    "AuditLogger"
]
