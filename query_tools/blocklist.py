from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple, Union
import structlog

logger = structlog.get_logger()

# Stored column_name value meaning "the entire table".
WHOLE_TABLE_MARKER = "*"


@dataclass(frozen=True)
class WholeTableRule:
    table: str


@dataclass(frozen=True)
class ColumnRule:
    table: str
    column: str


BlockRule = Union[WholeTableRule, ColumnRule]


@dataclass
class Classification:
    searchable: List[str] = field(default_factory=list)
    restriction_clause: str = ""


def rules_from_rows(rows: Iterable[Tuple[str, str]]) -> List[BlockRule]:
    """Convert stored (table_name, column_name) rows into block rules."""
    rules: List[BlockRule] = []
    for table_name, column_name in rows:
        if column_name == WHOLE_TABLE_MARKER:
            rules.append(WholeTableRule(table_name))
        else:
            rules.append(ColumnRule(table_name, column_name))
    return rules


class BlocklistFilter:
    """
    Decides which requested tables may be shown to the translation model and
    which of their columns it must be told to avoid.
    """

    def classify(
        self,
        requested_tables: Sequence[str],
        rules: Iterable[BlockRule]
    ) -> Classification:
        rules = list(rules)
        requested = list(dict.fromkeys(requested_tables))

        fully_blocked = {rule.table for rule in rules if isinstance(rule, WholeTableRule)}
        searchable = [table for table in requested if table not in fully_blocked]

        blocked_columns = {}
        for rule in rules:
            if isinstance(rule, ColumnRule) and rule.table in requested:
                columns = blocked_columns.setdefault(rule.table, [])
                if rule.column not in columns:
                    columns.append(rule.column)

        parts = [
            f"{', '.join(blocked_columns[table])} from the {table} table"
            for table in requested
            if table in blocked_columns
        ]

        logger.debug(
            "Blocklist classified",
            requested=requested,
            searchable=searchable,
            fully_blocked=sorted(fully_blocked.intersection(requested)),
            restricted_tables=list(blocked_columns)
        )

        return Classification(searchable=searchable, restriction_clause=", ".join(parts))
