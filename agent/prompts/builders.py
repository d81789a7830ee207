"""
Dynamic prompt builder functions.
"""
from typing import Sequence

from agent.prompts.translation import (
    TRANSLATION_SYSTEM_PROMPT,
    RESTRICTED_COLUMNS_SECTION,
    MYSQL_NOTES,
    POSTGRESQL_NOTES
)


def build_translation_prompt(
    schema_definitions: Sequence[str],
    restriction_clause: str = "",
    dialect: str = "mysql"
) -> str:
    """
    Build the system instruction for the translation model.

    Args:
        schema_definitions: Normalized create definitions the model may use
        restriction_clause: Blocked columns rendered as text; omitted entirely when empty
        dialect: Database type ('mysql' or 'postgresql')

    Returns:
        Complete system prompt
    """
    dialect_lower = dialect.lower() if dialect else "mysql"
    is_postgres = "postgres" in dialect_lower

    restrictions = ""
    if restriction_clause:
        restrictions = RESTRICTED_COLUMNS_SECTION.format(restriction_clause=restriction_clause)

    return TRANSLATION_SYSTEM_PROMPT.format(
        dialect="PostgreSQL" if is_postgres else "MySQL",
        schema_definitions=",\n".join(schema_definitions),
        dialect_notes=POSTGRESQL_NOTES if is_postgres else MYSQL_NOTES,
        restrictions=restrictions
    ).strip()
