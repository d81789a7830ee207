from typing import Optional, Sequence
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import TranslationLog

logger = structlog.get_logger()

TABLES_SEPARATOR = ","


def join_tables(tables: Sequence[str]) -> str:
    """Deterministic, order-preserving key for a requested table set."""
    return TABLES_SEPARATOR.join(tables)


class TranslationCache:
    """
    Finds a previous successful translation of the exact same prompt over the
    exact same table selection. Read-only; reuse is recorded by the audit logger.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup(
        self,
        tables: Sequence[str],
        prompt: str,
        use_cache: bool
    ) -> Optional[TranslationLog]:
        if not use_cache:
            return None

        stmt = (
            select(TranslationLog)
            .where(
                TranslationLog.tables == join_tables(tables),
                TranslationLog.prompt == prompt,
                TranslationLog.success.is_(True),
                TranslationLog.hidden.is_(False),
                TranslationLog.cacheEligible.is_(True)
            )
            .order_by(
                TranslationLog.lastUsedAt.desc(),
                TranslationLog.createdAt.desc(),
                TranslationLog.id.desc()
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        entry = result.scalar_one_or_none()

        if entry:
            logger.info("Translation cache hit", log_id=entry.id, tables=entry.tables)
        else:
            logger.debug("Translation cache miss", tables=join_tables(tables))
        return entry
