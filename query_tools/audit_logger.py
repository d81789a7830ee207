from typing import List, Optional, Sequence
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import BlocklistItem, TranslationLog, utcnow
from query_tools.blocklist import BlockRule, rules_from_rows
from query_tools.translation_cache import join_tables

logger = structlog.get_logger()


class AuditLogger:
    """Append-only record of translate-and-execute attempts, plus blocklist reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_block_rules(self, tables: Sequence[str]) -> List[BlockRule]:
        if not tables:
            return []

        stmt = (
            select(BlocklistItem.tableName, BlocklistItem.columnName)
            .where(BlocklistItem.tableName.in_(list(tables)))
            .order_by(BlocklistItem.id)
        )
        result = await self.session.execute(stmt)
        return rules_from_rows(result.all())

    async def record_attempt(
        self,
        tables: Sequence[str],
        prompt: str,
        query: str,
        success: bool,
        cache_eligible: bool,
        tokens_used: int = 0
    ) -> TranslationLog:
        now = utcnow()
        entry = TranslationLog(
            tables=join_tables(tables),
            prompt=prompt,
            query=query,
            success=success,
            cacheEligible=cache_eligible,
            tokensUsed=tokens_used,
            createdAt=now,
            lastUsedAt=now,
            hidden=False
        )
        self.session.add(entry)
        await self.session.flush()

        logger.info(
            "Translation attempt logged",
            log_id=entry.id,
            tables=entry.tables,
            is_success=success,
            tokens_used=tokens_used
        )
        return entry

    async def mark_reused(self, entry: TranslationLog) -> TranslationLog:
        entry.lastUsedAt = utcnow()
        entry.hidden = False
        await self.session.flush()

        logger.info("Cached translation reused", log_id=entry.id)
        return entry

    async def list_history(self, limit: Optional[int] = None) -> List[TranslationLog]:
        stmt = (
            select(TranslationLog)
            .where(
                TranslationLog.success.is_(True),
                TranslationLog.hidden.is_(False)
            )
            .order_by(TranslationLog.lastUsedAt.desc(), TranslationLog.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def hide(self, log_id: int) -> bool:
        entry = await self.session.get(TranslationLog, log_id)
        if entry is None:
            logger.warning("Translation log not found for hide", log_id=log_id)
            return False

        entry.hidden = True
        await self.session.commit()

        logger.info("Translation log hidden", log_id=log_id)
        return True
