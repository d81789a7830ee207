from datetime import datetime, timezone
from sqlalchemy import String, Boolean, Integer, Text, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class BlocklistItem(Base):
    """
    Admin-managed rule forbidding a table or a single column.
    column_name "*" blocks the whole table. Read-only to the query runtime.
    """
    __tablename__ = "blocklist_items"
    __table_args__ = (
        UniqueConstraint("table_name", "column_name", name="uq_blocklist_items_table_column"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tableName: Mapped[str] = mapped_column("table_name", String(255), nullable=False)
    columnName: Mapped[str] = mapped_column("column_name", String(255), nullable=False)
    createdAt: Mapped[datetime] = mapped_column("created_at", DateTime(timezone=True), default=utcnow)


class TranslationLog(Base):
    """Audit log for every translate-and-execute attempt; also backs the translation cache"""
    __tablename__ = "translation_logs"
    __table_args__ = (
        Index("ix_translation_logs_lookup", "tables", "prompt", "success", "hidden"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tables: Mapped[str] = mapped_column(Text, nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    query: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cacheEligible: Mapped[bool] = mapped_column("cache_eligible", Boolean, default=True, nullable=False)
    tokensUsed: Mapped[int] = mapped_column("tokens_used", Integer, default=0, nullable=False)
    createdAt: Mapped[datetime] = mapped_column("created_at", DateTime(timezone=True), default=utcnow, nullable=False)
    lastUsedAt: Mapped[datetime] = mapped_column("last_used_at", DateTime(timezone=True), default=utcnow, nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
