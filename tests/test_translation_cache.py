from datetime import datetime, timedelta, timezone

import pytest

from db.models import TranslationLog
from query_tools.translation_cache import TranslationCache, join_tables

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def add_log(session, tables=("users",), prompt="count of users", query="SELECT COUNT(*) FROM users",
                  success=True, hidden=False, cache_eligible=True, minutes=0):
    stamp = BASE_TIME + timedelta(minutes=minutes)
    entry = TranslationLog(
        tables=join_tables(tables),
        prompt=prompt,
        query=query,
        success=success,
        cacheEligible=cache_eligible,
        tokensUsed=10,
        createdAt=stamp,
        lastUsedAt=stamp,
        hidden=hidden
    )
    session.add(entry)
    await session.commit()
    return entry


@pytest.mark.asyncio
async def test_lookup_returns_matching_success(db_session):
    entry = await add_log(db_session)
    found = await TranslationCache(db_session).lookup(["users"], "count of users", True)
    assert found is not None
    assert found.id == entry.id


@pytest.mark.asyncio
async def test_lookup_disabled_returns_none(db_session):
    await add_log(db_session)
    assert await TranslationCache(db_session).lookup(["users"], "count of users", False) is None


@pytest.mark.asyncio
async def test_hidden_entry_never_returned(db_session):
    """Even when it is the only match"""
    await add_log(db_session, hidden=True)
    assert await TranslationCache(db_session).lookup(["users"], "count of users", True) is None


@pytest.mark.asyncio
async def test_failed_and_ineligible_entries_skipped(db_session):
    await add_log(db_session, success=False)
    await add_log(db_session, cache_eligible=False)
    assert await TranslationCache(db_session).lookup(["users"], "count of users", True) is None


@pytest.mark.asyncio
async def test_most_recently_used_entry_wins(db_session):
    await add_log(db_session, query="SELECT 1", minutes=1)
    newer = await add_log(db_session, query="SELECT 2", minutes=5)
    await add_log(db_session, query="SELECT 3", minutes=3)

    found = await TranslationCache(db_session).lookup(["users"], "count of users", True)
    assert found.id == newer.id
    assert found.query == "SELECT 2"


@pytest.mark.asyncio
async def test_key_is_exact_prompt_and_table_order(db_session):
    await add_log(db_session, tables=("users", "orders"))
    cache = TranslationCache(db_session)

    assert await cache.lookup(["users", "orders"], "count of users", True) is not None
    assert await cache.lookup(["orders", "users"], "count of users", True) is None
    assert await cache.lookup(["users", "orders"], "Count of users", True) is None
