import pytest
from types import SimpleNamespace

from agent.prompts import build_translation_prompt
from agent.translator import PromptTranslator, TranslationError, count_tokens
from agent.utils import extract_sql
from tests.fakes import FakeChatModel

SCHEMA = ["CREATE TABLE users (id int, ssn varchar(11))", "CREATE TABLE orders (id int)"]


def test_prompt_lists_definitions_and_restrictions():
    prompt = build_translation_prompt(SCHEMA, "ssn from the users table")
    assert "CREATE TABLE users (id int, ssn varchar(11)),\nCREATE TABLE orders (id int)" in prompt
    assert "never contain references to any of the following columns: ssn from the users table" in prompt
    assert "Only return the query and nothing else." in prompt
    assert "MySQL" in prompt


def test_prompt_omits_empty_restriction():
    prompt = build_translation_prompt(SCHEMA, "")
    assert "following columns" not in prompt
    assert prompt.endswith("Only return the query and nothing else.")


def test_prompt_uses_postgres_dialect():
    prompt = build_translation_prompt(SCHEMA, dialect="postgresql")
    assert "PostgreSQL" in prompt
    assert "INTERVAL '7 days'" in prompt


def test_extract_sql_unwraps_code_fence():
    assert extract_sql("```sql\nSELECT 1\n```") == "SELECT 1"
    assert extract_sql([{"type": "text", "text": "SELECT 2"}]) == "SELECT 2"
    assert extract_sql("   ") is None
    assert extract_sql(None) is None


def test_count_tokens_sources():
    assert count_tokens(SimpleNamespace(usage_metadata={"total_tokens": 42}, response_metadata={})) == 42
    assert count_tokens(SimpleNamespace(
        usage_metadata=None,
        response_metadata={"token_usage": {"total_tokens": 9}}
    )) == 9
    assert count_tokens(SimpleNamespace(
        usage_metadata=None,
        response_metadata={"usage": {"input_tokens": 3, "output_tokens": 4}}
    )) == 7
    assert count_tokens(SimpleNamespace()) == 0


@pytest.mark.asyncio
async def test_translate_sends_system_and_question(settings):
    llm = FakeChatModel(content="```sql\nSELECT COUNT(*) FROM users\n```", usage_metadata={"total_tokens": 55})
    translation = await PromptTranslator(settings, llm=llm).translate(
        SCHEMA, "count of users", "ssn from the users table"
    )

    assert translation.sql == "SELECT COUNT(*) FROM users"
    assert translation.tokens_used == 55

    system, human = llm.messages[0]
    assert "ssn from the users table" in system.content
    assert human.content == "count of users"


@pytest.mark.asyncio
async def test_translate_empty_reply(settings):
    llm = FakeChatModel(content="", usage_metadata={"total_tokens": 12})
    translation = await PromptTranslator(settings, llm=llm).translate(SCHEMA, "count of users")
    assert translation.sql is None
    assert translation.tokens_used == 12


@pytest.mark.asyncio
async def test_translate_wraps_model_errors(settings):
    llm = FakeChatModel(error=RuntimeError("quota exceeded"))
    with pytest.raises(TranslationError, match="quota exceeded"):
        await PromptTranslator(settings, llm=llm).translate(SCHEMA, "count of users")


@pytest.mark.asyncio
async def test_translate_without_credentials_fails(settings):
    settings.openai_api_key = ""
    settings.llm_provider = "openai"
    with pytest.raises(TranslationError, match="API key not configured"):
        await PromptTranslator(settings).translate(SCHEMA, "count of users")
