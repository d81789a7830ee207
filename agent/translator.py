"""
Boundary to the language model that turns a question into a SQL statement.

The translator makes exactly one model call per invocation. Failures are
surfaced as TranslationError and never retried here.
"""
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence
import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import SystemMessage, HumanMessage

from agent.llm import get_llm
from agent.prompts import build_translation_prompt
from agent.utils import extract_sql
from services.config import Settings

logger = structlog.get_logger()


class TranslationError(Exception):
    """The translation model could not be reached or rejected the request."""


@dataclass
class Translation:
    sql: Optional[str]
    tokens_used: int = 0


def count_tokens(response: Any) -> int:
    """Total token usage reported on a chat model response, 0 when unknown."""
    usage = getattr(response, "usage_metadata", None) or {}
    if usage.get("total_tokens"):
        return int(usage["total_tokens"])

    metadata = getattr(response, "response_metadata", None) or {}
    token_usage = metadata.get("token_usage") or {}
    if token_usage.get("total_tokens"):
        return int(token_usage["total_tokens"])

    # Anthropic reports input/output separately
    anthropic_usage = metadata.get("usage") or {}
    return int(anthropic_usage.get("input_tokens", 0) or 0) + int(anthropic_usage.get("output_tokens", 0) or 0)


class PromptTranslator:
    def __init__(self, settings: Settings, llm: Optional[BaseChatModel] = None):
        self.settings = settings
        self.dialect = settings.live_db_type
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = get_llm(self.settings)
        return self._llm

    async def translate(
        self,
        schema_definitions: Sequence[str],
        prompt: str,
        restriction_clause: str = ""
    ) -> Translation:
        system_prompt = build_translation_prompt(
            schema_definitions,
            restriction_clause=restriction_clause,
            dialect=self.dialect
        )
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=prompt)
        ]

        started = time.monotonic()
        try:
            response = await self._get_llm().ainvoke(messages)
        except Exception as e:
            logger.error(
                "Translation model call failed",
                error=str(e),
                error_type=type(e).__name__,
                prompt_preview=prompt[:100]
            )
            raise TranslationError(str(e)) from e

        translation = Translation(
            sql=extract_sql(getattr(response, "content", None)),
            tokens_used=count_tokens(response)
        )
        logger.info(
            "Prompt translated",
            table_definitions=len(schema_definitions),
            restricted=bool(restriction_clause),
            tokens_used=translation.tokens_used,
            has_sql=translation.sql is not None,
            duration_ms=int((time.monotonic() - started) * 1000)
        )
        return translation
