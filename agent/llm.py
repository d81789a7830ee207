from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI
from langchain_anthropic import ChatAnthropic
import structlog

from services.config import Settings

logger = structlog.get_logger()

# OpenRouter API base URL
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def get_llm(
    settings: Settings,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None
) -> BaseChatModel:
    """
    Get an LLM instance based on provider and model configuration.

    Args:
        settings: Runtime settings carrying credentials and defaults
        provider: LLM provider ('openai', 'anthropic' or 'openrouter')
        model: Model name
        temperature: Temperature setting (0-2)

    Returns:
        LLM instance (ChatOpenAI or ChatAnthropic)
    """
    provider = provider or settings.llm_provider
    model = model or settings.llm_model
    temperature = temperature if temperature is not None else settings.llm_temperature

    logger.info(
        "Initializing LLM",
        provider=provider,
        model=model,
        temperature=temperature
    )

    if provider == 'openai':
        if not settings.openai_api_key:
            raise ValueError("OpenAI API key not configured")

        return ChatOpenAI(
            model=model,
            api_key=settings.openai_api_key,
            temperature=temperature
        )

    elif provider == 'anthropic':
        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key not configured")

        return ChatAnthropic(
            model=model,
            api_key=settings.anthropic_api_key,
            temperature=temperature
        )

    elif provider == 'openrouter':
        if not settings.openrouter_api_key:
            raise ValueError("OpenRouter API key not configured")

        # OpenRouter uses OpenAI-compatible API
        return ChatOpenAI(
            model=model,
            api_key=settings.openrouter_api_key,
            base_url=OPENROUTER_BASE_URL,
            temperature=temperature
        )

    logger.error("Unsupported LLM provider", provider=provider)
    raise ValueError(f"Unsupported LLM provider: {provider}")
