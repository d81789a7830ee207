from agent.prompts.translation import (
    TRANSLATION_SYSTEM_PROMPT,
    RESTRICTED_COLUMNS_SECTION
)
from agent.prompts.builders import build_translation_prompt

__all__ = [
    "TRANSLATION_SYSTEM_PROMPT",
    "RESTRICTED_COLUMNS_SECTION",
    "build_translation_prompt"
]
