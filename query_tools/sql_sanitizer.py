import re

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_REPEATED_SPACES = re.compile(r" {2,}")


def sanitize_sql(raw: str) -> str:
    """Flatten model output onto one line: line breaks become spaces, runs of spaces collapse."""
    if not raw:
        return ""
    return _REPEATED_SPACES.sub(" ", _LINE_BREAKS.sub(" ", raw))
