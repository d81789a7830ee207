import re
from typing import Any, Optional


_CODE_FENCE = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)


def extract_sql(content: Any) -> Optional[str]:
    """Pull the statement out of an LLM reply, unwrapping a Markdown code block if present"""
    if not content:
        return None

    if isinstance(content, list):
        # Content blocks (e.g. Anthropic) -> concatenate the text parts
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )

    if not isinstance(content, str):
        content = str(content)

    match = _CODE_FENCE.search(content)
    if match:
        content = match.group(1)

    content = content.strip()
    return content or None


def make_json_serializable(obj: Any) -> Any:
    """Helper to convert objects like UUIDs or datetimes to JSON serializable formats"""
    from uuid import UUID
    from datetime import datetime, date, time, timedelta
    from decimal import Decimal

    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, dict):
        return {k: make_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [make_json_serializable(i) for i in obj]
    return obj
