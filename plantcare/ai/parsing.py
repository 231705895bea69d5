"""Helpers for turning chat-completion text into validated values."""

import json
import math
import re
from typing import Any, Dict, List, Optional

FENCED_JSON = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
LATIN = re.compile(r"[A-Za-z]")
CYRILLIC = re.compile(r"[А-Яа-яЁё]")


def sanitize_json_payload(content: Optional[str]) -> str:
    """
    Reduce a model reply to the JSON object it contains.

    A reply wrapped entirely in one fenced block is unwrapped; then the text
    between the first "{" and the last "}" is kept when both exist.
    """
    text = (content or "").strip()
    if not text:
        return ""
    fenced = FENCED_JSON.match(text)
    if fenced:
        text = fenced.group(1).strip()
    first = text.find("{")
    last = text.rfind("}")
    if first >= 0 and last > first:
        return text[first:last + 1].strip()
    return text


def parse_json_object(content: Optional[str]) -> Optional[Dict[str, Any]]:
    payload = sanitize_json_payload(content)
    if not payload:
        return None
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def as_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """A finite float from a JSON number or numeric string; NaN and infinities count as absent."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def as_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = as_float(value)
    return default if number is None else int(number)


def clamp(value, low, high):
    return max(low, min(high, value))


def russian_only(text: Any) -> str:
    """Blank out text written only in Latin script; replies should be in Russian."""
    value = str(text or "").strip() if not isinstance(text, (dict, list)) else ""
    if not value:
        return ""
    if LATIN.search(value) and not CYRILLIC.search(value):
        return ""
    return value


def take_strings(values: Any, limit: int, *, russian: bool = False) -> List[str]:
    """First ``limit`` non-blank strings of a JSON array (anything else -> [])."""
    if not isinstance(values, list):
        return []
    result: List[str] = []
    for item in values:
        if isinstance(item, (dict, list)):
            continue
        value = russian_only(item) if russian else str(item or "").strip()
        if value:
            result.append(value)
        if len(result) >= limit:
            break
    return result


def preview(value: Optional[str], size: int = 220) -> str:
    one_line = (value or "").replace("\n", "\\n").replace("\r", "")
    return one_line if len(one_line) <= size else one_line[:size] + "..."
