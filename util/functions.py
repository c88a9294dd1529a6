# util/functions.py
import json
import re
from datetime import datetime, timezone
from typing import Any

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the outermost {...} block out of a model reply (tolerates code fences
    and chatter around it). Raises ValueError when nothing parseable is found.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("no JSON object in reply")
    parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("reply JSON is not an object")
    return parsed
