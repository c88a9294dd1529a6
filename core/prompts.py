# core/prompts.py
import json
from typing import Any
from model.entity import GroundTruthEntity


def _structured(value: dict[str, Any] | None) -> str:
    if not value:
        return "not listed"
    return json.dumps(value, sort_keys=True, separators=(", ", ": "))


def build_eval_prompt(entity: GroundTruthEntity) -> str:
    """
    Render the entity's current ground truth into the user message every
    engine receives. The system prompt (settings.EVAL_SYSTEM_PROMPT) carries
    the output contract.
    """
    where = ", ".join(p for p in (entity.city, entity.state) if p)
    lines = [
        "GROUND TRUTH (from our verified database):",
        f"- Business name: {entity.business_name}",
        f"- Address: {entity.address or 'not listed'}",
        f"- Phone: {entity.phone or 'not listed'}",
        f"- Website: {entity.website_url or 'not listed'}",
        f"- Hours: {_structured(entity.hours_data)}",
        f"- Amenities: {_structured(entity.amenities)}",
        "",
        f'What would an AI assistant say if asked about "{entity.business_name}"'
        + (f' in "{where}"' if where else "")
        + "? Compare it against the ground truth and return JSON only.",
    ]
    return "\n".join(lines)
