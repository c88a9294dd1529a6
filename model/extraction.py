# model/extraction.py
from enum import Enum
from pydantic import BaseModel, Field


class ConfidenceTier(str, Enum):
    auto = "auto"
    review = "review"
    blocked = "blocked"


class ExtractedItem(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    price: str | None = None
    category: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    owner_supplied: bool = False


class ItemTriage(BaseModel):
    id: str
    tier: ConfidenceTier
    confidence: float


class TriageResult(BaseModel):
    items: list[ItemTriage]
    counts: dict[ConfidenceTier, int]
    blocked_ids: list[str]
    certified: bool
    can_publish: bool
