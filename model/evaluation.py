# model/evaluation.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from model.engine import Engine


class EvaluationOutcome(BaseModel):
    """Normalized reply of one engine call (real or fallback)."""

    accuracy_score: int = Field(ge=0, le=100)
    inaccuracies: list[str] = Field(default_factory=list)
    raw_reply: str
    is_fallback: bool = False


class EvaluationRecord(BaseModel):
    """
    One attempt by one engine, for one entity, at one point in time.
    Append-only: later records supersede earlier ones by created_at.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    entity_id: str
    engine: Engine
    accuracy_score: int | None = Field(default=None, ge=0, le=100)
    inaccuracies: list[str] = Field(default_factory=list)
    raw_reply: str = ""
    prompt_used: str = ""
    is_fallback: bool = False
    created_at: datetime
