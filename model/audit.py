# model/audit.py
from pydantic import BaseModel
from model.engine import Engine


class AggregateScore(BaseModel):
    truth_score: int | None
    consensus: bool
    engines_reporting: int


class TruthAuditResult(AggregateScore):
    """Derived on read from the latest evaluation per engine; never stored."""

    engine_scores: dict[Engine, int | None]
