# core/score_aggregator.py
import math
from typing import Final, Mapping, Optional
from model.audit import AggregateScore, TruthAuditResult
from model.engine import Engine

ENGINE_WEIGHTS: Final[dict[Engine, float]] = {
    Engine.openai: 0.30,
    Engine.perplexity: 0.30,
    Engine.gemini: 0.20,
    Engine.anthropic: 0.20,
}

CONSENSUS_THRESHOLD: Final[int] = 80


def _reporting(engine_scores: Mapping[Engine, Optional[int]]) -> dict[Engine, int]:
    return {e: s for e, s in engine_scores.items() if s is not None}


def weighted_score(engine_scores: Mapping[Engine, Optional[int]]) -> Optional[float]:
    """
    Weight-normalized mean over engines that reported. Missing engines drop out
    of numerator and denominator alike; None when nobody reported.
    """
    reporting = _reporting(engine_scores)
    weight_sum = sum(ENGINE_WEIGHTS[e] for e in reporting)
    if not reporting or weight_sum <= 0:
        return None
    total = sum(score * ENGINE_WEIGHTS[e] for e, score in reporting.items())
    return total / weight_sum


def has_consensus(
    engine_scores: Mapping[Engine, Optional[int]], has_verified_fix: bool
) -> bool:
    # Consensus is a statement about verified trust: high scores alone never suffice.
    reporting = _reporting(engine_scores)
    if not reporting or not has_verified_fix:
        return False
    return all(s >= CONSENSUS_THRESHOLD for s in reporting.values())


def aggregate(
    engine_scores: Mapping[Engine, Optional[int]], has_verified_fix: bool = False
) -> AggregateScore:
    composite = weighted_score(engine_scores)
    return AggregateScore(
        # half-up, so 84.5 reads as 85 rather than banker's 84
        truth_score=None if composite is None else int(math.floor(composite + 0.5)),
        consensus=has_consensus(engine_scores, has_verified_fix),
        engines_reporting=len(_reporting(engine_scores)),
    )


def build_truth_audit_result(
    engine_scores: Mapping[Engine, Optional[int]], has_verified_fix: bool = False
) -> TruthAuditResult:
    """Aggregate plus the full per-engine map (None for engines with no row)."""
    full = {e: engine_scores.get(e) for e in Engine}
    agg = aggregate(full, has_verified_fix)
    return TruthAuditResult(**agg.model_dump(), engine_scores=full)
