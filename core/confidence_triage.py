# core/confidence_triage.py
from typing import Final, Iterable, Sequence
from model.extraction import ConfidenceTier, ExtractedItem, ItemTriage, TriageResult

THRESH_AUTO: Final[float] = 0.85  # at or above: auto-approved
THRESH_REVIEW: Final[float] = 0.60  # at or above: needs review; below blocks publish
OWNER_SUPPLIED_CONFIDENCE: Final[float] = 1.0


def classify(confidence: float) -> ConfidenceTier:
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence out of range: {confidence}")
    if confidence >= THRESH_AUTO:
        return ConfidenceTier.auto
    if confidence >= THRESH_REVIEW:
        return ConfidenceTier.review
    return ConfidenceTier.blocked


def effective_confidence(item: ExtractedItem) -> float:
    """Owner-entered data is never machine-scored."""
    return OWNER_SUPPLIED_CONFIDENCE if item.owner_supplied else item.confidence


def can_publish(items: Iterable[ExtractedItem], certified: bool) -> bool:
    """
    Confidence alone never authorizes publication: no item may be blocked AND a
    human must have certified the set.
    """
    no_blocked = all(
        classify(effective_confidence(i)) is not ConfidenceTier.blocked for i in items
    )
    return no_blocked and certified


def triage(items: Sequence[ExtractedItem], certified: bool) -> TriageResult:
    rows = [
        ItemTriage(
            id=i.id,
            tier=classify(effective_confidence(i)),
            confidence=effective_confidence(i),
        )
        for i in items
    ]
    counts = {tier: 0 for tier in ConfidenceTier}
    for row in rows:
        counts[row.tier] += 1
    blocked = [row.id for row in rows if row.tier is ConfidenceTier.blocked]
    return TriageResult(
        items=rows,
        counts=counts,
        blocked_ids=blocked,
        certified=certified,
        can_publish=not blocked and certified,
    )
