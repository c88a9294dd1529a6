# model/hallucination.py
from datetime import datetime
from enum import Enum
from typing import Final
from pydantic import BaseModel
from model.engine import Engine


class CorrectionStatus(str, Enum):
    open = "open"
    verifying = "verifying"
    fixed = "fixed"
    dismissed = "dismissed"
    recurring = "recurring"


class Severity(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class Category(str, Enum):
    status = "status"
    hours = "hours"
    amenity = "amenity"
    menu = "menu"
    address = "address"
    phone = "phone"
    other = "other"


# Closed transition table. `recurring` is never written by the lifecycle;
# rows already carrying it behave like `open`.
ALLOWED_TRANSITIONS: Final[dict[CorrectionStatus, frozenset[CorrectionStatus]]] = {
    CorrectionStatus.open: frozenset(
        {CorrectionStatus.verifying, CorrectionStatus.dismissed}
    ),
    CorrectionStatus.verifying: frozenset(
        {CorrectionStatus.fixed, CorrectionStatus.open}
    ),
    CorrectionStatus.dismissed: frozenset({CorrectionStatus.open}),
    CorrectionStatus.recurring: frozenset(
        {CorrectionStatus.verifying, CorrectionStatus.dismissed}
    ),
    CorrectionStatus.fixed: frozenset(),
}

# Statuses a fresh detection must not duplicate.
ACTIVE_STATUSES: Final[frozenset[CorrectionStatus]] = frozenset(
    {CorrectionStatus.open, CorrectionStatus.verifying}
)


def can_transition(current: CorrectionStatus, target: CorrectionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class HallucinationRecord(BaseModel):
    id: str
    tenant_id: str
    entity_id: str
    engine: Engine
    claim_text: str
    expected_truth: str
    severity: Severity
    category: Category = Category.other
    correction_status: CorrectionStatus = CorrectionStatus.open
    detected_at: datetime
    last_seen_at: datetime | None = None
    verifying_since: datetime | None = None  # a verification older than the cooldown may be restarted
    resolved_at: datetime | None = None
