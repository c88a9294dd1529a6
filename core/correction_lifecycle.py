# core/correction_lifecycle.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Final, Iterable, Optional
from uuid import uuid4
from core.detection import (
    DEFAULT_PREFIX_CHARS,
    categorize,
    claim_still_present,
    expected_truth_for,
    severity_for,
)
from core.dispatcher import EngineDispatcher
from model.entity import GroundTruthEntity
from model.evaluation import EvaluationRecord
from model.hallucination import (
    ACTIVE_STATUSES,
    CorrectionStatus,
    HallucinationRecord,
    can_transition,
)
from repository.entity_repository import EntityRepository
from repository.hallucination_repository import (
    HallucinationRecordRepository,
    TransitionResult,
)
from util.enums import ErrorMessage
from util.errors import AppError, DispatchFailed, InvalidTransition
from util.functions import utc_now

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS: Final[int] = 86400

# Manual target -> statuses it may be set from. verifying/fixed are reached only through verify().
MANUAL_TARGETS: Final[dict[CorrectionStatus, frozenset[CorrectionStatus]]] = {
    CorrectionStatus.dismissed: frozenset(
        {CorrectionStatus.open, CorrectionStatus.recurring}
    ),
    CorrectionStatus.open: frozenset({CorrectionStatus.dismissed}),
}


@dataclass(frozen=True)
class VerificationOutcome:
    """Either a new status, or a cooldown rejection carrying retry-after."""

    status: Optional[CorrectionStatus] = None
    retry_after_seconds: Optional[int] = None

    @property
    def cooldown(self) -> bool:
        return self.retry_after_seconds is not None


class CorrectionLifecycle:
    def __init__(
        self,
        hallucinations: HallucinationRecordRepository,
        entities: EntityRepository,
        dispatcher: EngineDispatcher,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        prefix_chars: int = DEFAULT_PREFIX_CHARS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._hallucinations = hallucinations
        self._entities = entities
        self._dispatcher = dispatcher
        self._cooldown = cooldown_seconds
        self._prefix = prefix_chars
        self._clock = clock

    async def _load(self, tenant_id: str, record_id: str) -> HallucinationRecord:
        record = await self._hallucinations.get(tenant_id, record_id)
        if record is None:
            raise AppError.of(ErrorMessage.HALLUCINATION_NOT_FOUND)
        return record

    # ---------------- Detection ----------------

    async def record_detections(
        self, entity: GroundTruthEntity, records: Iterable[EvaluationRecord]
    ) -> list[HallucinationRecord]:
        """
        Open a record for every inaccuracy a real (non-fallback) evaluation
        reported, unless the same engine already has an open/verifying record
        for an equivalent claim.
        """
        active = await self._hallucinations.list_for_entity(
            entity.tenant_id, entity.id, statuses=ACTIVE_STATUSES
        )
        created: list[HallucinationRecord] = []
        for rec in records:
            if rec.is_fallback:
                continue
            for claim in rec.inaccuracies:
                known = [h for h in (*active, *created) if h.engine is rec.engine]
                if any(claim_still_present(h.claim_text, [claim], self._prefix) for h in known):
                    continue
                category = categorize(claim)
                h = HallucinationRecord(
                    id=str(uuid4()),
                    tenant_id=entity.tenant_id,
                    entity_id=entity.id,
                    engine=rec.engine,
                    claim_text=claim,
                    expected_truth=expected_truth_for(category, entity),
                    severity=severity_for(category),
                    category=category,
                    correction_status=CorrectionStatus.open,
                    detected_at=rec.created_at,
                    last_seen_at=rec.created_at,
                )
                await self._hallucinations.create(h)
                created.append(h)

        if created:
            logger.info(
                "lifecycle.detected entity=%s count=%d", entity.id, len(created)
            )
        return created

    # ---------------- Manual status changes ----------------

    async def set_status(
        self, tenant_id: str, record_id: str, target: CorrectionStatus
    ) -> HallucinationRecord:
        """
        Dismiss or reopen. Setting the status a record already has is a no-op
        (dismissing twice does not move resolved_at).
        """
        if target not in MANUAL_TARGETS:
            raise AppError.of(ErrorMessage.INVALID_INPUT)

        record = await self._load(tenant_id, record_id)
        current = record.correction_status
        if current is target:
            logger.info("lifecycle.status.noop id=%s status=%s", record_id, target.value)
            return record
        if current not in MANUAL_TARGETS[target] or not can_transition(current, target):
            raise InvalidTransition(current.value, target.value)

        now = self._clock()
        resolved_at = now if target is CorrectionStatus.dismissed else None
        result = await self._hallucinations.transition(
            tenant_id,
            record_id,
            expected=[current],
            target=target,
            resolved_at=resolved_at,
        )
        if result is TransitionResult.missing:
            raise AppError.of(ErrorMessage.HALLUCINATION_NOT_FOUND)
        if result is TransitionResult.conflict:
            # Lost a race; fine if the winner landed on the same status.
            latest = await self._load(tenant_id, record_id)
            if latest.correction_status is target:
                return latest
            raise InvalidTransition(latest.correction_status.value, target.value)

        logger.info(
            "lifecycle.status id=%s from=%s to=%s", record_id, current.value, target.value
        )
        return record.model_copy(
            update={"correction_status": target, "resolved_at": resolved_at}
        )

    async def dismiss(self, tenant_id: str, record_id: str) -> HallucinationRecord:
        return await self.set_status(tenant_id, record_id, CorrectionStatus.dismissed)

    # ---------------- Verification ----------------

    def _cooldown_outcome(self, record_id: str) -> VerificationOutcome:
        logger.info("lifecycle.verify.cooldown id=%s retry_after=%d", record_id, self._cooldown)
        return VerificationOutcome(retry_after_seconds=self._cooldown)

    def _stale(self, record: HallucinationRecord) -> bool:
        """A verification older than the cooldown was abandoned; it may be restarted."""
        if record.verifying_since is None:
            return False
        elapsed = (self._clock() - record.verifying_since).total_seconds()
        return elapsed >= self._cooldown

    async def begin_verification(
        self, tenant_id: str, record_id: str
    ) -> VerificationOutcome:
        """
        open -> verifying. A record already verifying is rejected with the
        cooldown and left untouched, unless its verification started more than
        a cooldown ago. The check-then-set is one atomic write.
        """
        record = await self._load(tenant_id, record_id)
        current = record.correction_status
        if current is CorrectionStatus.verifying:
            if not self._stale(record):
                return self._cooldown_outcome(record_id)
            logger.warning(
                "lifecycle.verify.restart id=%s since=%s",
                record_id,
                record.verifying_since.isoformat(),
            )
        elif not can_transition(current, CorrectionStatus.verifying):
            raise InvalidTransition(current.value, CorrectionStatus.verifying.value)

        now = self._clock()
        result = await self._hallucinations.transition(
            tenant_id,
            record_id,
            expected=[current],
            target=CorrectionStatus.verifying,
            last_seen_at=now,
            verifying_since=now,
        )
        if result is TransitionResult.missing:
            raise AppError.of(ErrorMessage.HALLUCINATION_NOT_FOUND)
        if result is TransitionResult.conflict:
            latest = await self._load(tenant_id, record_id)
            if latest.correction_status is CorrectionStatus.verifying:
                return self._cooldown_outcome(record_id)
            raise InvalidTransition(
                latest.correction_status.value, CorrectionStatus.verifying.value
            )
        return VerificationOutcome(status=CorrectionStatus.verifying)

    async def _settle(
        self, record: HallucinationRecord, target: CorrectionStatus
    ) -> CorrectionStatus:
        now = self._clock()
        stamps: dict[str, datetime] = {"last_seen_at": now}
        if target is CorrectionStatus.fixed:
            stamps["resolved_at"] = now
        result = await self._hallucinations.transition(
            record.tenant_id,
            record.id,
            expected=[CorrectionStatus.verifying],
            target=target,
            **stamps,
        )
        if result is TransitionResult.missing:
            raise AppError.of(ErrorMessage.HALLUCINATION_NOT_FOUND)
        if result is TransitionResult.conflict:
            raise InvalidTransition(CorrectionStatus.verifying.value, target.value)
        logger.info("lifecycle.verify.resolved id=%s status=%s", record.id, target.value)
        return target

    async def _recheck(self, record: HallucinationRecord) -> CorrectionStatus:
        entity = await self._entities.get(record.tenant_id, record.entity_id)
        if entity is None:
            # Nothing left to be wrong about.
            logger.info("lifecycle.verify.entity_gone id=%s", record.id)
            return CorrectionStatus.fixed

        fresh = await self._dispatcher.dispatch_one(entity, record.engine)
        if fresh.is_fallback:
            logger.warning(
                "lifecycle.verify.fallback id=%s engine=%s", record.id, record.engine.value
            )
        still_present = claim_still_present(
            record.claim_text, fresh.inaccuracies, self._prefix
        )
        return CorrectionStatus.open if still_present else CorrectionStatus.fixed

    async def resolve_verification(
        self, tenant_id: str, record_id: str
    ) -> CorrectionStatus:
        """
        verifying -> fixed | open. Re-asks the originating engine with the
        entity's current ground truth and keeps the record open if any fresh
        inaccuracy still carries the original claim's prefix. A re-check that
        fails for any reason returns the record to open and re-raises.
        """
        record = await self._load(tenant_id, record_id)
        if record.correction_status is not CorrectionStatus.verifying:
            raise InvalidTransition(
                record.correction_status.value, CorrectionStatus.fixed.value
            )

        try:
            target = await self._recheck(record)
        except Exception as e:
            logger.error(
                "lifecycle.verify.recheck_failed id=%s err=%s",
                record_id,
                type(e).__name__,
                exc_info=not isinstance(e, DispatchFailed),
            )
            await self._settle(record, CorrectionStatus.open)
            raise
        return await self._settle(record, target)

    async def verify(self, tenant_id: str, record_id: str) -> VerificationOutcome:
        started = await self.begin_verification(tenant_id, record_id)
        if started.cooldown:
            return started
        status = await self.resolve_verification(tenant_id, record_id)
        return VerificationOutcome(status=status)
