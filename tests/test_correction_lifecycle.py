"""
Tests for Correction Lifecycle
==============================

Detection, manual status changes, the verification cooldown, and the
re-check that settles a verifying record as fixed or open.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import (
    OTHER_TENANT,
    TENANT,
    FakeEntityRepository,
    FakeEvaluationRepository,
    StubAdapter,
    make_hallucination,
)
from core.correction_lifecycle import DEFAULT_COOLDOWN_SECONDS, CorrectionLifecycle
from core.dispatcher import EngineDispatcher
from model.engine import Engine
from model.evaluation import EvaluationOutcome, EvaluationRecord
from model.hallucination import Category, CorrectionStatus, Severity
from util.errors import AppError, DispatchFailed, InvalidTransition

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def lifecycle(hallucinations, entities, dispatcher, clock) -> CorrectionLifecycle:
    return CorrectionLifecycle(hallucinations, entities, dispatcher, clock=clock)


def _evaluation(inaccuracies, engine=Engine.openai, is_fallback=False) -> EvaluationRecord:
    return EvaluationRecord(
        id="ev-1",
        tenant_id=TENANT,
        entity_id="loc-1",
        engine=engine,
        accuracy_score=60,
        inaccuracies=inaccuracies,
        is_fallback=is_fallback,
        created_at=T0,
    )


class TestRecordDetections:
    @pytest.mark.asyncio
    async def test_creates_open_records(self, lifecycle, hallucinations, entity) -> None:
        created = await lifecycle.record_detections(
            entity, [_evaluation(["Permanently closed", "Phone is 555-123-4567"])]
        )

        assert len(created) == 2
        status_claim = created[0]
        assert status_claim.correction_status is CorrectionStatus.open
        assert status_claim.category is Category.status
        assert status_claim.severity is Severity.critical
        assert status_claim.detected_at == T0
        assert created[1].expected_truth == "Phone: (470) 546-4866"
        assert len(hallucinations.rows) == 2

    @pytest.mark.asyncio
    async def test_fallback_evaluations_are_skipped(self, lifecycle, hallucinations, entity) -> None:
        created = await lifecycle.record_detections(
            entity, [_evaluation(["Mock evaluation"], is_fallback=True)]
        )
        assert created == []
        assert hallucinations.rows == {}

    @pytest.mark.asyncio
    async def test_active_duplicate_is_not_recreated(self, lifecycle, hallucinations, entity) -> None:
        await hallucinations.create(make_hallucination("Permanently closed on Mondays"))

        created = await lifecycle.record_detections(
            entity, [_evaluation(["permanently closed on Mondays and Sundays"])]
        )

        assert created == []
        assert len(hallucinations.rows) == 1

    @pytest.mark.asyncio
    async def test_same_claim_from_other_engine_is_recorded(
        self, lifecycle, hallucinations, entity
    ) -> None:
        await hallucinations.create(make_hallucination("Permanently closed on Mondays"))

        created = await lifecycle.record_detections(
            entity, [_evaluation(["Permanently closed on Mondays"], engine=Engine.gemini)]
        )
        assert len(created) == 1
        assert created[0].engine is Engine.gemini

    @pytest.mark.asyncio
    async def test_dismissed_claim_is_detected_again(self, lifecycle, hallucinations, entity) -> None:
        await hallucinations.create(
            make_hallucination("Permanently closed on Mondays", CorrectionStatus.dismissed)
        )

        created = await lifecycle.record_detections(
            entity, [_evaluation(["Permanently closed on Mondays"])]
        )
        assert len(created) == 1


class TestSetStatus:
    @pytest.mark.asyncio
    async def test_dismiss_is_idempotent(self, lifecycle, hallucinations, clock) -> None:
        await hallucinations.create(make_hallucination())

        first = await lifecycle.dismiss(TENANT, "h-1")
        clock.now = T0 + timedelta(hours=3)
        second = await lifecycle.dismiss(TENANT, "h-1")

        assert first.correction_status is CorrectionStatus.dismissed
        assert second.resolved_at == T0
        assert hallucinations.rows["h-1"].resolved_at == T0
        assert len(hallucinations.transitions) == 1

    @pytest.mark.asyncio
    async def test_reopen_clears_resolved_at(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination())
        await lifecycle.dismiss(TENANT, "h-1")

        record = await lifecycle.set_status(TENANT, "h-1", CorrectionStatus.open)

        assert record.correction_status is CorrectionStatus.open
        assert hallucinations.rows["h-1"].resolved_at is None

    @pytest.mark.asyncio
    async def test_recurring_can_be_dismissed(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.recurring))

        record = await lifecycle.dismiss(TENANT, "h-1")
        assert record.correction_status is CorrectionStatus.dismissed

    @pytest.mark.asyncio
    async def test_fixed_is_terminal(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.fixed))

        with pytest.raises(InvalidTransition) as exc_info:
            await lifecycle.dismiss(TENANT, "h-1")
        assert exc_info.value.status_code == 409
        assert hallucinations.transitions == []

    @pytest.mark.asyncio
    async def test_verifying_cannot_be_reopened_by_hand(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.verifying))

        with pytest.raises(InvalidTransition):
            await lifecycle.set_status(TENANT, "h-1", CorrectionStatus.open)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [CorrectionStatus.fixed, CorrectionStatus.verifying])
    async def test_lifecycle_owned_targets_rejected(
        self, lifecycle, hallucinations, target
    ) -> None:
        await hallucinations.create(make_hallucination())

        with pytest.raises(AppError) as exc_info:
            await lifecycle.set_status(TENANT, "h-1", target)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_other_tenant_sees_not_found(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination())

        with pytest.raises(AppError) as exc_info:
            await lifecycle.dismiss(OTHER_TENANT, "h-1")
        assert exc_info.value.status_code == 404
        assert hallucinations.rows["h-1"].correction_status is CorrectionStatus.open


class TestVerify:
    @pytest.mark.asyncio
    async def test_claim_gone_marks_fixed(self, lifecycle, hallucinations, adapters) -> None:
        await hallucinations.create(make_hallucination())

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.status is CorrectionStatus.fixed
        assert outcome.cooldown is False
        row = hallucinations.rows["h-1"]
        assert row.resolved_at == T0
        assert row.verifying_since == T0
        assert [t for _, t in hallucinations.transitions] == [
            CorrectionStatus.verifying,
            CorrectionStatus.fixed,
        ]
        assert len(adapters[Engine.openai].calls) == 1
        assert adapters[Engine.gemini].calls == []

    @pytest.mark.asyncio
    async def test_claim_still_present_reopens(self, lifecycle, hallucinations, adapters) -> None:
        await hallucinations.create(make_hallucination("Permanently closed on Mondays"))
        adapters[Engine.openai].outcome = EvaluationOutcome(
            accuracy_score=40,
            inaccuracies=["It is permanently closed on Mondays and Tuesdays"],
            raw_reply="...",
        )

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.status is CorrectionStatus.open
        row = hallucinations.rows["h-1"]
        assert row.correction_status is CorrectionStatus.open
        assert row.resolved_at is None
        assert row.last_seen_at == T0

    @pytest.mark.asyncio
    async def test_cooldown_leaves_record_untouched(
        self, lifecycle, hallucinations, adapters
    ) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.verifying))
        before = hallucinations.rows["h-1"]

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.cooldown is True
        assert outcome.status is None
        assert outcome.retry_after_seconds == DEFAULT_COOLDOWN_SECONDS
        assert hallucinations.rows["h-1"] == before
        assert hallucinations.transitions == []
        assert all(a.calls == [] for a in adapters.values())

    @pytest.mark.asyncio
    async def test_concurrent_begin_gives_one_cooldown(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination())

        first, second = await asyncio.gather(
            lifecycle.begin_verification(TENANT, "h-1"),
            lifecycle.begin_verification(TENANT, "h-1"),
        )

        assert sorted([first.cooldown, second.cooldown]) == [False, True]
        assert hallucinations.transitions == [("h-1", CorrectionStatus.verifying)]

    @pytest.mark.asyncio
    async def test_recurring_can_be_verified(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.recurring))

        outcome = await lifecycle.verify(TENANT, "h-1")
        assert outcome.status is CorrectionStatus.fixed

    @pytest.mark.asyncio
    async def test_dismissed_cannot_be_verified(self, lifecycle, hallucinations) -> None:
        await hallucinations.create(make_hallucination(status=CorrectionStatus.dismissed))

        with pytest.raises(InvalidTransition):
            await lifecycle.verify(TENANT, "h-1")

    @pytest.mark.asyncio
    async def test_entity_gone_marks_fixed(self, lifecycle, hallucinations, adapters) -> None:
        await hallucinations.create(make_hallucination(entity_id="loc-deleted"))

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.status is CorrectionStatus.fixed
        assert adapters[Engine.openai].calls == []

    @pytest.mark.asyncio
    async def test_dispatch_failure_reopens_and_raises(
        self, hallucinations, entities, adapters, clock
    ) -> None:
        evaluations = FakeEvaluationRepository(fail_for=[Engine.openai])
        dispatcher = EngineDispatcher(adapters, evaluations, timeout=2.0)
        lifecycle = CorrectionLifecycle(hallucinations, entities, dispatcher, clock=clock)
        await hallucinations.create(make_hallucination())

        with pytest.raises(DispatchFailed):
            await lifecycle.verify(TENANT, "h-1")
        assert hallucinations.rows["h-1"].correction_status is CorrectionStatus.open

    @pytest.mark.asyncio
    async def test_fallback_recheck_counts_as_fresh(
        self, lifecycle, hallucinations, adapters
    ) -> None:
        await hallucinations.create(make_hallucination("Permanently closed on Mondays"))
        adapters[Engine.openai] = StubAdapter(
            EvaluationOutcome(
                accuracy_score=80,
                inaccuracies=["Mock evaluation: no OPENAI_API_KEY is configured."],
                raw_reply="[MOCK]",
                is_fallback=True,
            )
        )

        outcome = await lifecycle.verify(TENANT, "h-1")
        assert outcome.status is CorrectionStatus.fixed

    @pytest.mark.asyncio
    async def test_unknown_record(self, lifecycle) -> None:
        with pytest.raises(AppError) as exc_info:
            await lifecycle.verify(TENANT, "missing")
        assert exc_info.value.status_code == 404


class FlakyEntityRepository(FakeEntityRepository):
    """Raises on reads while `down` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.down = True

    async def get(self, tenant_id, entity_id):
        if self.down:
            raise ConnectionError("storage unavailable")
        return await super().get(tenant_id, entity_id)


class TestVerificationRecovery:
    @pytest.mark.asyncio
    async def test_storage_error_reopens_and_allows_retry(
        self, hallucinations, dispatcher, entity, clock
    ) -> None:
        entities = FlakyEntityRepository()
        await entities.put(entity)
        lifecycle = CorrectionLifecycle(hallucinations, entities, dispatcher, clock=clock)
        await hallucinations.create(make_hallucination())

        with pytest.raises(ConnectionError):
            await lifecycle.verify(TENANT, "h-1")
        assert hallucinations.rows["h-1"].correction_status is CorrectionStatus.open

        entities.down = False
        outcome = await lifecycle.verify(TENANT, "h-1")
        assert outcome.status is CorrectionStatus.fixed

    @pytest.mark.asyncio
    async def test_abandoned_verification_can_restart(
        self, lifecycle, hallucinations, adapters
    ) -> None:
        stuck = make_hallucination(status=CorrectionStatus.verifying).model_copy(
            update={"verifying_since": T0 - timedelta(seconds=DEFAULT_COOLDOWN_SECONDS + 1)}
        )
        await hallucinations.create(stuck)

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.status is CorrectionStatus.fixed
        assert hallucinations.rows["h-1"].verifying_since == T0
        assert len(adapters[Engine.openai].calls) == 1

    @pytest.mark.asyncio
    async def test_recent_verification_still_cools_down(
        self, lifecycle, hallucinations, adapters
    ) -> None:
        recent = make_hallucination(status=CorrectionStatus.verifying).model_copy(
            update={"verifying_since": T0 - timedelta(hours=1)}
        )
        await hallucinations.create(recent)

        outcome = await lifecycle.verify(TENANT, "h-1")

        assert outcome.cooldown is True
        assert hallucinations.transitions == []
        assert adapters[Engine.openai].calls == []
