"""
Pytest Fixtures
===============

Shared fixtures for all test modules. Environment variables are set before
any application module is imported, since config.settings validates on import.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import Iterable, Optional

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_TIMES", "100")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")
os.environ.setdefault("FALLBACK_DELAY_SECONDS", "0.01")

import pytest  # noqa: E402

from config.engines import EngineConfig, EngineEndpoint  # noqa: E402
from core.dispatcher import EngineDispatcher  # noqa: E402
from model.engine import Engine  # noqa: E402
from model.entity import GroundTruthEntity  # noqa: E402
from model.evaluation import EvaluationOutcome, EvaluationRecord  # noqa: E402
from model.hallucination import (  # noqa: E402
    CorrectionStatus,
    HallucinationRecord,
    Severity,
)
from repository.hallucination_repository import TransitionResult  # noqa: E402

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"


# -----------------------------------------------------------------------------
# In-memory repositories (same surface as the Redis ones)
# -----------------------------------------------------------------------------


class FakeEntityRepository:
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], GroundTruthEntity] = {}

    async def get(self, tenant_id: str, entity_id: str) -> Optional[GroundTruthEntity]:
        return self.rows.get((tenant_id, entity_id))

    async def put(self, entity: GroundTruthEntity) -> None:
        self.rows[(entity.tenant_id, entity.id)] = entity


class FakeEvaluationRepository:
    def __init__(self, fail_for: Iterable[Engine] = ()) -> None:
        self.rows: list[EvaluationRecord] = []
        self.fail_for = set(fail_for)

    async def add(self, record: EvaluationRecord) -> None:
        if record.engine in self.fail_for:
            raise ConnectionError("storage unavailable")
        self.rows.append(record)

    async def latest_by_engine(
        self, tenant_id: str, entity_id: str
    ) -> dict[Engine, EvaluationRecord]:
        out: dict[Engine, EvaluationRecord] = {}
        for rec in sorted(self.rows, key=lambda r: r.created_at):
            if rec.tenant_id == tenant_id and rec.entity_id == entity_id:
                out[rec.engine] = rec
        return out


class FakeHallucinationRepository:
    def __init__(self) -> None:
        self.rows: dict[str, HallucinationRecord] = {}
        self.transitions: list[tuple[str, CorrectionStatus]] = []

    async def create(self, record: HallucinationRecord) -> None:
        self.rows[record.id] = record

    async def get(self, tenant_id: str, record_id: str) -> Optional[HallucinationRecord]:
        rec = self.rows.get(record_id)
        if rec is None or rec.tenant_id != tenant_id:
            return None
        return rec

    async def list_for_entity(self, tenant_id, entity_id, statuses=None):
        wanted = set(statuses) if statuses is not None else None
        rows = [
            r
            for r in self.rows.values()
            if r.tenant_id == tenant_id
            and r.entity_id == entity_id
            and (wanted is None or r.correction_status in wanted)
        ]
        return sorted(rows, key=lambda r: r.detected_at, reverse=True)

    async def has_fixed(self, tenant_id: str, entity_id: str) -> bool:
        return bool(
            await self.list_for_entity(
                tenant_id, entity_id, statuses=[CorrectionStatus.fixed]
            )
        )

    async def transition(self, tenant_id, record_id, *, expected, target, **stamps):
        rec = self.rows.get(record_id)
        if rec is None or rec.tenant_id != tenant_id:
            return TransitionResult.missing
        if rec.correction_status not in set(expected):
            return TransitionResult.conflict
        self.rows[record_id] = rec.model_copy(
            update={"correction_status": target, **stamps}
        )
        self.transitions.append((record_id, target))
        return TransitionResult.applied


# -----------------------------------------------------------------------------
# Adapters & dispatcher
# -----------------------------------------------------------------------------


class StubAdapter:
    """Returns a canned outcome (or raises) and counts calls."""

    def __init__(
        self,
        outcome: EvaluationOutcome | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.outcome = outcome or EvaluationOutcome(
            accuracy_score=90, inaccuracies=[], raw_reply="ok"
        )
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def evaluate(self, prompt: str) -> EvaluationOutcome:
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.outcome


def make_config(keys: dict[Engine, str | None] | None = None, **kw) -> EngineConfig:
    keys = keys or {}
    endpoints = {
        e: EngineEndpoint(url=f"https://{e.value}.test/v1", model=f"{e.value}-model", api_key=keys.get(e))
        for e in Engine
    }
    params = {"fallback_delay": 0.05, "http_timeout": 2.0, "dispatch_timeout": 2.0, "system_prompt": "SYS"}
    params.update(kw)
    return EngineConfig(endpoints=endpoints, **params)


@pytest.fixture
def entity() -> GroundTruthEntity:
    return GroundTruthEntity(
        id="loc-1",
        tenant_id=TENANT,
        business_name="Charcoal N Chill",
        address_line1="11950 Jones Bridge Rd",
        city="Alpharetta",
        state="GA",
        zip="30005",
        phone="(470) 546-4866",
        website_url="https://charcoalnchill.com",
        hours_data={"monday": "17:00-01:00", "tuesday": "17:00-01:00"},
        amenities={"hookah": True, "outdoor_seating": True},
    )


@pytest.fixture
def entities(entity: GroundTruthEntity) -> FakeEntityRepository:
    repo = FakeEntityRepository()
    repo.rows[(entity.tenant_id, entity.id)] = entity
    return repo


@pytest.fixture
def evaluations() -> FakeEvaluationRepository:
    return FakeEvaluationRepository()


@pytest.fixture
def hallucinations() -> FakeHallucinationRepository:
    return FakeHallucinationRepository()


@pytest.fixture
def adapters() -> dict[Engine, StubAdapter]:
    return {e: StubAdapter() for e in Engine}


@pytest.fixture
def dispatcher(adapters, evaluations) -> EngineDispatcher:
    return EngineDispatcher(adapters, evaluations, timeout=2.0)


def make_hallucination(
    claim: str = "Permanently closed on Mondays",
    status: CorrectionStatus = CorrectionStatus.open,
    *,
    record_id: str = "h-1",
    tenant_id: str = TENANT,
    entity_id: str = "loc-1",
    engine: Engine = Engine.openai,
) -> HallucinationRecord:
    return HallucinationRecord(
        id=record_id,
        tenant_id=tenant_id,
        entity_id=entity_id,
        engine=engine,
        claim_text=claim,
        expected_truth="Open Monday 5pm to 1am",
        severity=Severity.high,
        correction_status=status,
        detected_at=datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc),
    )
