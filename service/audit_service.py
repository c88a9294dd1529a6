# service/audit_service.py
import logging
from typing import Sequence
from core.correction_lifecycle import CorrectionLifecycle
from core.dispatcher import EngineDispatcher
from core.score_aggregator import build_truth_audit_result
from model.api import RunMultiAuditResponse, RunSingleAuditResponse
from model.audit import TruthAuditResult
from model.auth import AuthContext
from model.engine import Engine
from model.entity import GroundTruthEntity
from model.evaluation import EvaluationRecord
from model.hallucination import HallucinationRecord
from repository.entity_repository import EntityRepository
from repository.evaluation_repository import EvaluationRepository
from repository.hallucination_repository import HallucinationRecordRepository
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(
        self,
        entities: EntityRepository,
        evaluations: EvaluationRepository,
        hallucinations: HallucinationRecordRepository,
        dispatcher: EngineDispatcher,
        lifecycle: CorrectionLifecycle,
    ) -> None:
        self._entities = entities
        self._evaluations = evaluations
        self._hallucinations = hallucinations
        self._dispatcher = dispatcher
        self._lifecycle = lifecycle

    async def _entity(self, ctx: AuthContext, entity_id: str) -> GroundTruthEntity:
        entity = await self._entities.get(ctx.tenant_id, entity_id)
        if entity is None:
            logger.warning("audit.entity.missing entity=%s", entity_id)
            raise AppError.of(ErrorMessage.ENTITY_NOT_FOUND)
        return entity

    async def _detect(
        self, entity: GroundTruthEntity, records: Sequence[EvaluationRecord]
    ) -> list[HallucinationRecord]:
        """
        Evaluations are already persisted here, so a failed hallucination write
        is logged and reported as zero detections rather than failing the audit.
        """
        try:
            return await self._lifecycle.record_detections(entity, records)
        except Exception as e:
            logger.error(
                "audit.detect.error entity=%s err=%s", entity.id, type(e).__name__, exc_info=True
            )
            return []

    async def run_single_engine_audit(
        self, ctx: AuthContext, entity_id: str, engine: Engine
    ) -> RunSingleAuditResponse:
        entity = await self._entity(ctx, entity_id)
        record = await self._dispatcher.dispatch_one(entity, engine)
        detected = await self._detect(entity, [record])
        logger.info(
            "audit.single.ok entity=%s engine=%s record=%s", entity_id, engine.value, record.id
        )
        return RunSingleAuditResponse(
            recordId=record.id,
            accuracyScore=record.accuracy_score,
            hallucinationsDetected=len(detected),
        )

    async def run_multi_engine_audit(
        self, ctx: AuthContext, entity_id: str
    ) -> RunMultiAuditResponse:
        """
        Fan out to every engine. Succeeds when at least one engine's record was
        written; DispatchFailed (502) only when none were.
        """
        entity = await self._entity(ctx, entity_id)
        records = await self._dispatcher.dispatch_all(entity)
        detected = await self._detect(entity, records)
        logger.info(
            "audit.multi.ok entity=%s written=%d detected=%d",
            entity_id,
            len(records),
            len(detected),
        )
        return RunMultiAuditResponse(
            recordsWritten=len(records), hallucinationsDetected=len(detected)
        )

    async def get_truth_audit_result(
        self, ctx: AuthContext, entity_id: str
    ) -> TruthAuditResult:
        entity = await self._entity(ctx, entity_id)
        latest = await self._evaluations.latest_by_engine(ctx.tenant_id, entity.id)
        has_fix = await self._hallucinations.has_fixed(ctx.tenant_id, entity.id)
        result = build_truth_audit_result(
            {engine: rec.accuracy_score for engine, rec in latest.items()}, has_fix
        )
        logger.info(
            "audit.truth_score entity=%s score=%s reporting=%d consensus=%s",
            entity_id,
            result.truth_score,
            result.engines_reporting,
            result.consensus,
        )
        return result
