# service/correction_service.py
import logging
from core.correction_lifecycle import CorrectionLifecycle, VerificationOutcome
from model.auth import AuthContext
from model.hallucination import CorrectionStatus, HallucinationRecord
from repository.entity_repository import EntityRepository
from repository.hallucination_repository import HallucinationRecordRepository
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class CorrectionService:
    """Tenant-scoped entry points onto the correction lifecycle."""

    def __init__(
        self,
        lifecycle: CorrectionLifecycle,
        hallucinations: HallucinationRecordRepository,
        entities: EntityRepository,
    ) -> None:
        self._lifecycle = lifecycle
        self._hallucinations = hallucinations
        self._entities = entities

    async def verify_correction(
        self, ctx: AuthContext, hallucination_id: str
    ) -> VerificationOutcome:
        outcome = await self._lifecycle.verify(ctx.tenant_id, hallucination_id)
        logger.info(
            "correction.verify id=%s status=%s cooldown=%s",
            hallucination_id,
            outcome.status.value if outcome.status else None,
            outcome.cooldown,
        )
        return outcome

    async def set_correction_status(
        self, ctx: AuthContext, hallucination_id: str, target: CorrectionStatus
    ) -> HallucinationRecord:
        return await self._lifecycle.set_status(ctx.tenant_id, hallucination_id, target)

    async def list_hallucinations(
        self,
        ctx: AuthContext,
        entity_id: str,
        status: CorrectionStatus | None = None,
    ) -> list[HallucinationRecord]:
        if await self._entities.get(ctx.tenant_id, entity_id) is None:
            raise AppError.of(ErrorMessage.ENTITY_NOT_FOUND)
        return await self._hallucinations.list_for_entity(
            ctx.tenant_id, entity_id, statuses=[status] if status else None
        )
