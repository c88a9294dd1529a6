# controller/controller_dependencies.py
import re
from functools import lru_cache
from fastapi import Header
from config.engines import EngineConfig
from config.settings import settings
from core.correction_lifecycle import CorrectionLifecycle
from core.dispatcher import EngineDispatcher
from core.engine_adapters import build_adapters
from model.api import ID_PATTERN
from model.auth import AuthContext
from repository.entity_repository import EntityRepository
from repository.evaluation_repository import EvaluationRepository
from repository.hallucination_repository import HallucinationRecordRepository
from service.audit_service import AuditService
from service.correction_service import CorrectionService
from service.extraction_service import ExtractionService
from util.constants import Headers
from util.enums import ErrorMessage
from util.errors import AppError
from util.logger import tenant_ctx

_TENANT_RE = re.compile(ID_PATTERN)


async def get_auth_context(
    tenant_id: str | None = Header(default=None, alias=Headers.TENANT_ID),
) -> AuthContext:
    # Rejected before any external call or write.
    if not tenant_id or not _TENANT_RE.match(tenant_id):
        raise AppError.of(ErrorMessage.UNAUTHORIZED)
    tenant_ctx.set(tenant_id)
    return AuthContext(tenant_id=tenant_id)


@lru_cache(maxsize=1)
def get_engine_config() -> EngineConfig:
    return EngineConfig.from_settings(settings)


def _lifecycle(
    entities: EntityRepository,
    evaluations: EvaluationRepository,
    hallucinations: HallucinationRecordRepository,
) -> tuple[EngineDispatcher, CorrectionLifecycle]:
    config = get_engine_config()
    dispatcher = EngineDispatcher(
        build_adapters(config), evaluations, timeout=config.dispatch_timeout
    )
    lifecycle = CorrectionLifecycle(
        hallucinations,
        entities,
        dispatcher,
        cooldown_seconds=settings.VERIFY_COOLDOWN_SECONDS,
        prefix_chars=settings.CLAIM_MATCH_PREFIX_CHARS,
    )
    return dispatcher, lifecycle


def get_audit_service() -> AuditService:
    _entities = EntityRepository()
    _evaluations = EvaluationRepository()
    _hallucinations = HallucinationRecordRepository()
    _dispatcher, _lc = _lifecycle(_entities, _evaluations, _hallucinations)
    return AuditService(_entities, _evaluations, _hallucinations, _dispatcher, _lc)


def get_correction_service() -> CorrectionService:
    _entities = EntityRepository()
    _hallucinations = HallucinationRecordRepository()
    _, _lc = _lifecycle(_entities, EvaluationRepository(), _hallucinations)
    return CorrectionService(_lc, _hallucinations, _entities)


def get_extraction_service() -> ExtractionService:
    return ExtractionService()
