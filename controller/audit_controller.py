# controller/audit_controller.py
from fastapi import APIRouter, Depends, Path, status
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from controller.controller_dependencies import get_audit_service, get_auth_context
from model.api import (
    ID_PATTERN,
    RunMultiAuditRequest,
    RunMultiAuditResponse,
    RunSingleAuditRequest,
    RunSingleAuditResponse,
)
from model.audit import TruthAuditResult
from model.auth import AuthContext
from service.audit_service import AuditService
from util.constants import InternalURIs

# Audits spend provider calls; throttle them per client.
audit_rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)

audit_router = APIRouter()


@audit_router.post(
    InternalURIs.AUDIT_SINGLE,
    response_model=RunSingleAuditResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(audit_rate_limiter)],
)
async def run_single_engine_audit(
    payload: RunSingleAuditRequest,
    ctx: AuthContext = Depends(get_auth_context),
    service: AuditService = Depends(get_audit_service),
) -> RunSingleAuditResponse:
    return await service.run_single_engine_audit(ctx, payload.entityId, payload.engine)


@audit_router.post(
    InternalURIs.AUDIT_MULTI,
    response_model=RunMultiAuditResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(audit_rate_limiter)],
)
async def run_multi_engine_audit(
    payload: RunMultiAuditRequest,
    ctx: AuthContext = Depends(get_auth_context),
    service: AuditService = Depends(get_audit_service),
) -> RunMultiAuditResponse:
    return await service.run_multi_engine_audit(ctx, payload.entityId)


@audit_router.get(InternalURIs.TRUTH_AUDIT, response_model=TruthAuditResult)
async def get_truth_audit_result(
    entity_id: str = Path(pattern=ID_PATTERN),
    ctx: AuthContext = Depends(get_auth_context),
    service: AuditService = Depends(get_audit_service),
) -> TruthAuditResult:
    return await service.get_truth_audit_result(ctx, entity_id)
