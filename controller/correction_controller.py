# controller/correction_controller.py
from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from controller.controller_dependencies import get_auth_context, get_correction_service
from model.api import (
    ID_PATTERN,
    HallucinationListResponse,
    SetCorrectionStatusRequest,
    SetCorrectionStatusResponse,
    VerifyCorrectionResponse,
)
from model.auth import AuthContext
from model.hallucination import CorrectionStatus
from service.correction_service import CorrectionService
from util.constants import Headers, InternalURIs
from util.enums import ErrorMessage
from util.types import CooldownPayload

correction_router = APIRouter()


@correction_router.post(
    InternalURIs.VERIFY_CORRECTION,
    response_model=VerifyCorrectionResponse,
    responses={429: {"description": "Verification cooldown active"}},
)
async def verify_correction(
    hallucination_id: str = Path(pattern=ID_PATTERN),
    ctx: AuthContext = Depends(get_auth_context),
    service: CorrectionService = Depends(get_correction_service),
):
    outcome = await service.verify_correction(ctx, hallucination_id)
    if outcome.cooldown:
        info = ErrorMessage.COOLDOWN_ACTIVE.value
        body: CooldownPayload = {
            "ok": False,
            "error": "cooldown_active",
            "message": info.message,
            "retryAfterSeconds": outcome.retry_after_seconds,
        }
        return JSONResponse(
            status_code=info.http_status,
            content=body,
            headers={Headers.RETRY_AFTER: str(outcome.retry_after_seconds)},
        )
    return VerifyCorrectionResponse(newStatus=outcome.status.value)


@correction_router.post(
    InternalURIs.CORRECTION_STATUS, response_model=SetCorrectionStatusResponse
)
async def set_correction_status(
    payload: SetCorrectionStatusRequest,
    hallucination_id: str = Path(pattern=ID_PATTERN),
    ctx: AuthContext = Depends(get_auth_context),
    service: CorrectionService = Depends(get_correction_service),
) -> SetCorrectionStatusResponse:
    record = await service.set_correction_status(ctx, hallucination_id, payload.status)
    return SetCorrectionStatusResponse(status=record.correction_status)


@correction_router.get(
    InternalURIs.ENTITY_HALLUCINATIONS, response_model=HallucinationListResponse
)
async def list_hallucinations(
    entity_id: str = Path(pattern=ID_PATTERN),
    status: CorrectionStatus | None = None,
    ctx: AuthContext = Depends(get_auth_context),
    service: CorrectionService = Depends(get_correction_service),
) -> HallucinationListResponse:
    items = await service.list_hallucinations(ctx, entity_id, status)
    return HallucinationListResponse(items=items)
