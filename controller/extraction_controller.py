# controller/extraction_controller.py
from fastapi import APIRouter, Depends
from controller.controller_dependencies import get_auth_context, get_extraction_service
from model.api import ClassifyExtractionRequest, ClassifyExtractionResponse
from model.auth import AuthContext
from service.extraction_service import ExtractionService
from util.constants import InternalURIs

extraction_router = APIRouter()


@extraction_router.post(
    InternalURIs.CLASSIFY_EXTRACTION, response_model=ClassifyExtractionResponse
)
async def classify_extraction_items(
    payload: ClassifyExtractionRequest,
    _: AuthContext = Depends(get_auth_context),
    service: ExtractionService = Depends(get_extraction_service),
) -> ClassifyExtractionResponse:
    return service.classify_items(payload.items, payload.certified)
