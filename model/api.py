# model/api.py
from pydantic import BaseModel, Field
from typing import Literal
from model.engine import Engine
from model.extraction import ConfidenceTier, ExtractedItem, ItemTriage
from model.hallucination import CorrectionStatus, HallucinationRecord

ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


class RunSingleAuditRequest(BaseModel):
    entityId: str = Field(pattern=ID_PATTERN)
    engine: Engine


class RunSingleAuditResponse(BaseModel):
    ok: bool = True
    recordId: str
    accuracyScore: int | None = None
    hallucinationsDetected: int = 0


class RunMultiAuditRequest(BaseModel):
    entityId: str = Field(pattern=ID_PATTERN)


class RunMultiAuditResponse(BaseModel):
    ok: bool = True
    recordsWritten: int
    hallucinationsDetected: int = 0


class VerifyCorrectionResponse(BaseModel):
    ok: bool = True
    newStatus: Literal["fixed", "open"]


class SetCorrectionStatusRequest(BaseModel):
    # Only open/dismissed are accepted; verifying/fixed are owned by verification.
    status: CorrectionStatus


class SetCorrectionStatusResponse(BaseModel):
    ok: bool = True
    status: CorrectionStatus


class HallucinationListResponse(BaseModel):
    items: list[HallucinationRecord]


class ClassifyExtractionRequest(BaseModel):
    items: list[ExtractedItem] = Field(min_length=1, max_length=500)
    certified: bool = False


class ClassifyExtractionResponse(BaseModel):
    items: list[ItemTriage]
    counts: dict[ConfidenceTier, int]
    blockedIds: list[str]
    canPublish: bool
