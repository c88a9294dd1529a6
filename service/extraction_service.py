# service/extraction_service.py
import logging
from typing import Sequence
from core.confidence_triage import triage
from model.api import ClassifyExtractionResponse
from model.extraction import ConfidenceTier, ExtractedItem

logger = logging.getLogger(__name__)


class ExtractionService:
    """
    Review-before-publish gate for machine-extracted items (e.g. digitized
    menus). Nothing is persisted here; the caller publishes only on canPublish.
    """

    def classify_items(
        self, items: Sequence[ExtractedItem], certified: bool
    ) -> ClassifyExtractionResponse:
        result = triage(items, certified)
        logger.info(
            "extraction.triage items=%d auto=%d review=%d blocked=%d certified=%s publish=%s",
            len(result.items),
            result.counts[ConfidenceTier.auto],
            result.counts[ConfidenceTier.review],
            result.counts[ConfidenceTier.blocked],
            certified,
            result.can_publish,
        )
        return ClassifyExtractionResponse(
            items=result.items,
            counts=result.counts,
            blockedIds=result.blocked_ids,
            canPublish=result.can_publish,
        )
