# model/entity.py
from typing import Any
from pydantic import BaseModel, Field


class GroundTruthEntity(BaseModel):
    """
    Owner-attested facts about the audited business. Read-only input to every
    audit; only the owner mutates it, outside this service.
    """

    id: str
    tenant_id: str
    business_name: str = Field(min_length=1)
    address_line1: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    phone: str | None = None
    website_url: str | None = None
    hours_data: dict[str, Any] | None = None
    amenities: dict[str, Any] | None = None

    @property
    def address(self) -> str:
        parts = [self.address_line1, self.city, self.state, self.zip]
        return ", ".join(p for p in parts if p)
