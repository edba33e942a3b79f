# fasttrack/application/dtos/market_dto.py

"""
DTOs for market configuration.

Input fields are loosely typed on purpose: field rules live in the
market draft and come back as per-field errors.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fasttrack.application.dtos.base_dto import CustomBaseModel
from fasttrack.application.dtos.document_dto import DocumentOutput
from fasttrack.domain.models.market_domain_model import MarketDraft
from fasttrack.shared.utils.clock import as_utc


class MarketDraftInput(CustomBaseModel):
    """First configuration step."""
    title: Optional[str] = Field(None, description="Market title")
    description: Optional[str] = Field(None, description="Market description")
    deadline: Optional[datetime] = Field(None, description="Application deadline, timezone-aware")
    market_type: Optional[str] = Field(None, description="supplies, services or works")
    optional_document_ids: List[int] = Field(default_factory=list, description="Optional documents to require")

    def to_draft(self) -> MarketDraft:
        return MarketDraft(
            title=self.title,
            description=self.description,
            deadline=self.deadline,
            market_type=self.market_type,
            optional_document_ids=list(self.optional_document_ids),
        )


class DraftPreviewOutput(BaseModel):
    draft_token: str = Field(..., description="Signed continuation token for the second step")
    title: Optional[str] = None
    deadline: Optional[datetime] = None
    market_type: Optional[str] = None
    mandatory_documents: List[DocumentOutput] = Field(default_factory=list)
    optional_documents: List[DocumentOutput] = Field(default_factory=list)


class MarketCreateInput(BaseModel):
    """Second configuration step."""
    draft_token: str = Field(..., description="Token returned by the first step")
    optional_document_ids: List[int] = Field(default_factory=list, description="Chosen optional documents")


class RequirementOutput(BaseModel):
    document_id: int
    document_name: str
    document_description: Optional[str] = None
    required: bool

    model_config = ConfigDict(from_attributes=True)


class MarketOutput(BaseModel):
    fast_track_id: str = Field(..., description="Public market identifier")
    title: str
    description: str
    deadline: datetime
    market_type: str
    active: bool
    requirements: List[RequirementOutput] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("deadline")
    def deadline_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)
