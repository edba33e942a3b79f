# fasttrack/application/dtos/application_dto.py

"""
DTOs for candidate applications.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fasttrack.application.dtos.base_dto import CustomBaseModel


class ApplicationStartInput(BaseModel):
    siret: str = Field(..., description="14-digit company identifier, spaces allowed")
    company_name: Optional[str] = Field(None, description="Company name, defaults from the SIRET")


class ContactUpdateInput(CustomBaseModel):
    """Only the fields present in the request are changed; an empty string clears one."""
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None


class ChecklistRowOutput(BaseModel):
    document_id: int
    document_name: str
    required: bool
    fulfilled: bool

    model_config = ConfigDict(from_attributes=True)


class AttachmentOutput(BaseModel):
    document_id: int
    filename: str
    content_type: str
    size: int
    sha256: str
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationOutput(BaseModel):
    id: int
    fast_track_id: str
    siret: str
    siret_display: str
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    status: str
    submission_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    complete: bool
    missing_fields: List[str] = Field(default_factory=list)
    missing_document_ids: List[int] = Field(default_factory=list)
    checklist: List[ChecklistRowOutput] = Field(default_factory=list)
    attachments: List[AttachmentOutput] = Field(default_factory=list)


class SubmissionOutput(BaseModel):
    submission_id: str
    submitted_at: datetime
    status: str
    attestation_available: bool
    dossier_available: bool
    degraded: bool = Field(..., description="Submitted, artifacts pending regeneration")
