# fasttrack/domain/models/application_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

# Contact fields a candidate may edit while the application is in progress
CONTACT_FIELDS = ("company_name", "email", "phone", "contact_person")

# Contact fields that must be present before submission
REQUIRED_CONTACT_FIELDS = ("email", "contact_person")


class ApplicationStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class RequirementCheck:
    """One row of an application checklist."""
    document_id: int
    document_name: str
    required: bool
    fulfilled: bool


@dataclass
class SubmissionResult:
    """Outcome of a successful submission."""
    application_id: int
    submission_id: str
    submitted_at: datetime
    status: ApplicationStatus = ApplicationStatus.SUBMITTED
    attestation_path: Optional[str] = None
    dossier_path: Optional[str] = None
    artifact_errors: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when the submission committed but an artifact could not be produced."""
        return bool(self.artifact_errors)


@dataclass
class ArtifactReport:
    """Outcome of one artifact (re)generation pass."""
    application_id: int
    attestation_path: Optional[str] = None
    dossier_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.errors and bool(self.attestation_path) and bool(self.dossier_path)
