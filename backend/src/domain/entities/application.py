"""
Application Domain Entity
Immutable application-to-project business object
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..enums import ApplicationStatus
from ..value_objects import IdentitySnapshot


@dataclass(frozen=True)
class Application:
    """Application root record - immutable"""

    id: str
    project_id: str
    applicant: IdentitySnapshot

    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: Optional[datetime] = None

    @property
    def applicant_id(self) -> str:
        return self.applicant.user_id

    def mirror(self) -> "ApplicationMirror":
        """The per-user copy this root should have"""
        return ApplicationMirror(
            application_id=self.id,
            applicant_id=self.applicant_id,
            project_id=self.project_id,
            status=self.status,
            applied_at=self.applied_at,
        )

    def __str__(self) -> str:
        return f"Application({self.id}, status={self.status.value})"


@dataclass(frozen=True)
class ApplicationMirror:
    """Per-user copy stored under users/{applicantId}/applications"""

    application_id: str
    applicant_id: str
    project_id: str
    status: ApplicationStatus
    applied_at: Optional[datetime] = None

    def diverges_from(self, root: Application) -> bool:
        return (
            self.project_id != root.project_id
            or self.status != root.status
        )
