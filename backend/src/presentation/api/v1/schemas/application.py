"""
Application Schemas
Request/response models for applying and reviewing applications
"""
from datetime import datetime
from typing import Optional

from domain.entities import Application
from domain.enums import ApplicationStatus
from .project import CamelModel


class ApplyResponse(CamelModel):
    application_id: str
    already_applied: bool


class StatusUpdateRequest(CamelModel):
    status: str


class ApplicationResponse(CamelModel):
    id: str
    project_id: str
    applicant_id: str
    applicant_name: str = ""
    applicant_username: str = ""
    applicant_image: str = ""
    status: ApplicationStatus
    applied_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, application: Application) -> "ApplicationResponse":
        return cls(
            id=application.id,
            project_id=application.project_id,
            applicant_id=application.applicant_id,
            applicant_name=application.applicant.display_name,
            applicant_username=application.applicant.username,
            applicant_image=application.applicant.avatar_url,
            status=application.status,
            applied_at=application.applied_at,
        )


class HasAppliedResponse(CamelModel):
    applied: bool
    application: Optional[ApplicationResponse] = None
