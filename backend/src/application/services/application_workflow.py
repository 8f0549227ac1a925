"""
Application Workflow
Applying to projects, owner status changes, and the per-user mirrors
that let an applicant list their own applications
"""
import hashlib
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from application.repositories.document_store import IDocumentStore
from application.repositories.interfaces import IApplicationRepository
from application.services.read_helpers import newest_first
from core.config import settings
from core.exceptions import (
    DuplicateResourceException,
    InconsistencyDetected,
    MissingRequiredFieldException,
    ResourceNotFoundException,
    StoreUnavailableException,
)
from domain.entities import Application
from domain.enums import ApplicationStatus
from domain.value_objects import IdentitySnapshot, check_status_transition


@dataclass(frozen=True)
class ApplyResult:
    application_id: str
    already_applied: bool = False


def application_key(project_id: str, applicant_id: str) -> str:
    """
    Deterministic application id for a (project, applicant) pair.

    Two concurrent submissions derive the same id, so the store's
    conditional create lets exactly one of them write a root.
    """
    digest = hashlib.sha256(f"{project_id}:{applicant_id}".encode("utf-8")).hexdigest()
    return digest[:20]


def _earliest(applications: List[Application]) -> Application:
    return newest_first(applications, key=lambda a: a.applied_at)[-1]


class ApplicationWorkflow:
    """Creates and updates applications together with their mirrors"""

    def __init__(self, store: IDocumentStore, application_repo: IApplicationRepository):
        self.store = store
        self.application_repo = application_repo

    async def apply_for_project(self, project_id: str, applicant: IdentitySnapshot) -> ApplyResult:
        """
        Apply once per (project, applicant).

        Repeated calls return the existing application with
        already_applied=True. A root left without its mirror by an earlier
        failure gets the mirror rewritten here, so retrying is the
        recovery path.
        """
        if not project_id:
            raise MissingRequiredFieldException("projectId")
        if applicant is None or not applicant.user_id:
            raise MissingRequiredFieldException("applicantId")

        existing = await self._find_existing(project_id, applicant.user_id)
        if existing is not None:
            await self._ensure_mirror(existing)
            return ApplyResult(application_id=existing.id, already_applied=True)

        application = Application(
            id=application_key(project_id, applicant.user_id),
            project_id=project_id,
            applicant=applicant,
            status=ApplicationStatus.PENDING,
        )

        try:
            await self.application_repo.create_with_mirror(application)
        except DuplicateResourceException:
            # A concurrent submission for the same pair committed first
            logger.warning(
                f"Concurrent application detected for project={project_id}, applicant={applicant.user_id}"
            )
            winner = await self._find_existing(project_id, applicant.user_id)
            if winner is None:
                raise
            await self._ensure_mirror(winner)
            return ApplyResult(application_id=winner.id, already_applied=True)
        except StoreUnavailableException as e:
            logger.error(
                f"Application write failed for project={project_id}, applicant={applicant.user_id}; "
                f"safe to retry: {e}"
            )
            raise

        logger.info(f"User {applicant.user_id} applied to project {project_id} ({application.id})")
        return ApplyResult(application_id=application.id, already_applied=False)

    async def update_application_status(self, application_id: str, new_status: str) -> Application:
        """
        Owner action: change the status on the root and the mirror.

        Both writes go in one batch. If the commit fails neither is
        applied; the failure is logged and re-raised.
        """
        if not application_id:
            raise MissingRequiredFieldException("applicationId")

        application = await self.application_repo.get_by_id(application_id)
        if application is None:
            raise ResourceNotFoundException("Application", application_id)

        target = check_status_transition(application.status, new_status)

        try:
            await self.application_repo.update_status(application, target)
        except StoreUnavailableException as e:
            logger.error(
                f"Status update {application.status.value} -> {target.value} failed for application "
                f"{application_id} (applicant={application.applicant_id}); root and mirror may need "
                f"reconciliation: {e}"
            )
            raise

        logger.info(f"Application {application_id}: {application.status.value} -> {target.value}")
        return Application(
            id=application.id,
            project_id=application.project_id,
            applicant=application.applicant,
            status=target,
            applied_at=application.applied_at,
        )

    async def get_application(self, application_id: str) -> Optional[Application]:
        if not application_id:
            return None
        return await self.application_repo.get_by_id(application_id)

    async def has_user_applied(self, user_id: str, project_id: str) -> Optional[Application]:
        if not user_id or not project_id:
            return None
        return await self._find_existing(project_id, user_id)

    async def get_applications_by_project(self, project_id: str) -> List[Application]:
        applications = await self.application_repo.list_by_project(project_id)
        return newest_first(applications, key=lambda a: a.applied_at)

    async def get_applications_by_user(self, user_id: str) -> List[Application]:
        applications = await self.application_repo.list_by_applicant(user_id)
        return newest_first(applications, key=lambda a: a.applied_at)

    async def delete_applications_for_project(self, project_id: str) -> int:
        """
        Delete every root and mirror for a project.

        Writes are chunked at WRITE_BATCH_MAX_OPS; each chunk is atomic.
        Re-running after a partial failure deletes what is left.
        """
        applications = await self.application_repo.list_by_project(project_id)
        if not applications:
            return 0

        # Each application needs two deletes: root and mirror
        per_batch = max(1, settings.WRITE_BATCH_MAX_OPS // 2)
        for start in range(0, len(applications), per_batch):
            batch = self.store.batch()
            for application in applications[start:start + per_batch]:
                self.application_repo.stage_delete(batch, application)
            await batch.commit()

        logger.info(f"Deleted {len(applications)} applications for project {project_id}")
        return len(applications)

    async def _find_existing(self, project_id: str, applicant_id: str) -> Optional[Application]:
        matches = await self.application_repo.find_by_project_and_applicant(project_id, applicant_id)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                f"Found {len(matches)} duplicate applications for project={project_id}, "
                f"applicant={applicant_id}. Using the earliest."
            )
        return _earliest(matches)

    async def _ensure_mirror(self, application: Application) -> None:
        mirror = await self.application_repo.get_mirror(application.applicant_id, application.id)
        if mirror is not None and not mirror.diverges_from(application):
            return

        signal = InconsistencyDetected(
            kind="missing_mirror" if mirror is None else "diverged_mirror",
            identifier=application.id,
            details={"applicantId": application.applicant_id, "projectId": application.project_id},
            repaired=True,
        )
        logger.warning(f"Inconsistent application mirror: {signal.describe()}")
        await self.application_repo.write_mirror(application)
