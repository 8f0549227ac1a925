"""
Application Repository Implementation
Roots in `applications`, mirrors in `users/{applicantId}/applications`
"""
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from application.repositories.document_store import (
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    IDocumentStore,
    WriteBatch,
    collection_path,
)
from application.repositories.interfaces import IApplicationRepository
from domain.entities import Application, ApplicationMirror
from domain.enums import ApplicationStatus
from domain.value_objects import IdentitySnapshot

APPLICATIONS = "applications"


def mirror_collection(applicant_id: str) -> str:
    return collection_path("users", applicant_id, "applications")


def _status(value: Any, doc_path: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        logger.warning(f"{doc_path} has unknown status {value!r}, reading as pending")
        return ApplicationStatus.PENDING


class DocumentApplicationRepository(IApplicationRepository):
    """Document store implementation of application repository"""

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def get_by_id(self, application_id: str) -> Optional[Application]:
        snapshot = await self.store.get(APPLICATIONS, application_id)
        return self._to_entity(snapshot) if snapshot else None

    async def find_by_project_and_applicant(self, project_id: str, applicant_id: str) -> List[Application]:
        snapshots = await self.store.query(
            APPLICATIONS, {"projectId": project_id, "applicantId": applicant_id}
        )
        return [self._to_entity(s) for s in snapshots]

    async def list_by_project(self, project_id: str) -> List[Application]:
        snapshots = await self.store.query(APPLICATIONS, {"projectId": project_id})
        return [self._to_entity(s) for s in snapshots]

    async def list_by_applicant(self, applicant_id: str) -> List[Application]:
        snapshots = await self.store.query(APPLICATIONS, {"applicantId": applicant_id})
        return [self._to_entity(s) for s in snapshots]

    async def list_all(self) -> List[Application]:
        snapshots = await self.store.query(APPLICATIONS)
        return [self._to_entity(s) for s in snapshots]

    async def get_mirror(self, applicant_id: str, application_id: str) -> Optional[ApplicationMirror]:
        snapshot = await self.store.get(mirror_collection(applicant_id), application_id)
        return self._to_mirror(snapshot, applicant_id) if snapshot else None

    async def list_mirrors(self, applicant_id: str) -> List[ApplicationMirror]:
        snapshots = await self.store.query(mirror_collection(applicant_id))
        return [self._to_mirror(s, applicant_id) for s in snapshots]

    async def create_with_mirror(self, application: Application) -> None:
        batch = self.store.batch()
        batch.create(APPLICATIONS, application.id, self._to_document(application))
        batch.set(
            mirror_collection(application.applicant_id),
            application.id,
            self._to_mirror_document(application.mirror()),
        )
        await batch.commit()

    async def write_mirror(self, application: Application) -> None:
        await self.store.set(
            mirror_collection(application.applicant_id),
            application.id,
            self._to_mirror_document(application.mirror()),
            merge=True,
        )

    async def update_status(self, application: Application, status: ApplicationStatus) -> None:
        batch = self.store.batch()
        batch.update(APPLICATIONS, application.id, {"status": status.value})
        mirror = replace(application.mirror(), status=status)
        batch.set(
            mirror_collection(application.applicant_id),
            application.id,
            self._to_mirror_document(mirror),
            merge=True,
        )
        await batch.commit()

    def stage_delete(self, batch: WriteBatch, application: Application) -> None:
        batch.delete(APPLICATIONS, application.id)
        if application.applicant_id:
            batch.delete(mirror_collection(application.applicant_id), application.id)

    def stage_delete_mirror(self, batch: WriteBatch, applicant_id: str, application_id: str) -> None:
        batch.delete(mirror_collection(applicant_id), application_id)

    def _to_document(self, application: Application) -> Dict[str, Any]:
        return {
            "projectId": application.project_id,
            "applicantId": application.applicant.user_id,
            "applicantName": application.applicant.display_name or "",
            "applicantUsername": application.applicant.username or "",
            "applicantImage": application.applicant.avatar_url or "",
            "appliedAt": application.applied_at or SERVER_TIMESTAMP,
            "status": application.status.value,
        }

    def _to_mirror_document(self, mirror: ApplicationMirror) -> Dict[str, Any]:
        return {
            "projectId": mirror.project_id,
            "status": mirror.status.value,
            "appliedAt": mirror.applied_at or SERVER_TIMESTAMP,
            "applicationId": mirror.application_id,
        }

    def _to_entity(self, snapshot: DocumentSnapshot) -> Application:
        data = snapshot.data
        applied_at = data.get("appliedAt")
        return Application(
            id=snapshot.id,
            project_id=data.get("projectId", ""),
            applicant=IdentitySnapshot(
                user_id=data.get("applicantId", ""),
                display_name=data.get("applicantName", ""),
                username=data.get("applicantUsername", ""),
                avatar_url=data.get("applicantImage", ""),
            ),
            status=_status(data.get("status"), f"{APPLICATIONS}/{snapshot.id}"),
            applied_at=applied_at if isinstance(applied_at, datetime) else None,
        )

    def _to_mirror(self, snapshot: DocumentSnapshot, applicant_id: str) -> ApplicationMirror:
        data = snapshot.data
        applied_at = data.get("appliedAt")
        return ApplicationMirror(
            application_id=data.get("applicationId") or snapshot.id,
            applicant_id=applicant_id,
            project_id=data.get("projectId", ""),
            status=_status(data.get("status"), f"{snapshot.collection}/{snapshot.id}"),
            applied_at=applied_at if isinstance(applied_at, datetime) else None,
        )
