"""
Project Repository Implementation
Projects stored as documents in the `projects` collection
"""
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from application.repositories.document_store import (
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    IDocumentStore,
    WriteBatch,
)
from application.repositories.interfaces import IProjectRepository
from core.exceptions import ResourceNotFoundException, ValidationException
from domain.entities import Project, Role, AdditionalInfo, Contact
from domain.enums import ProjectStatus
from domain.value_objects import IdentitySnapshot, parse_deadline

PROJECTS = "projects"

# Entity attribute -> document field, for partial updates
_FIELD_NAMES = {
    "title": "projectTitle",
    "headline": "projectHeadline",
    "description": "projectDescription",
    "tech_stack": "techStack",
    "roles": "roles",
    "availability": "availability",
    "additional_info": "additionalInfo",
    "contact": "contact",
    "location": "location",
    "mode": "mode",
    "deadline": "lastDate",
    "status": "status",
}


def _role_to_document(role: Any) -> Dict[str, Any]:
    if isinstance(role, dict):
        role = _role_from_document(role)
    return {
        "roleName": role.name,
        "responsibilities": list(role.responsibilities),
        "requirements": list(role.requirements),
        "membersRequired": role.members_required,
    }


def _role_from_document(data: Dict[str, Any]) -> Role:
    try:
        members = int(data.get("membersRequired") or 0)
    except (TypeError, ValueError):
        members = 0
    return Role(
        name=data.get("roleName", ""),
        responsibilities=list(data.get("responsibilities") or []),
        requirements=list(data.get("requirements") or []),
        members_required=members,
    )


def _deadline_to_document(value: Any) -> Optional[str]:
    if isinstance(value, date):
        return parse_deadline(value).isoformat()
    return value


class DocumentProjectRepository(IProjectRepository):
    """Document store implementation of project repository"""

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        snapshot = await self.store.get(PROJECTS, project_id)
        return self._to_entity(snapshot) if snapshot else None

    async def list_all(self) -> List[Project]:
        snapshots = await self.store.query(PROJECTS)
        return [self._to_entity(s) for s in snapshots]

    async def list_by_creator(self, user_id: str) -> List[Project]:
        snapshots = await self.store.query(PROJECTS, {"creatorId": user_id})
        return [self._to_entity(s) for s in snapshots]

    async def create(self, project: Project) -> None:
        document = self._to_document(project)
        document["createdAt"] = SERVER_TIMESTAMP
        document["updatedAt"] = SERVER_TIMESTAMP
        await self.store.create(PROJECTS, project.id, document)

    async def update(self, project_id: str, changes: Dict[str, Any]) -> None:
        fields = {}
        for name, value in changes.items():
            if name not in _FIELD_NAMES:
                raise ValidationException(name, "is not an updatable project field")
            fields[_FIELD_NAMES[name]] = self._serialize_field(name, value)
        fields["updatedAt"] = SERVER_TIMESTAMP

        try:
            await self.store.update(PROJECTS, project_id, fields)
        except ResourceNotFoundException:
            raise ResourceNotFoundException("Project", project_id)

    async def set_status(self, project_id: str, status: ProjectStatus) -> None:
        try:
            await self.store.update(PROJECTS, project_id, {"status": status.value})
        except ResourceNotFoundException:
            raise ResourceNotFoundException("Project", project_id)

    def stage_delete(self, batch: WriteBatch, project_id: str) -> None:
        batch.delete(PROJECTS, project_id)

    def _serialize_field(self, name: str, value: Any) -> Any:
        if name == "roles":
            return [_role_to_document(role) for role in value or []]
        if name in ("additional_info", "contact"):
            return asdict(value) if not isinstance(value, dict) else dict(value)
        if name == "status":
            return ProjectStatus(value).value
        if name == "deadline":
            return _deadline_to_document(value)
        if name == "tech_stack":
            return list(value or [])
        return value

    def _to_document(self, project: Project) -> Dict[str, Any]:
        return {
            "creatorId": project.creator.user_id,
            "creatorName": project.creator.display_name,
            "creatorUsername": project.creator.username,
            "creatorImage": project.creator.avatar_url,
            "projectTitle": project.title,
            "projectHeadline": project.headline,
            "projectDescription": project.description,
            "techStack": list(project.tech_stack),
            "roles": [_role_to_document(role) for role in project.roles],
            "availability": project.availability,
            "additionalInfo": asdict(project.additional_info),
            "contact": asdict(project.contact),
            "location": project.location,
            "mode": project.mode,
            "lastDate": _deadline_to_document(project.deadline),
            "status": project.status.value,
        }

    def _to_entity(self, snapshot: DocumentSnapshot) -> Project:
        data = snapshot.data

        try:
            status = ProjectStatus(data.get("status", ProjectStatus.OPEN.value))
        except ValueError:
            logger.warning(f"Project {snapshot.id} has unknown status {data.get('status')!r}, reading as open")
            status = ProjectStatus.OPEN

        info = data.get("additionalInfo") or {}
        contact = data.get("contact") or {}
        created_at = data.get("createdAt")
        updated_at = data.get("updatedAt")

        return Project(
            id=snapshot.id,
            creator=IdentitySnapshot(
                user_id=data.get("creatorId", ""),
                display_name=data.get("creatorName", ""),
                username=data.get("creatorUsername", ""),
                avatar_url=data.get("creatorImage", ""),
            ),
            title=data.get("projectTitle", ""),
            headline=data.get("projectHeadline", ""),
            description=data.get("projectDescription", ""),
            tech_stack=list(data.get("techStack") or []),
            roles=[_role_from_document(r) for r in data.get("roles") or [] if isinstance(r, dict)],
            availability=data.get("availability", ""),
            additional_info=AdditionalInfo(
                timing=info.get("timing", ""),
                stipend=info.get("stipend", ""),
                duration=info.get("duration", ""),
            ),
            contact=Contact(
                email=contact.get("email", ""),
                link=contact.get("link") or contact.get("linkedin") or None,
            ),
            location=data.get("location", ""),
            mode=data.get("mode", ""),
            deadline=_deadline_to_document(data.get("lastDate")),
            status=status,
            created_at=created_at if isinstance(created_at, datetime) else None,
            updated_at=updated_at if isinstance(updated_at, datetime) else None,
        )
