"""
Project Service
Create, read and update project listings
"""
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from dataclasses import replace
from loguru import logger

from application.repositories.interfaces import IProjectRepository
from application.services.read_helpers import newest_first
from core.exceptions import (
    AuthorizationException,
    MissingRequiredFieldException,
    ResourceNotFoundException,
    ValidationException,
)
from domain.entities import Project
from domain.enums import ProjectStatus
from domain.value_objects import is_expired

_IMMUTABLE_FIELDS = {"id", "creator", "created_at", "updated_at"}


class ProjectService:
    """Owner-facing operations on projects"""

    def __init__(self, project_repo: IProjectRepository, today: Callable[[], date] = date.today):
        self.project_repo = project_repo
        self._today = today

    async def create_project(self, project: Project) -> Project:
        """
        Store a new listing under the caller-supplied id.

        Status always starts as open. Raises DuplicateResourceException if
        the id is already taken; ids are expected to be fresh random values,
        so a collision is not retried.
        """
        if not project.id:
            raise MissingRequiredFieldException("projectId")
        project = replace(project, status=ProjectStatus.OPEN)
        project.validate_for_create()

        await self.project_repo.create(project)
        logger.info(f"Created project {project.id} for creator {project.creator.user_id}")
        return project

    async def get_project(self, project_id: str) -> Optional[Project]:
        if not project_id:
            return None
        return await self.project_repo.get_by_id(project_id)

    async def list_projects(self) -> List[Project]:
        projects = await self.project_repo.list_all()
        return newest_first(projects, key=lambda p: p.created_at)

    async def list_projects_by_creator(self, user_id: str) -> List[Project]:
        if not user_id:
            raise MissingRequiredFieldException("userId")
        projects = await self.project_repo.list_by_creator(user_id)
        return newest_first(projects, key=lambda p: p.created_at)

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> None:
        """
        Merge changes into the project and refresh updatedAt.

        Reopening a project whose deadline has passed is refused, since
        the sweeper would close it again.
        """
        if not project_id:
            raise MissingRequiredFieldException("projectId")
        for name in changes:
            if name in _IMMUTABLE_FIELDS:
                raise ValidationException(name, "cannot be changed after creation")

        if changes.get("status") is not None:
            try:
                requested = ProjectStatus(changes["status"])
            except ValueError:
                raise ValidationException("status", f"'{changes['status']}' is not a project status")
            if requested == ProjectStatus.OPEN:
                current = await self.project_repo.get_by_id(project_id)
                if current is None:
                    raise ResourceNotFoundException("Project", project_id)
                deadline = changes.get("deadline", current.deadline)
                if is_expired(deadline, self._today()):
                    raise ValidationException("status", "cannot reopen a project after its deadline")

        await self.project_repo.update(project_id, changes)
        logger.info(f"Updated project {project_id}: {sorted(changes)}")

    async def ensure_owner(self, project_id: str, user_id: str) -> Project:
        """The project, if user_id created it"""
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise ResourceNotFoundException("Project", project_id)
        if not project.is_owned_by(user_id):
            logger.warning(f"User {user_id} attempted an owner action on project {project_id}")
            raise AuthorizationException(f"Only the creator can modify project {project_id}")
        return project
