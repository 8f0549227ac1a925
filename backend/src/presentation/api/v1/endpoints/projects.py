"""
Project Endpoints
Listings, owner updates, cascading deletion and applying
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from application.repositories.document_store import IDocumentStore
from application.services.application_workflow import ApplicationWorkflow
from application.services.cascade_deletion import CascadeDeletionService
from application.services.project_service import ProjectService
from core.exceptions import ValidationException
from domain.value_objects import IdentitySnapshot
from presentation.api.v1.container import (
    get_application_workflow,
    get_cascade_deletion_service,
    get_document_store,
    get_project_service,
)
from presentation.api.v1.dependencies import get_current_identity
from presentation.api.v1.schemas.application import (
    ApplicationResponse,
    ApplyResponse,
    HasAppliedResponse,
)
from presentation.api.v1.schemas.project import (
    ProjectCreateRequest,
    ProjectDeletedResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)


router = APIRouter()


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreateRequest,
    identity: IdentitySnapshot = Depends(get_current_identity),
    store: IDocumentStore = Depends(get_document_store),
    project_service: ProjectService = Depends(get_project_service)
):
    """
    Post a new project listing.

    The caller becomes the creator. Status always starts as open.
    """
    project_id = request.id or store.new_id()
    project = await project_service.create_project(request.to_entity(project_id, identity))
    stored = await project_service.get_project(project.id)
    return ProjectResponse.from_entity(stored or project)


@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(
    creator_id: Optional[str] = Query(None, description="Only projects created by this user"),
    project_service: ProjectService = Depends(get_project_service)
):
    """All projects, newest first"""
    if creator_id:
        projects = await project_service.list_projects_by_creator(creator_id)
    else:
        projects = await project_service.list_projects()
    return [ProjectResponse.from_entity(p) for p in projects]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    project_service: ProjectService = Depends(get_project_service)
):
    project = await project_service.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return ProjectResponse.from_entity(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service)
):
    """Partial update, creator only"""
    await project_service.ensure_owner(project_id, identity.user_id)

    changes = request.to_changes()
    if changes:
        await project_service.update_project(project_id, changes)

    project = await project_service.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return ProjectResponse.from_entity(project)


@router.delete("/projects/{project_id}", response_model=ProjectDeletedResponse)
async def delete_project(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service),
    deletion_service: CascadeDeletionService = Depends(get_cascade_deletion_service)
):
    """
    Delete a project with its applications and wishlist entries.

    A 503 means some steps may have committed; repeating the request
    finishes the deletion.
    """
    await project_service.ensure_owner(project_id, identity.user_id)
    result = await deletion_service.delete_project_completely(project_id)
    return ProjectDeletedResponse(
        project_id=project_id,
        deleted_application_count=result.deleted_application_count,
        scrubbed_wishlist_count=result.scrubbed_wishlist_count,
    )


@router.post("/projects/{project_id}/applications", response_model=ApplyResponse)
async def apply_for_project(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service),
    workflow: ApplicationWorkflow = Depends(get_application_workflow)
):
    """
    Apply to a project.

    Applying twice is not an error: the second call reports
    alreadyApplied=true with the original application id.
    """
    project = await project_service.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if not project.is_open():
        raise ValidationException("status", "project is closed to applications")
    if project.is_owned_by(identity.user_id):
        raise ValidationException("projectId", "cannot apply to your own project")

    result = await workflow.apply_for_project(project_id, identity)
    if result.already_applied:
        logger.info(f"User {identity.user_id} re-applied to project {project_id}")
    return ApplyResponse(application_id=result.application_id, already_applied=result.already_applied)


@router.get("/projects/{project_id}/applications", response_model=List[ApplicationResponse])
async def get_applications_by_project(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service),
    workflow: ApplicationWorkflow = Depends(get_application_workflow)
):
    """Applications to a project, newest first, creator only"""
    await project_service.ensure_owner(project_id, identity.user_id)
    applications = await workflow.get_applications_by_project(project_id)
    return [ApplicationResponse.from_entity(a) for a in applications]


@router.get("/projects/{project_id}/applications/me", response_model=HasAppliedResponse)
async def has_user_applied(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    workflow: ApplicationWorkflow = Depends(get_application_workflow)
):
    application = await workflow.has_user_applied(identity.user_id, project_id)
    if application is None:
        return HasAppliedResponse(applied=False)
    return HasAppliedResponse(applied=True, application=ApplicationResponse.from_entity(application))
