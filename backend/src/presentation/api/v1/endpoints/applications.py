"""
Application Endpoints
Status changes by the project owner
"""
from fastapi import APIRouter, Depends, HTTPException, status

from application.services.application_workflow import ApplicationWorkflow
from application.services.project_service import ProjectService
from domain.value_objects import IdentitySnapshot
from presentation.api.v1.container import get_application_workflow, get_project_service
from presentation.api.v1.dependencies import get_current_identity
from presentation.api.v1.schemas.application import ApplicationResponse, StatusUpdateRequest


router = APIRouter()


@router.patch("/applications/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    request: StatusUpdateRequest,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service),
    workflow: ApplicationWorkflow = Depends(get_application_workflow)
):
    """
    Move an application to pending, interviewing, accepted or rejected.

    Only the creator of the project applied to may do this.
    """
    application = await workflow.get_application(application_id)
    if application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    await project_service.ensure_owner(application.project_id, identity.user_id)
    updated = await workflow.update_application_status(application_id, request.status)
    return ApplicationResponse.from_entity(updated)
