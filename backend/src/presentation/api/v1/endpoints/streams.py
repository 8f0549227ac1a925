"""
Stream Endpoints
Server-sent events over the live queries; each event carries the full
current value
"""
import json
from typing import Any, AsyncIterator, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from loguru import logger

from application.services.project_service import ProjectService
from application.services.subscriptions import SubscriptionService
from domain.enums import SubscriptionKind
from domain.value_objects import IdentitySnapshot
from presentation.api.v1.container import get_project_service, get_subscription_service
from presentation.api.v1.dependencies import get_current_identity
from presentation.api.v1.schemas.application import ApplicationResponse
from presentation.api.v1.schemas.project import ProjectResponse
from presentation.api.v1.schemas.user import UserProfileResponse


router = APIRouter()


def _render_project(project: Any) -> Any:
    if project is None:
        return None
    return ProjectResponse.from_entity(project).model_dump(mode="json", by_alias=True)


def _render_applications(applications: Any) -> Any:
    return [ApplicationResponse.from_entity(a).model_dump(mode="json", by_alias=True) for a in applications]


def _render_profile(profile: Any) -> Any:
    if profile is None:
        return None
    return UserProfileResponse.from_entity(profile).model_dump(mode="json", by_alias=True)


async def _events(
    request: Request,
    deliveries: AsyncIterator[Any],
    render: Callable[[Any], Any],
) -> AsyncIterator[str]:
    try:
        async for value in deliveries:
            if await request.is_disconnected():
                break
            yield f"data: {json.dumps(render(value))}\n\n"
    finally:
        await deliveries.aclose()
        logger.debug(f"Stream closed: {request.url.path}")


def _sse(request: Request, deliveries: AsyncIterator[Any], render: Callable[[Any], Any]) -> StreamingResponse:
    return StreamingResponse(
        _events(request, deliveries, render),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/streams/projects/{project_id}")
async def stream_project(
    project_id: str,
    request: Request,
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    """The project document; null once it is deleted"""
    return _sse(request, subscriptions.stream(SubscriptionKind.PROJECT, project_id), _render_project)


@router.get("/streams/projects/{project_id}/applications")
async def stream_applications_by_project(
    project_id: str,
    request: Request,
    identity: IdentitySnapshot = Depends(get_current_identity),
    project_service: ProjectService = Depends(get_project_service),
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    """Applications to a project, creator only"""
    await project_service.ensure_owner(project_id, identity.user_id)
    deliveries = subscriptions.stream(SubscriptionKind.APPLICATIONS_BY_PROJECT, project_id)
    return _sse(request, deliveries, _render_applications)


@router.get("/streams/users/me/applications")
async def stream_applications_by_user(
    request: Request,
    identity: IdentitySnapshot = Depends(get_current_identity),
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    deliveries = subscriptions.stream(SubscriptionKind.APPLICATIONS_BY_USER, identity.user_id)
    return _sse(request, deliveries, _render_applications)


@router.get("/streams/users/me")
async def stream_user(
    request: Request,
    identity: IdentitySnapshot = Depends(get_current_identity),
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    deliveries = subscriptions.stream(SubscriptionKind.USER, identity.user_id)
    return _sse(request, deliveries, _render_profile)
