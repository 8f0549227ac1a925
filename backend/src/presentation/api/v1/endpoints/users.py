"""
User Endpoints
Profiles, own applications and the wishlist
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from application.services.application_workflow import ApplicationWorkflow
from application.services.user_profile_service import UserProfileService
from application.services.wishlist_service import WishlistService
from domain.value_objects import IdentitySnapshot
from presentation.api.v1.container import (
    get_application_workflow,
    get_user_profile_service,
    get_wishlist_service,
)
from presentation.api.v1.dependencies import get_current_identity
from presentation.api.v1.schemas.application import ApplicationResponse
from presentation.api.v1.schemas.project import ProjectResponse
from presentation.api.v1.schemas.user import (
    ProfileUpdateRequest,
    UserProfileResponse,
    WishlistStateResponse,
)


router = APIRouter()


@router.post("/users/me", response_model=UserProfileResponse)
async def ensure_profile(
    identity: IdentitySnapshot = Depends(get_current_identity),
    profile_service: UserProfileService = Depends(get_user_profile_service)
):
    """Create the caller's profile on first sign-in; returns the existing one afterwards"""
    profile = await profile_service.ensure_profile(identity)
    return UserProfileResponse.from_entity(profile)


@router.get("/users/me", response_model=UserProfileResponse)
async def get_own_profile(
    identity: IdentitySnapshot = Depends(get_current_identity),
    profile_service: UserProfileService = Depends(get_user_profile_service)
):
    profile = await profile_service.get_profile(identity.user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return UserProfileResponse.from_entity(profile)


@router.patch("/users/me", response_model=UserProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    identity: IdentitySnapshot = Depends(get_current_identity),
    profile_service: UserProfileService = Depends(get_user_profile_service)
):
    changes = request.to_changes()
    if changes:
        await profile_service.update_profile(identity.user_id, changes)

    profile = await profile_service.get_profile(identity.user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return UserProfileResponse.from_entity(profile)


@router.get("/users/me/applications", response_model=List[ApplicationResponse])
async def get_applications_by_user(
    identity: IdentitySnapshot = Depends(get_current_identity),
    workflow: ApplicationWorkflow = Depends(get_application_workflow)
):
    """The caller's applications, newest first"""
    applications = await workflow.get_applications_by_user(identity.user_id)
    return [ApplicationResponse.from_entity(a) for a in applications]


@router.get("/users/me/wishlist", response_model=List[ProjectResponse])
async def get_saved_projects(
    identity: IdentitySnapshot = Depends(get_current_identity),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    """Saved projects in the order they were saved; deleted projects are left out"""
    projects = await wishlist_service.get_saved_projects(identity.user_id)
    return [ProjectResponse.from_entity(p) for p in projects]


@router.put("/users/me/wishlist/{project_id}", response_model=WishlistStateResponse)
async def save_project(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    await wishlist_service.save_project(identity.user_id, project_id)
    return WishlistStateResponse(project_id=project_id, saved=True)


@router.delete("/users/me/wishlist/{project_id}", response_model=WishlistStateResponse)
async def unsave_project(
    project_id: str,
    identity: IdentitySnapshot = Depends(get_current_identity),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    await wishlist_service.unsave_project(identity.user_id, project_id)
    return WishlistStateResponse(project_id=project_id, saved=False)


@router.post("/users/me/wishlist/{project_id}/toggle", response_model=WishlistStateResponse)
async def toggle_save(
    project_id: str,
    known_state: Optional[bool] = Query(None, description="Membership as last shown to the user"),
    identity: IdentitySnapshot = Depends(get_current_identity),
    wishlist_service: WishlistService = Depends(get_wishlist_service)
):
    saved = await wishlist_service.toggle_save(identity.user_id, project_id, known_state=known_state)
    return WishlistStateResponse(project_id=project_id, saved=saved)


@router.get("/users/{username}", response_model=UserProfileResponse)
async def get_profile_by_username(
    username: str,
    profile_service: UserProfileService = Depends(get_user_profile_service)
):
    """Public profile lookup"""
    profile = await profile_service.get_profile_by_username(username)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserProfileResponse.from_entity(profile)
