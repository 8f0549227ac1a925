"""
Shared fixtures: a fresh in-memory store per test and services wired to it
"""
from datetime import datetime, timedelta, timezone

import pytest

from application.services.application_workflow import ApplicationWorkflow
from application.services.cascade_deletion import CascadeDeletionService
from application.services.project_service import ProjectService
from application.services.user_profile_service import UserProfileService
from application.services.wishlist_service import WishlistService
from domain.entities import Project, Role
from domain.value_objects import IdentitySnapshot
from infrastructure.persistence.document_store import InMemoryDocumentStore
from infrastructure.persistence.repositories import (
    DocumentApplicationRepository,
    DocumentProjectRepository,
    DocumentUserProfileRepository,
)


class TickingClock:
    """Store clock that advances one second per commit"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_identity(user_id: str) -> IdentitySnapshot:
    return IdentitySnapshot(
        user_id=user_id,
        display_name=f"User {user_id}",
        username=user_id.lower(),
        avatar_url=f"https://img.example.com/{user_id}.png",
        email=f"{user_id.lower()}@example.com",
    )


def make_project(project_id: str = "p1", creator_id: str = "owner", deadline: str = None, **overrides) -> Project:
    fields = dict(
        id=project_id,
        creator=make_identity(creator_id),
        title="Realtime chess",
        headline="Multiplayer chess with live spectators",
        description="Looking for people to build the matchmaking service",
        tech_stack=["python", "fastapi"],
        roles=[Role(
            name="Backend",
            responsibilities=["Build the API"],
            requirements=["Python"],
            members_required=2,
        )],
        location="Remote",
        mode="online",
        deadline=deadline,
    )
    fields.update(overrides)
    return Project(**fields)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(clock):
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def project_repo(store):
    return DocumentProjectRepository(store)


@pytest.fixture
def application_repo(store):
    return DocumentApplicationRepository(store)


@pytest.fixture
def user_repo(store):
    return DocumentUserProfileRepository(store)


@pytest.fixture
def project_service(project_repo):
    return ProjectService(project_repo)


@pytest.fixture
def workflow(store, application_repo):
    return ApplicationWorkflow(store, application_repo)


@pytest.fixture
def wishlist_service(store, user_repo, project_repo):
    return WishlistService(store, user_repo, project_repo)


@pytest.fixture
def profile_service(user_repo):
    return UserProfileService(user_repo)


@pytest.fixture
def deletion_service(store, workflow, project_repo, user_repo):
    return CascadeDeletionService(store, workflow, project_repo, user_repo, scrub_strategy="scan")
