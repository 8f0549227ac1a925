"""
Dependency Injection Container
Manages store, repository and service instances
"""
from fastapi import Depends

from application.repositories.document_store import IDocumentStore
from application.repositories.interfaces import (
    IApplicationRepository,
    IProjectRepository,
    IUserProfileRepository,
)
from application.services.application_workflow import ApplicationWorkflow
from application.services.cascade_deletion import CascadeDeletionService
from application.services.deadline_sweeper import DeadlineSweeper
from application.services.project_service import ProjectService
from application.services.reconciliation import ReconciliationService
from application.services.subscriptions import SubscriptionService
from application.services.user_profile_service import UserProfileService
from application.services.wishlist_service import WishlistService
from infrastructure.persistence.document_store import SQLAlchemyDocumentStore, create_document_store
from infrastructure.persistence.repositories import (
    DocumentApplicationRepository,
    DocumentProjectRepository,
    DocumentUserProfileRepository,
)
from infrastructure.services.change_feed import ChangeFeed


# Singleton instances
_document_store: IDocumentStore | None = None
_change_feed: ChangeFeed | None = None


def get_document_store() -> IDocumentStore:
    """Get document store instance (singleton)"""
    global _document_store
    if _document_store is None:
        _document_store = create_document_store()
    return _document_store


def get_change_feed(store: IDocumentStore = Depends(get_document_store)) -> ChangeFeed:
    """Get change feed instance (singleton)"""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed(store)
    return _change_feed


async def startup_container() -> IDocumentStore:
    """Create the store and, for the SQL backend, its table"""
    store = get_document_store()
    if isinstance(store, SQLAlchemyDocumentStore):
        await store.initialize()
    get_change_feed(store)
    return store


async def shutdown_container() -> None:
    """Drop subscriptions and release database connections"""
    global _document_store, _change_feed
    if _change_feed is not None:
        _change_feed.close()
        _change_feed = None
    if isinstance(_document_store, SQLAlchemyDocumentStore):
        await _document_store.close()
    _document_store = None


def get_project_repository(store: IDocumentStore = Depends(get_document_store)) -> IProjectRepository:
    """Get project repository instance (per-request)"""
    return DocumentProjectRepository(store)


def get_application_repository(store: IDocumentStore = Depends(get_document_store)) -> IApplicationRepository:
    """Get application repository instance (per-request)"""
    return DocumentApplicationRepository(store)


def get_user_profile_repository(store: IDocumentStore = Depends(get_document_store)) -> IUserProfileRepository:
    """Get user profile repository instance (per-request)"""
    return DocumentUserProfileRepository(store)


def get_project_service(
    project_repo: IProjectRepository = Depends(get_project_repository)
) -> ProjectService:
    return ProjectService(project_repo)


def get_application_workflow(
    store: IDocumentStore = Depends(get_document_store),
    application_repo: IApplicationRepository = Depends(get_application_repository)
) -> ApplicationWorkflow:
    return ApplicationWorkflow(store, application_repo)


def get_wishlist_service(
    store: IDocumentStore = Depends(get_document_store),
    user_repo: IUserProfileRepository = Depends(get_user_profile_repository),
    project_repo: IProjectRepository = Depends(get_project_repository)
) -> WishlistService:
    return WishlistService(store, user_repo, project_repo)


def get_user_profile_service(
    user_repo: IUserProfileRepository = Depends(get_user_profile_repository)
) -> UserProfileService:
    return UserProfileService(user_repo)


def get_cascade_deletion_service(
    store: IDocumentStore = Depends(get_document_store),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
    project_repo: IProjectRepository = Depends(get_project_repository),
    user_repo: IUserProfileRepository = Depends(get_user_profile_repository)
) -> CascadeDeletionService:
    return CascadeDeletionService(store, workflow, project_repo, user_repo)


def get_deadline_sweeper(
    project_repo: IProjectRepository = Depends(get_project_repository)
) -> DeadlineSweeper:
    return DeadlineSweeper(project_repo)


def get_reconciliation_service(
    store: IDocumentStore = Depends(get_document_store),
    project_repo: IProjectRepository = Depends(get_project_repository),
    application_repo: IApplicationRepository = Depends(get_application_repository),
    user_repo: IUserProfileRepository = Depends(get_user_profile_repository)
) -> ReconciliationService:
    return ReconciliationService(store, project_repo, application_repo, user_repo)


def get_subscription_service(
    feed: ChangeFeed = Depends(get_change_feed),
    project_repo: IProjectRepository = Depends(get_project_repository),
    application_repo: IApplicationRepository = Depends(get_application_repository),
    user_repo: IUserProfileRepository = Depends(get_user_profile_repository)
) -> SubscriptionService:
    return SubscriptionService(feed, project_repo, application_repo, user_repo)
