"""
Subscription Service
Typed live views over projects, applications and user profiles
"""
from typing import Any, AsyncIterator, Callable

from application.repositories.interfaces import (
    IApplicationRepository,
    IProjectRepository,
    IUserProfileRepository,
)
from core.exceptions import MissingRequiredFieldException, ValidationException
from domain.enums import SubscriptionKind
from infrastructure.persistence.repositories import APPLICATIONS, PROJECTS, USERS
from infrastructure.services.change_feed import ChangeFeed, Subscription, WatchTarget


class SubscriptionService:
    """
    Four live queries. Callbacks receive the full current value on every
    change: a Project or None, a list of Applications, or a UserProfile
    or None. Lists are unordered; sort them on the consumer side.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        project_repo: IProjectRepository,
        application_repo: IApplicationRepository,
        user_repo: IUserProfileRepository,
    ):
        self.feed = feed
        self.project_repo = project_repo
        self.application_repo = application_repo
        self.user_repo = user_repo

    async def subscribe_project(self, project_id: str, callback: Callable[[Any], Any]) -> Subscription:
        return await self.feed.subscribe(*self._watch(SubscriptionKind.PROJECT, project_id), callback)

    async def subscribe_applications_by_project(self, project_id: str, callback: Callable[[Any], Any]) -> Subscription:
        return await self.feed.subscribe(*self._watch(SubscriptionKind.APPLICATIONS_BY_PROJECT, project_id), callback)

    async def subscribe_applications_by_user(self, user_id: str, callback: Callable[[Any], Any]) -> Subscription:
        return await self.feed.subscribe(*self._watch(SubscriptionKind.APPLICATIONS_BY_USER, user_id), callback)

    async def subscribe_user(self, user_id: str, callback: Callable[[Any], Any]) -> Subscription:
        return await self.feed.subscribe(*self._watch(SubscriptionKind.USER, user_id), callback)

    def stream(self, kind: SubscriptionKind, key: str) -> AsyncIterator[Any]:
        """Deliveries of one live query as an async iterator"""
        return self.feed.stream(*self._watch(kind, key))

    def _watch(self, kind: SubscriptionKind, key: str):
        if not key:
            raise MissingRequiredFieldException("id")

        if kind == SubscriptionKind.PROJECT:
            return WatchTarget(PROJECTS, doc_id=key), lambda: self.project_repo.get_by_id(key)
        if kind == SubscriptionKind.APPLICATIONS_BY_PROJECT:
            return (
                WatchTarget(APPLICATIONS, filters={"projectId": key}),
                lambda: self.application_repo.list_by_project(key),
            )
        if kind == SubscriptionKind.APPLICATIONS_BY_USER:
            return (
                WatchTarget(APPLICATIONS, filters={"applicantId": key}),
                lambda: self.application_repo.list_by_applicant(key),
            )
        if kind == SubscriptionKind.USER:
            return WatchTarget(USERS, doc_id=key), lambda: self.user_repo.get_by_id(key)

        raise ValidationException("kind", f"unknown subscription kind {kind}")
