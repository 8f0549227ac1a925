"""
User Profile Repository Implementation
Profiles in `users`, inverted wishlist index in `project_savers`
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from application.repositories.document_store import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    DocumentSnapshot,
    IDocumentStore,
    WriteBatch,
)
from application.repositories.interfaces import IUserProfileRepository
from core.exceptions import ResourceNotFoundException, ValidationException
from domain.entities import UserProfile

USERS = "users"
PROJECT_SAVERS = "project_savers"

_FIELD_NAMES = {
    "name": "name",
    "username": "username",
    "email": "email",
    "image": "image",
    "headline": "headline",
    "about": "about",
    "location": "location",
    "education": "education",
    "work": "work",
    "skills": "skills",
    "links": "links",
}


class DocumentUserProfileRepository(IUserProfileRepository):
    """Document store implementation of user profile repository"""

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        snapshot = await self.store.get(USERS, user_id)
        return self._to_entity(snapshot) if snapshot else None

    async def get_by_username(self, username: str) -> Optional[UserProfile]:
        snapshots = await self.store.query(USERS, {"username": username})
        if not snapshots:
            return None
        return self._to_entity(sorted(snapshots, key=lambda s: s.id)[0])

    async def list_all(self) -> List[UserProfile]:
        snapshots = await self.store.query(USERS)
        return [self._to_entity(s) for s in snapshots]

    async def create(self, profile: UserProfile) -> None:
        document = self._to_document(profile)
        document["createdAt"] = SERVER_TIMESTAMP
        await self.store.create(USERS, profile.id, document)

    async def complete(self, profile: UserProfile) -> None:
        document = self._to_document(profile)
        del document["wishlist"]
        document["createdAt"] = SERVER_TIMESTAMP
        await self.store.set(USERS, profile.id, document, merge=True)

    async def update(self, user_id: str, changes: Dict[str, Any]) -> None:
        fields = {}
        for name, value in changes.items():
            if name not in _FIELD_NAMES:
                raise ValidationException(name, "is not an updatable profile field")
            fields[_FIELD_NAMES[name]] = {"list": list(value or [])} if name == "links" else value

        try:
            await self.store.update(USERS, user_id, fields)
        except ResourceNotFoundException:
            raise ResourceNotFoundException("UserProfile", user_id)

    async def get_saver_ids(self, project_id: str) -> List[str]:
        snapshot = await self.store.get(PROJECT_SAVERS, project_id)
        if snapshot is None:
            return []
        return list(snapshot.get("userIds") or [])

    def stage_wishlist_add(self, batch: WriteBatch, user_id: str, project_id: str) -> None:
        batch.set(USERS, user_id, {"wishlist": ArrayUnion(project_id)}, merge=True)
        batch.set(PROJECT_SAVERS, project_id, {"userIds": ArrayUnion(user_id)}, merge=True)

    def stage_wishlist_remove(self, batch: WriteBatch, user_id: str, project_id: str) -> None:
        batch.set(USERS, user_id, {"wishlist": ArrayRemove(project_id)}, merge=True)
        batch.set(PROJECT_SAVERS, project_id, {"userIds": ArrayRemove(user_id)}, merge=True)

    def stage_delete_saver_index(self, batch: WriteBatch, project_id: str) -> None:
        batch.delete(PROJECT_SAVERS, project_id)

    def _to_document(self, profile: UserProfile) -> Dict[str, Any]:
        return {
            "userId": profile.id,
            "name": profile.name,
            "email": profile.email,
            "image": profile.image,
            "username": profile.username,
            "headline": profile.headline,
            "about": profile.about,
            "location": profile.location,
            "education": list(profile.education),
            "work": list(profile.work),
            "skills": list(profile.skills),
            "links": {"list": list(profile.links)},
            "wishlist": list(profile.wishlist),
        }

    def _to_entity(self, snapshot: DocumentSnapshot) -> UserProfile:
        data = snapshot.data
        links = data.get("links") or {}
        created_at = data.get("createdAt")
        return UserProfile(
            id=snapshot.id,
            name=data.get("name", ""),
            username=data.get("username", ""),
            email=data.get("email", ""),
            image=data.get("image", ""),
            headline=data.get("headline", ""),
            about=data.get("about", ""),
            location=data.get("location", ""),
            education=list(data.get("education") or []),
            work=list(data.get("work") or []),
            skills=list(data.get("skills") or []),
            links=list(links.get("list") or []) if isinstance(links, dict) else list(links),
            wishlist=list(data.get("wishlist") or []),
            created_at=created_at if isinstance(created_at, datetime) else None,
        )
