"""
User Schemas
Profile, wishlist and maintenance responses
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.entities import UserProfile
from .project import CamelModel


class UserProfileResponse(CamelModel):
    user_id: str
    name: str
    username: str
    email: str
    image: str
    headline: str
    about: str
    location: str
    education: List[Dict[str, Any]]
    work: List[Dict[str, Any]]
    skills: List[str]
    links: List[str]
    wishlist: List[str]
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, profile: UserProfile) -> "UserProfileResponse":
        return cls(
            user_id=profile.id,
            name=profile.name,
            username=profile.username,
            email=profile.email,
            image=profile.image,
            headline=profile.headline,
            about=profile.about,
            location=profile.location,
            education=list(profile.education),
            work=list(profile.work),
            skills=list(profile.skills),
            links=list(profile.links),
            wishlist=list(profile.wishlist),
            created_at=profile.created_at,
        )


class ProfileUpdateRequest(CamelModel):
    """Editable profile fields; the wishlist has its own endpoints"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    username: Optional[str] = None
    image: Optional[str] = None
    headline: Optional[str] = None
    about: Optional[str] = None
    location: Optional[str] = None
    education: Optional[List[Dict[str, Any]]] = None
    work: Optional[List[Dict[str, Any]]] = None
    skills: Optional[List[str]] = None
    links: Optional[List[str]] = None

    def to_changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class WishlistStateResponse(CamelModel):
    project_id: str
    saved: bool


class SweepResponse(CamelModel):
    updated_count: int
    scanned_count: int


class InconsistencySchema(CamelModel):
    kind: str
    identifier: str
    details: Dict[str, Any] = Field(default_factory=dict)
    repaired: bool = False


class ReconciliationResponse(CamelModel):
    consistent: bool
    repaired_count: int
    counts: Dict[str, int]
    issues: List[InconsistencySchema]
