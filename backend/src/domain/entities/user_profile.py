"""
User Profile Domain Entity
Profile document keyed by the identity provider's user id
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class UserProfile:
    """User profile domain entity - immutable"""

    id: str
    name: str = ""
    username: str = ""
    email: str = ""
    image: str = ""

    # Profile fields
    headline: str = ""
    about: str = ""
    location: str = ""
    education: List[Dict[str, Any]] = field(default_factory=list)
    work: List[Dict[str, Any]] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)

    # Saved project ids, set semantics
    wishlist: List[str] = field(default_factory=list)

    created_at: Optional[datetime] = None

    def is_registered(self) -> bool:
        """False for a document that only holds wishlist writes made before first sign-in"""
        return self.created_at is not None

    def has_saved(self, project_id: str) -> bool:
        return project_id in self.wishlist

    def __str__(self) -> str:
        return f"UserProfile({self.id}, saved={len(self.wishlist)})"
