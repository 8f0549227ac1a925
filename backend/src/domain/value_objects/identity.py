"""
Identity Snapshot Value Object
Denormalized copy of identity-provider data taken at write time
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class IdentitySnapshot:
    """
    Who performed a write, as reported by the identity provider.
    Not a live reference: later profile changes do not update copies.
    """

    user_id: str
    display_name: str = ""
    username: str = ""
    avatar_url: str = ""
    email: Optional[str] = None

    def __str__(self) -> str:
        return self.username or self.user_id
