"""
FastAPI Dependencies
Current identity as forwarded by the upstream identity provider
"""
from typing import Optional

from fastapi import Header, HTTPException, status

from domain.value_objects import IdentitySnapshot


async def get_current_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_username: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_image: Optional[str] = Header(None),
) -> IdentitySnapshot:
    """
    Identity snapshot of the signed-in user

    The identity provider sits in front of this service and has already
    authenticated the request; its claims are trusted as-is.

    Usage:
        @router.get("/protected")
        async def protected_route(identity: IdentitySnapshot = Depends(get_current_identity)):
            ...
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    return IdentitySnapshot(
        user_id=x_user_id.strip(),
        display_name=x_user_name or "",
        username=x_user_username or "",
        avatar_url=x_user_image or "",
        email=x_user_email,
    )
