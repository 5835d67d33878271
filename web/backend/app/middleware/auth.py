"""Auth middleware -- FastAPI dependencies for extracting the current user.

An API key issued by ``whatif users create`` is accepted in either header:

1. ``X-API-Key: <raw_key>``
2. ``Authorization: Bearer <raw_key>``
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from whatif.auth.models import Role, User
from whatif.auth.store import UserStore
from web.backend.app.dependencies import get_user_store

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    store: UserStore = Depends(get_user_store),
) -> User:
    """Resolve the caller from its API key; 401 when missing or invalid."""
    raw_key = x_api_key or _bearer_token(authorization)
    user = store.validate_api_key(raw_key) if raw_key else None
    if user is None:
        logger.warning("Authentication failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Same as ``get_current_user`` but also requires the admin role (403 otherwise)."""
    if not user.role.at_least(Role.admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role '{Role.admin.value}'",
        )
    return user
