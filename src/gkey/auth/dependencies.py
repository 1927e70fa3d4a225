"""Request identity resolved from API gateway headers.

The gateway authenticates the caller and forwards the result as
``X-User-Id`` and ``X-User-Role``; this service trusts those headers.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

ROLE_STREAMER = "streamer"
ROLE_BRAND = "brand"
ROLE_ADMIN = "admin"
KNOWN_ROLES = frozenset({ROLE_STREAMER, ROLE_BRAND, ROLE_ADMIN})


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str

    @property
    def is_streamer(self) -> bool:
        return self.role == ROLE_STREAMER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> CurrentUser:
    """Build the caller identity. Raises 401 when the gateway sent no user id."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    role = (x_user_role or ROLE_STREAMER).strip().lower()
    if role not in KNOWN_ROLES:
        raise HTTPException(status_code=403, detail=f"Unknown role: {role}")
    return CurrentUser(id=user_id, role=role)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:  # noqa: B008
    """Same as get_current_user but rejects non-admins with 403."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
