"""
Request identity and role checks.

Authentication happens upstream (auth gateway); it forwards the verified
identity in the X-User-Name and X-User-Role headers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException

# Required role -> user roles allowed through
ROLE_HIERARCHY = {
    "SPOC": ["SPOC", "CALENDAR_TEAM", "ADMIN"],
    "CALENDAR_TEAM": ["CALENDAR_TEAM", "ADMIN"],
    "DATA_TEAM": ["DATA_TEAM", "ADMIN"],
    "ADMIN": ["ADMIN"],
}


@dataclass
class CurrentUser:
    username: str
    role: str


def get_current_user(
    x_user_name: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> CurrentUser:
    if not x_user_name or not x_user_role:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return CurrentUser(username=x_user_name, role=x_user_role.strip().upper())


def require_roles(*allowed_roles: str):
    """
    Dependency factory: pass if the user's role is accepted by any allowed role.

    Usage:
        @router.post("/approve")
        def approve(user: CurrentUser = Depends(require_roles("CALENDAR_TEAM"))):
            ...
    """
    def guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        allowed = any(
            user.role in ROLE_HIERARCHY.get(role, [])
            for role in allowed_roles
        )
        if not allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return guard
