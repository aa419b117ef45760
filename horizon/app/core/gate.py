"""
Route authorization decisions.

`decide` is pure: the same three inputs always give the same decision.
Admins are never shown member-scoped views, so they are sent to their own home.
"""
from enum import Enum
from typing import Optional

from horizon.app.schemas.principal import Principal

LOGIN_PATH = "/login"
MEMBER_HOME_PATH = "/dashboard"
ADMIN_HOME_PATH = "/admin/dashboard"


class Decision(str, Enum):
    ALLOW = "ALLOW"
    REDIRECT_TO_LOGIN = "REDIRECT_TO_LOGIN"
    REDIRECT_TO_MEMBER_HOME = "REDIRECT_TO_MEMBER_HOME"
    REDIRECT_TO_ADMIN_HOME = "REDIRECT_TO_ADMIN_HOME"


_REDIRECT_PATHS = {
    Decision.REDIRECT_TO_LOGIN: LOGIN_PATH,
    Decision.REDIRECT_TO_MEMBER_HOME: MEMBER_HOME_PATH,
    Decision.REDIRECT_TO_ADMIN_HOME: ADMIN_HOME_PATH,
}


def decide(principal: Optional[Principal], is_admin: bool, route_requires_admin: bool) -> Decision:
    if principal is None:
        return Decision.REDIRECT_TO_LOGIN
    if route_requires_admin and not is_admin:
        return Decision.REDIRECT_TO_MEMBER_HOME
    if not route_requires_admin and is_admin:
        return Decision.REDIRECT_TO_ADMIN_HOME
    return Decision.ALLOW


def redirect_path(decision: Decision) -> Optional[str]:
    """Target path of a redirect decision; None for ALLOW."""
    return _REDIRECT_PATHS.get(decision)


def home_path(is_admin: bool) -> str:
    return ADMIN_HOME_PATH if is_admin else MEMBER_HOME_PATH
