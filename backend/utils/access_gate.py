"""
Role-based access decisions shared by the dashboard views and the JSON API.

`authorize` is pure: it reads a session state and returns a decision.
Views turn the decision into a redirect or a loading response; the API
dependencies turn it into 401/403.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from models.user import Role

LOGIN_PATH = "/login"
HOME_PATH = "/"


# =========================
# SESSION STATES
# =========================

@dataclass(frozen=True)
class Unknown:
    """Session check still in flight."""


@dataclass(frozen=True)
class Unauthenticated:
    error: Optional[str] = None


@dataclass(frozen=True)
class Authenticated:
    user_id: str
    role: Role


SessionState = Union[Unknown, Unauthenticated, Authenticated]


# =========================
# DECISIONS
# =========================

@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class RedirectTo:
    path: str


Decision = Union[Allow, Pending, RedirectTo]


def authorize(session: SessionState, required_roles: Optional[Iterable] = None) -> Decision:
    if isinstance(session, Unknown):
        return Pending()

    if not isinstance(session, Authenticated):
        return RedirectTo(LOGIN_PATH)

    roles = {Role.parse(r) for r in (required_roles or ())}
    if roles and session.role not in roles:
        return RedirectTo(HOME_PATH)

    return Allow()


def dashboard_path(role: Role) -> str:
    return f"/dashboard/{role.value}"
