"""
Domain dataclasses and enumerations used across the application.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Optional


class Role(str, Enum):
    """The closed set of access tiers. ``therapist`` also covers billing staff."""
    ADMIN = "admin"
    THERAPIST = "therapist"
    ASSOCIATE = "associate"
    VIEWER = "viewer"


def parse_role(value) -> Optional[Role]:
    """Return the Role named by *value*, or None if it names no role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return None


# What users see; the access rules never look at these.
ROLE_DISPLAY_NAMES = {
    Role.ADMIN: "Administrator",
    Role.THERAPIST: "Billing",
    Role.ASSOCIATE: "Associate",
    Role.VIEWER: "Viewer",
}


class SensitivityLevel(IntEnum):
    PUBLIC = 0
    INTERNAL = 1
    CONFIDENTIAL = 2
    RESTRICTED = 3


class DecisionReason(str, Enum):
    GRANTED = "granted"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    UNKNOWN_ROLE = "unknown_role"
    UNKNOWN_PERMISSION = "unknown_permission"


class AuthState(str, Enum):
    """Progress of one inbound operation through the authorization pipeline."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTHORIZING_ROLE = "authorizing_role"
    AUTHORIZED = "authorized"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Principal:
    """The verified identity behind a bearer token."""
    id: str
    email: str
    email_verified: bool


@dataclass
class Profile:
    """A row of the profile store."""
    user_id: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: Optional[str]
    email: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(
            (self.first_name or "").strip()
            and (self.last_name or "").strip()
            and (self.role or "").strip()
        )

    @property
    def name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: DecisionReason


@dataclass
class AccessContext:
    """Represents the caller's identity and resolved role for one request."""
    principal: Principal
    role: Role
    needs_setup: bool = False
    profile: Optional[Profile] = None

    # UI gating helpers. Imported lazily: both modules import this one.

    def has_permission(self, permission: str) -> bool:
        from dash_access.permissions import has_permission
        return has_permission(self.role, permission)

    def has_any_permission(self, permissions: Iterable[str]) -> bool:
        from dash_access.permissions import has_any
        return has_any(self.role, permissions)

    def has_all_permissions(self, permissions: Iterable[str]) -> bool:
        from dash_access.permissions import has_all
        return has_all(self.role, permissions)

    def can_access_category(self, category: str) -> bool:
        from dash_access.sensitivity import can_access_category
        return can_access_category(category, self.role)
