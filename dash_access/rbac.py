"""
Role-Based Access Control – resolving a principal's role and access context.
"""

import sys
from typing import Optional, Tuple

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from dash_access.config import FALLBACK_ROLE
from dash_access.errors import ProfileIncomplete
from dash_access.models import AccessContext, Principal, Profile, Role, parse_role

# Failures that mean "the store is down", as opposed to "no such user".
STORE_UNAVAILABLE = (OperationalError, PoolTimeoutError, TimeoutError, ConnectionError)


def coerce_role(value) -> Role:
    """Map a stored role string onto the closed Role set. Garbage becomes viewer."""
    return parse_role(value) or Role.VIEWER


def resolve_role(store, user_id: str) -> Tuple[Role, bool, Optional[Profile]]:
    """Look up a user's role in the profile store.

    Returns ``(role, needs_setup, profile)``. A missing or incomplete profile
    raises ProfileIncomplete. If the store itself cannot be reached, the
    baseline role is returned with ``needs_setup`` set so the caller can deal
    with it out of band.
    """
    try:
        profile = store.get(user_id)
    except STORE_UNAVAILABLE as e:
        print(
            f"[WARN] Profile store unreachable for user {user_id}; "
            f"falling back to role '{FALLBACK_ROLE}': {e}",
            file=sys.stderr,
        )
        return Role(FALLBACK_ROLE), True, None

    if profile is None:
        raise ProfileIncomplete(f"No profile for user {user_id}.")
    if not profile.is_complete:
        raise ProfileIncomplete(f"Profile for user {user_id} is missing name or role.")

    return coerce_role(profile.role), False, profile


def load_access_context(store, principal: Principal) -> AccessContext:
    """Resolve the caller's role and bundle it with their identity."""
    role, needs_setup, profile = resolve_role(store, principal.id)
    return AccessContext(
        principal=principal,
        role=role,
        needs_setup=needs_setup,
        profile=profile,
    )
