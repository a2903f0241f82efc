"""
Permission catalog, role → permission table and the access decision engine.
"""

from typing import Dict, FrozenSet, Iterable, Set, Union

from dash_access.models import AccessDecision, DecisionReason, Role, parse_role

# ── Catalog ──────────────────────────────────────────────────────────

# Client management
VIEW_CLIENTS = "view_clients"
CREATE_CLIENTS = "create_clients"
EDIT_CLIENTS = "edit_clients"
DELETE_CLIENTS = "delete_clients"
ASSIGN_THERAPISTS = "assign_therapists"

# Therapy notes
VIEW_NOTES = "view_notes"
CREATE_NOTES = "create_notes"
EDIT_NOTES = "edit_notes"
DELETE_NOTES = "delete_notes"

# Billing
VIEW_BILLING = "view_billing"
EDIT_BILLING = "edit_billing"
PROCESS_PAYMENTS = "process_payments"

# User management
VIEW_USERS = "view_users"
CREATE_USERS = "create_users"
EDIT_USERS = "edit_users"
DELETE_USERS = "delete_users"
MANAGE_USERS = "manage_users"

# System administration
VIEW_LOGS = "view_logs"
MANAGE_SETTINGS = "manage_settings"
EXPORT_DATA = "export_data"

# Calendar
VIEW_CALENDAR = "view_calendar"
MANAGE_APPOINTMENTS = "manage_appointments"

# Documents
VIEW_DOCUMENTS = "view_documents"
UPLOAD_DOCUMENTS = "upload_documents"
DELETE_DOCUMENTS = "delete_documents"

# The single source of truth. Only register_permission() may grow it.
CATALOG: Set[str] = {
    VIEW_CLIENTS, CREATE_CLIENTS, EDIT_CLIENTS, DELETE_CLIENTS, ASSIGN_THERAPISTS,
    VIEW_NOTES, CREATE_NOTES, EDIT_NOTES, DELETE_NOTES,
    VIEW_BILLING, EDIT_BILLING, PROCESS_PAYMENTS,
    VIEW_USERS, CREATE_USERS, EDIT_USERS, DELETE_USERS, MANAGE_USERS,
    VIEW_LOGS, MANAGE_SETTINGS, EXPORT_DATA,
    VIEW_CALENDAR, MANAGE_APPOINTMENTS,
    VIEW_DOCUMENTS, UPLOAD_DOCUMENTS, DELETE_DOCUMENTS,
}

# ── Role table ───────────────────────────────────────────────────────

ROLE_PERMISSIONS: Dict[Role, Union[Set[str], FrozenSet[str]]] = {
    # Same object as CATALOG, so admin picks up every later registration.
    Role.ADMIN: CATALOG,

    # Therapist doubles as the billing user.
    Role.THERAPIST: frozenset({
        VIEW_CLIENTS, EDIT_CLIENTS, ASSIGN_THERAPISTS,
        VIEW_NOTES, CREATE_NOTES, EDIT_NOTES, DELETE_NOTES,
        VIEW_BILLING, EDIT_BILLING,
        VIEW_CALENDAR, MANAGE_APPOINTMENTS,
        VIEW_DOCUMENTS, UPLOAD_DOCUMENTS, DELETE_DOCUMENTS,
    }),

    Role.ASSOCIATE: frozenset({
        VIEW_CLIENTS, EDIT_CLIENTS,
        VIEW_NOTES, CREATE_NOTES, EDIT_NOTES, DELETE_NOTES,
        VIEW_BILLING,
        VIEW_CALENDAR, MANAGE_APPOINTMENTS,
        VIEW_DOCUMENTS, UPLOAD_DOCUMENTS,
    }),

    Role.VIEWER: frozenset({
        VIEW_CLIENTS, VIEW_BILLING, VIEW_CALENDAR, VIEW_DOCUMENTS,
    }),
}


def register_permission(permission: str) -> None:
    """Add a permission to the catalog at startup. Admin gains it implicitly."""
    if not permission or not isinstance(permission, str):
        raise ValueError("Permission name must be a non-empty string.")
    CATALOG.add(permission)


def _granted(role) -> Union[Set[str], FrozenSet[str]]:
    r = parse_role(role)
    if r is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(r, frozenset())


# ── Decision engine ──────────────────────────────────────────────────

def has_permission(role, permission: str) -> bool:
    return permission in _granted(role)


def has_any(role, permissions: Iterable[str]) -> bool:
    granted = _granted(role)
    return any(p in granted for p in permissions)


def has_all(role, permissions: Iterable[str]) -> bool:
    granted = _granted(role)
    return all(p in granted for p in permissions)


def permissions_for(role) -> FrozenSet[str]:
    """Snapshot of a role's permissions, for display."""
    return frozenset(_granted(role))


def decide(role, required: Iterable[str], mode: str = "all") -> AccessDecision:
    """Explain an all-of / any-of check instead of returning a bare bool."""
    if mode not in {"all", "any"}:
        raise ValueError(f"Unsupported decision mode '{mode}'.")

    required = list(required)
    if parse_role(role) is None:
        return AccessDecision(False, DecisionReason.UNKNOWN_ROLE)

    unknown = [p for p in required if p not in CATALOG]
    if unknown and (mode == "all" or len(unknown) == len(required)):
        return AccessDecision(False, DecisionReason.UNKNOWN_PERMISSION)

    check = has_all if mode == "all" else has_any
    if check(role, required):
        return AccessDecision(True, DecisionReason.GRANTED)
    return AccessDecision(False, DecisionReason.INSUFFICIENT_PERMISSION)
