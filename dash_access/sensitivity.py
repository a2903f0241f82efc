"""
Data sensitivity classification and level-based visibility.
"""

import sys
from typing import Any, Dict, Mapping

from dash_access.errors import UnknownCategory
from dash_access.models import Role, SensitivityLevel, parse_role

# ── Category → level ─────────────────────────────────────────────────
DATA_SENSITIVITY: Dict[str, SensitivityLevel] = {
    # Client data
    "client.basic": SensitivityLevel.INTERNAL,
    "client.personal": SensitivityLevel.CONFIDENTIAL,
    "client.medical": SensitivityLevel.RESTRICTED,
    "client.financial": SensitivityLevel.RESTRICTED,

    # Therapy notes
    "notes.basic": SensitivityLevel.CONFIDENTIAL,
    "notes.detailed": SensitivityLevel.RESTRICTED,

    # Billing
    "billing.basic": SensitivityLevel.INTERNAL,
    "billing.detailed": SensitivityLevel.CONFIDENTIAL,
    "billing.payment": SensitivityLevel.RESTRICTED,

    # Users
    "user.basic": SensitivityLevel.INTERNAL,
    "user.detailed": SensitivityLevel.CONFIDENTIAL,

    # System
    "system.logs": SensitivityLevel.RESTRICTED,
    "system.settings": SensitivityLevel.CONFIDENTIAL,
}

# Minimum set of roles allowed to see each level.
LEVEL_AUDIENCE = {
    SensitivityLevel.PUBLIC: frozenset(Role),
    SensitivityLevel.INTERNAL: frozenset({Role.ADMIN, Role.THERAPIST, Role.ASSOCIATE}),
    SensitivityLevel.CONFIDENTIAL: frozenset({Role.ADMIN, Role.THERAPIST, Role.ASSOCIATE}),
    SensitivityLevel.RESTRICTED: frozenset({Role.ADMIN, Role.THERAPIST}),
}


def classify(category: str) -> SensitivityLevel:
    """Return the sensitivity level of a data category."""
    try:
        return DATA_SENSITIVITY[category]
    except (KeyError, TypeError):
        raise UnknownCategory(f"No sensitivity entry for data category '{category}'.")


def register_category(category: str, level: SensitivityLevel) -> None:
    """Add a category together with its level; existing entries are never overwritten."""
    if not isinstance(level, SensitivityLevel):
        raise ValueError(f"Invalid sensitivity level {level!r}.")
    if category in DATA_SENSITIVITY and DATA_SENSITIVITY[category] != level:
        raise ValueError(f"Category '{category}' is already registered as {DATA_SENSITIVITY[category].name}.")
    DATA_SENSITIVITY[category] = level


def can_access(level: SensitivityLevel, role) -> bool:
    role = parse_role(role)
    return role is not None and role in LEVEL_AUDIENCE.get(level, frozenset())


def can_access_category(category: str, role) -> bool:
    """Like can_access(), but unknown categories are treated as off limits."""
    try:
        level = classify(category)
    except UnknownCategory as e:
        print(f"[WARN] {e} Treating as restricted.", file=sys.stderr)
        return False
    return can_access(level, role)


# ── Category inference ───────────────────────────────────────────────

def infer_client_category(record: Mapping[str, Any]) -> str:
    """Pick the category a client record should be filtered under.

    Later rules win: a record with a card number on its billing sub-object is
    financial even if it also carries medical details.
    """
    category = "client.basic"
    if record.get("medical") or record.get("billing"):
        category = "client.personal"
    if record.get("medical"):
        category = "client.medical"
    billing = record.get("billing")
    if isinstance(billing, Mapping) and billing.get("cardNumber"):
        category = "client.financial"
    return category


def infer_note_category(note: Mapping[str, Any]) -> str:
    if note.get("subjective") or note.get("assessment"):
        return "notes.detailed"
    return "notes.basic"
