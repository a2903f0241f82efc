"""
Role-specific redaction of client, billing and notes records.

``filter_for_role`` is the single entry point. It classifies the record's
data category, checks the role may see that level at all, then hands the
record to the role's strategy. Every result is a fresh structure; the
caller's record is never touched. Fields are dropped, never masked.
"""

import copy
import sys
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from dash_access.config import NEVER_SHARED_FIELDS, NEVER_SHARED_NESTED
from dash_access.errors import UnknownCategory
from dash_access.models import Role, parse_role
from dash_access.sensitivity import can_access, classify

Record = Dict[str, Any]


def _without(record: Mapping[str, Any], *keys: str) -> Record:
    return {k: copy.deepcopy(v) for k, v in record.items() if k not in keys}


def _project(record: Mapping[str, Any], *keys: str) -> Record:
    return {k: copy.deepcopy(record.get(k)) for k in keys}


def _scrub(value: Any) -> Any:
    """Drop card data and medication lists at any depth."""
    if isinstance(value, Mapping):
        out = {}
        for k, v in value.items():
            if k in NEVER_SHARED_FIELDS:
                continue
            if k in NEVER_SHARED_NESTED:
                # A bare string or array is the list itself.
                if not isinstance(v, Mapping):
                    continue
                v = {ik: iv for ik, iv in v.items() if ik not in NEVER_SHARED_NESTED[k]}
            out[k] = _scrub(v)
        return out
    if isinstance(value, list):
        return [_scrub(v) for v in value]
    return copy.deepcopy(value)


# ── Strategies ───────────────────────────────────────────────────────

class FilterStrategy:
    role: Role

    def reshape(self, record: Mapping[str, Any], category: str) -> Optional[Record]:
        raise NotImplementedError


class AdminStrategy(FilterStrategy):
    role = Role.ADMIN

    def reshape(self, record, category):
        return copy.deepcopy(dict(record))


class TherapistStrategy(FilterStrategy):
    role = Role.THERAPIST

    def reshape(self, record, category):
        if category == "client.personal":
            return _without(record, "billing")
        if category == "client.financial":
            # Intake records keep these on the insurance sub-object.
            source = record
            insurance = record.get("insurance")
            if "paymentOption" not in record and isinstance(insurance, Mapping):
                source = insurance
            return _project(source, "paymentOption", "provider", "planName")
        return _without(record)


class AssociateStrategy(FilterStrategy):
    role = Role.ASSOCIATE

    def reshape(self, record, category):
        if category == "client.personal":
            return _without(record, "medical", "billing", "insurance")
        if category in {"client.medical", "client.financial"}:
            return None
        return _without(record)


class ViewerStrategy(FilterStrategy):
    role = Role.VIEWER

    def reshape(self, record, category):
        if category == "client.basic":
            return _project(record, "id", "name", "active")
        if category == "notes.basic":
            return _project(record, "id", "subject", "timestamp", "therapistName")
        return None


STRATEGIES: Dict[Role, FilterStrategy] = {
    s.role: s for s in (AdminStrategy(), TherapistStrategy(), AssociateStrategy(), ViewerStrategy())
}

_missing = set(Role) - set(STRATEGIES)
if _missing:
    raise RuntimeError(f"No filter strategy for roles: {sorted(r.value for r in _missing)}")


# ── Entry points ─────────────────────────────────────────────────────

def filter_for_role(record: Mapping[str, Any], category: str, role) -> Optional[Record]:
    """Return the view of *record* that *role* may see, or None to omit it."""
    if not isinstance(record, Mapping):
        raise TypeError(f"Expected a mapping record, got {type(record).__name__}.")

    try:
        level = classify(category)
    except UnknownCategory as e:
        print(f"[WARN] Filter denied: {e} Add it to DATA_SENSITIVITY.", file=sys.stderr)
        return None

    role = parse_role(role)
    if role is None:
        return None

    if not can_access(level, role):
        return None

    view = STRATEGIES[role].reshape(record, category)
    if view is None or role is Role.ADMIN:
        return view
    return _scrub(view)


def filter_many(
    records: Iterable[Mapping[str, Any]],
    category: Union[str, Callable[[Mapping[str, Any]], str]],
    role,
) -> List[Record]:
    """Filter a list of records, omitting any the role may not see.

    *category* is either a fixed tag or a function that picks one per record.
    """
    out = []
    for record in records:
        cat = category(record) if callable(category) else category
        view = filter_for_role(record, cat, role)
        if view is not None:
            out.append(view)
    return out
