"""
Bearer-token verification and the authorization middleware for the Flask API.
"""

import sys
import traceback
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Dict, Iterable, Optional

import jwt
from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from dash_access import config
from dash_access.errors import AccessError, ProfileIncomplete, Unauthenticated
from dash_access.models import AccessContext, AuthState, Principal, Role
from dash_access.permissions import CATALOG, has_all
from dash_access.rbac import load_access_context


def generate_token(principal: Principal, expires_in_hours: Optional[int] = None) -> str:
    """Sign a bearer token for *principal*."""
    hours = config.TOKEN_EXPIRY_HOURS if expires_in_hours is None else expires_in_hours
    payload = {
        "sub": principal.id,
        "email": principal.email,
        "email_verified": principal.email_verified,
        "aud": config.TOKEN_AUDIENCE,
        "iss": config.TOKEN_ISSUER,
        "iat": datetime.utcnow(),
        "exp": datetime.utcnow() + timedelta(hours=hours),
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.TOKEN_ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a token and return the decoded payload (or None)."""
    try:
        return jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.TOKEN_ALGORITHM],
            audience=config.TOKEN_AUDIENCE,
            issuer=config.TOKEN_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def verify_bearer(auth_header: str) -> Principal:
    """Turn an ``Authorization: Bearer ...`` header into a Principal."""
    parts = (auth_header or "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid authorization header format")

    payload = verify_token(parts[1])
    if not payload or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired token")

    return Principal(
        id=str(payload["sub"]),
        email=str(payload.get("email") or ""),
        email_verified=bool(payload.get("email_verified", False)),
    )


def _fail(status: int, reason: str):
    request.auth_state = AuthState.FAILED
    return jsonify({"error": reason}), status


def _audit_denied(principal: Principal, role, required, reason: str) -> None:
    role_name = role.value if isinstance(role, Role) else role
    print(
        f"[audit] denied user={principal.id} role={role_name} "
        f"required={sorted(required)} reason={reason} "
        f"endpoint={request.method} {request.path}",
        file=sys.stderr,
    )


def authorize(required_permissions: Optional[Iterable[str]] = None):
    """Decorator factory protecting a view with authentication and permissions.

    An empty requirement admits any authenticated caller, including one who
    has not set up a profile yet. The resolved AccessContext is available to
    the view as ``request.access_ctx``.
    """
    required = list(required_permissions or [])
    dangling = [p for p in required if p not in CATALOG]
    if dangling:
        raise ValueError(f"Unknown permission(s) {dangling}; add them to the catalog first.")

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            request.auth_state = AuthState.UNAUTHENTICATED

            auth_header = request.headers.get("Authorization")
            if not auth_header:
                return _fail(401, "missing_credentials")

            request.auth_state = AuthState.AUTHENTICATING
            try:
                principal = verify_bearer(auth_header)
            except Unauthenticated as e:
                return _fail(e.status_code, e.reason)
            request.auth_state = AuthState.AUTHENTICATED

            if config.REQUIRE_VERIFIED_EMAIL and not principal.email_verified:
                _audit_denied(principal, None, required, "email_unverified")
                return _fail(403, "email_unverified")

            request.auth_state = AuthState.AUTHORIZING_ROLE
            store = current_app.config["PROFILE_STORE"]
            try:
                ctx = load_access_context(store, principal)
            except ProfileIncomplete as e:
                if required:
                    _audit_denied(principal, None, required, e.reason)
                    return _fail(e.status_code, e.reason)
                ctx = AccessContext(principal=principal, role=Role.VIEWER, needs_setup=True)
            except Exception as e:
                print(f"[ERROR] Role lookup failed for user {principal.id}: {e}", file=sys.stderr)
                traceback.print_exc()
                return _fail(500, "internal_error")

            request.access_ctx = ctx
            if not has_all(ctx.role, required):
                _audit_denied(principal, ctx.role, required, "insufficient_permission")
                return _fail(403, "insufficient_permission")
            request.auth_state = AuthState.AUTHORIZED

            request.auth_state = AuthState.EXECUTING
            try:
                rv = f(*args, **kwargs)
            except HTTPException:
                request.auth_state = AuthState.FAILED
                raise
            except AccessError as e:
                if e.status_code in (401, 403):
                    _audit_denied(principal, ctx.role, required, e.reason)
                    return _fail(e.status_code, e.reason)
                print(f"[ERROR] {request.method} {request.path} failed: {e!r}", file=sys.stderr)
                traceback.print_exc()
                return _fail(500, "internal_error")
            except Exception as e:
                print(f"[ERROR] {request.method} {request.path} failed: {e!r}", file=sys.stderr)
                traceback.print_exc()
                return _fail(500, "internal_error")

            request.auth_state = AuthState.COMPLETED
            return rv

        return decorated

    return decorator
