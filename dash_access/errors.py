"""
Error taxonomy for the access-control core.

Each error carries the HTTP status and the short machine-readable reason the
API boundary reports. ``UnknownCategory`` and ``Internal`` are never detailed
to the caller.
"""


class AccessError(Exception):
    status_code = 500
    reason = "internal_error"

    def __init__(self, message: str = "", reason: str = None):
        super().__init__(message or self.reason)
        if reason is not None:
            self.reason = reason


class Unauthenticated(AccessError):
    """No credential, a malformed one, or one the identity provider rejected."""
    status_code = 401
    reason = "unauthenticated"


class ProfileIncomplete(AccessError):
    """Authenticated, but the caller still has to finish profile setup."""
    status_code = 403
    reason = "profile_incomplete"


class Unauthorized(AccessError):
    """Authenticated with a known role that lacks the required permission."""
    status_code = 403
    reason = "insufficient_permission"


class UnknownCategory(AccessError):
    """A data category with no sensitivity entry: a misconfiguration."""


class Internal(AccessError):
    """Unexpected failure in a downstream collaborator."""
