"""
Centralised configuration constants and environment helpers.
"""

import os
import sys
from typing import List

from dotenv import load_dotenv

load_dotenv()


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def env_flag(name: str, default: bool) -> bool:
    """Only an explicit "false" (any case) turns a default-on flag off, and vice versa."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    if default:
        return raw.strip().lower() != "false"
    return raw.strip().lower() == "true"


def env_list(name: str, default: str) -> List[str]:
    """Comma-separated variable as a list, blanks dropped."""
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# ── Identity / tokens ────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_ALGORITHM = "HS256"
TOKEN_AUDIENCE = "dash-therapy-app"
TOKEN_ISSUER = "dash-therapy-app"
TOKEN_EXPIRY_HOURS = int(os.getenv("TOKEN_EXPIRY_HOURS", "1"))

# Unverified email addresses are turned away at the middleware.
REQUIRE_VERIFIED_EMAIL = env_flag("REQUIRE_VERIFIED_EMAIL", True)

# ── Role resolution ──────────────────────────────────────────────────
# Baseline role handed out only while the profile store is unreachable.
FALLBACK_ROLE = "therapist"
PROFILE_LOOKUP_TIMEOUT_SECONDS = int(os.getenv("PROFILE_LOOKUP_TIMEOUT_SECONDS", "5"))

# ── Fields no non-admin view may ever carry ──────────────────────────
NEVER_SHARED_FIELDS = {
    "cardNumber", "cardSecurityCode", "cardExpiration",
}
# Sub-objects whose listed keys are dropped for non-admin views. When the
# value is a string or array instead of an object, the whole key goes.
NEVER_SHARED_NESTED = {
    "medications": {"list"},
}

# ── API server ───────────────────────────────────────────────────────
CORS_ORIGINS = env_list("CORS_ORIGINS", "http://localhost:3000,https://therapist-online.web.app")
