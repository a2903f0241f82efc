#!/usr/bin/env python3
"""
Issue a signed bearer token for local testing of the API.

Usage: python scripts/issue_dev_token.py <user_id> <email> [role]
Prints the token, a matching profile INSERT and a fresh secret suggestion.
"""

import secrets
import sys

from dash_access.api.auth import generate_token
from dash_access.models import Principal
from dash_access.rbac import coerce_role


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__.strip(), file=sys.stderr)
        sys.exit(2)

    user_id, email = sys.argv[1], sys.argv[2]
    role = coerce_role(sys.argv[3] if len(sys.argv) > 3 else "therapist")

    print("=" * 70)
    print("Dev Bearer Token")
    print("=" * 70)
    print()
    token = generate_token(Principal(id=user_id, email=email, email_verified=True))
    print(f"Authorization: Bearer {token}")
    print()

    print("=" * 70)
    print("Profile Insert Example:")
    print("=" * 70)
    print(f"""
INSERT INTO user_profiles
    (user_id, email, first_name, last_name, role, created_at)
VALUES
    ('{user_id}', '{email}', 'Dev', 'User', '{role.value}', CURRENT_TIMESTAMP);
""")

    print("=" * 70)
    print("Secret for .env (tokens above are signed with the current JWT_SECRET_KEY):")
    print("=" * 70)
    print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
