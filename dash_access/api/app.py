"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from dash_access.config import CORS_ORIGINS, REQUIRE_VERIFIED_EMAIL, TOKEN_EXPIRY_HOURS
from dash_access.database import init_engine, init_schema
from dash_access.store import ClientStore, NoteStore, ProfileStore
from dash_access.api.routes import register_routes


def create_app(engine=None):
    """Build and return a fully configured Flask application.

    Pass an *engine* to skip the ``DB_URI`` lookup (tests do this).
    """
    app = Flask(__name__)
    CORS(app, origins=CORS_ORIGINS, supports_credentials=True)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()

        print("[init] Ensuring schema...")
        init_schema(engine)
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    profiles = ProfileStore(engine)
    clients = ClientStore(engine)
    notes = NoteStore(engine)
    app.config["PROFILE_STORE"] = profiles

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, profiles, clients, notes)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Therapy Dashboard – Access Control API")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS origins: {', '.join(CORS_ORIGINS)}")
    print(f"[server] Token expiry: {TOKEN_EXPIRY_HOURS} hours")
    print(f"[server] Verified email required: {REQUIRE_VERIFIED_EMAIL}")
    print("\nAPI Endpoints:")
    print(f"  - GET  http://{host}:{port}/health")
    print(f"  - GET  http://{host}:{port}/api/user/permissions")
    print(f"  - POST http://{host}:{port}/api/users/profile")
    print(f"  - POST http://{host}:{port}/api/users/role")
    print(f"  - GET  http://{host}:{port}/api/clients")
    print(f"  - GET  http://{host}:{port}/api/clients/<id>")
    print(f"  - GET  http://{host}:{port}/api/clients/<id>/billing")
    print(f"  - GET  http://{host}:{port}/api/clients/<id>/notes")
    print(f"  - POST http://{host}:{port}/api/clients/therapist")
    print(f"  - POST http://{host}:{port}/api/clients/status")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
