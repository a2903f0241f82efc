"""
Flask route handlers for the REST API.
"""

import sys

from flask import request, jsonify
from sqlalchemy import text

from dash_access.api.auth import authorize
from dash_access.filtering import filter_for_role, filter_many
from dash_access.models import ROLE_DISPLAY_NAMES, Role
from dash_access.permissions import (
    ASSIGN_THERAPISTS,
    EDIT_CLIENTS,
    MANAGE_USERS,
    VIEW_BILLING,
    VIEW_CLIENTS,
    VIEW_NOTES,
    permissions_for,
)
from dash_access.sensitivity import DATA_SENSITIVITY, infer_client_category, infer_note_category
from dash_access.store import ProfileExists


def _json_body():
    if not request.is_json:
        return None
    return request.get_json(silent=True)


def register_routes(app, engine, profiles, clients, notes):
    """Register all API routes on the Flask *app*."""

    # ── Health ───────────────────────────────────────────────────────

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check DB failure: {e}", file=sys.stderr)

        healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if healthy else "unhealthy",
            "checks": checks,
        }), 200 if healthy else 503

    # ── Current user ─────────────────────────────────────────────────

    @app.route("/api/user/permissions", methods=["GET"])
    @authorize([])
    def get_my_permissions():
        ctx = request.access_ctx
        return jsonify({
            "user": {
                "id": ctx.principal.id,
                "email": ctx.principal.email,
                "name": ctx.profile.name if ctx.profile else None,
            },
            "role": ctx.role.value,
            "role_display_name": ROLE_DISPLAY_NAMES[ctx.role],
            "permissions": sorted(permissions_for(ctx.role)),
            "categories": {
                cat: ctx.can_access_category(cat) for cat in sorted(DATA_SENSITIVITY)
            },
            "needs_setup": ctx.needs_setup,
        }), 200

    @app.route("/api/users/profile", methods=["POST"])
    @authorize([])
    def create_profile():
        data = _json_body()
        if data is None:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        first_name = str(data.get("firstName") or "").strip()
        last_name = str(data.get("lastName") or "").strip()
        role = str(data.get("role") or Role.THERAPIST.value).strip().lower()
        if not first_name or not last_name:
            return jsonify({"error": "firstName and lastName are required"}), 400
        # Self-service setup never hands out admin.
        if role not in {r.value for r in Role} or role == Role.ADMIN.value:
            return jsonify({"error": f"Role '{role}' cannot be chosen at setup"}), 400

        ctx = request.access_ctx
        try:
            profile = profiles.create(ctx.principal.id, ctx.principal.email, first_name, last_name, role)
        except ProfileExists:
            return jsonify({"error": "profile_exists"}), 409

        print(f"[audit] profile created user={ctx.principal.id} role={role}", file=sys.stderr)
        return jsonify({
            "success": True,
            "userData": {
                "uid": profile.user_id,
                "email": profile.email,
                "firstName": profile.first_name,
                "lastName": profile.last_name,
                "name": profile.name,
                "role": profile.role,
                "createdAt": profile.created_at,
            },
        }), 201

    @app.route("/api/users/role", methods=["POST"])
    @authorize([MANAGE_USERS])
    def update_user_role():
        data = _json_body()
        if data is None:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        user_id = str(data.get("userId") or "").strip()
        role = str(data.get("role") or "").strip().lower()
        if not user_id:
            return jsonify({"error": "userId is required"}), 400
        if role not in {r.value for r in Role}:
            return jsonify({"error": f"Unsupported role '{role}'"}), 400

        if not profiles.update_role(user_id, role):
            return jsonify({"error": "User not found"}), 404

        ctx = request.access_ctx
        print(f"[audit] role changed user={user_id} role={role} by={ctx.principal.id}", file=sys.stderr)
        return jsonify({"success": True, "userId": user_id, "role": role}), 200

    # ── Clients ──────────────────────────────────────────────────────

    @app.route("/api/clients", methods=["GET"])
    @authorize([VIEW_CLIENTS])
    def list_clients():
        ctx = request.access_ctx
        visible = []
        for record in clients.list():
            view = filter_for_role(record, infer_client_category(record), ctx.role)
            if view is None:
                continue
            # Reduced views may not carry the id; the caller needs it to follow up.
            visible.append({**view, "id": record["id"]})
        return jsonify(visible), 200

    @app.route("/api/clients/<int:client_id>", methods=["GET"])
    @authorize([VIEW_CLIENTS])
    def get_client(client_id):
        record = clients.get(client_id)
        if record is None:
            return jsonify({"error": "Client not found"}), 404

        ctx = request.access_ctx
        view = filter_for_role(record, infer_client_category(record), ctx.role)
        # Indistinguishable from a missing client on purpose.
        if view is None:
            return jsonify({"error": "Client not found"}), 404
        return jsonify(view), 200

    @app.route("/api/clients/<int:client_id>/billing", methods=["GET"])
    @authorize([VIEW_BILLING])
    def get_client_billing(client_id):
        record = clients.get(client_id)
        if record is None:
            return jsonify({"error": "Client not found"}), 404

        ctx = request.access_ctx
        view = filter_for_role(record.get("billing") or {}, "billing.detailed", ctx.role)
        return jsonify({"clientId": client_id, "billing": view}), 200

    @app.route("/api/clients/<int:client_id>/notes", methods=["GET"])
    @authorize([VIEW_NOTES])
    def get_client_notes(client_id):
        ctx = request.access_ctx
        visible = filter_many(notes.for_client(client_id), infer_note_category, ctx.role)
        return jsonify(visible), 200

    @app.route("/api/clients/therapist", methods=["POST"])
    @authorize([ASSIGN_THERAPISTS])
    def update_client_therapist():
        data = _json_body()
        if data is None:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        client_id = str(data.get("clientId") or "").strip()
        therapist = str(data.get("therapist") or "").strip()
        if not client_id:
            return jsonify({"error": "Client ID is required"}), 400

        if not clients.set_therapist(client_id, therapist):
            return jsonify({"error": "Client not found"}), 404
        return jsonify({"success": True, "message": "Therapist updated successfully"}), 200

    @app.route("/api/clients/status", methods=["POST"])
    @authorize([EDIT_CLIENTS])
    def update_client_status():
        data = _json_body()
        if data is None:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        client_id = str(data.get("clientId") or "").strip()
        if not client_id:
            return jsonify({"error": "Client ID is required"}), 400
        if not isinstance(data.get("status"), bool):
            return jsonify({"error": "status must be true or false"}), 400

        if not clients.set_status(client_id, data["status"]):
            return jsonify({"error": "Client not found"}), 404
        return jsonify({"success": True, "message": "Status updated successfully"}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "internal_error"}), 500
