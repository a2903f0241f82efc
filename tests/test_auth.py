"""
Tests for bearer-token verification and the authorization middleware.
"""

from datetime import datetime, timedelta

import jwt
import pytest
from flask import Flask, jsonify, request

from dash_access import config
from dash_access.api.auth import authorize, generate_token, verify_bearer, verify_token
from dash_access.errors import Internal, Unauthenticated, Unauthorized, UnknownCategory
from dash_access.models import AuthState, Principal, Profile, Role
from dash_access.permissions import MANAGE_USERS, VIEW_NOTES


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeProfileStore:
    def __init__(self, profiles=None, error=None):
        self._profiles = profiles or {}
        self._error = error

    def get(self, user_id):
        if self._error is not None:
            raise self._error
        return self._profiles.get(user_id)


def _headers(user_id="u1", verified=True):
    token = generate_token(Principal(id=user_id, email=f"{user_id}@example.com", email_verified=verified))
    return {"Authorization": f"Bearer {token}"}


def _profile(user_id, role):
    return Profile(user_id=user_id, first_name="Test", last_name="User", role=role)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def make_app(calls):
    """A bare Flask app with one protected view per requirement."""
    def _make(store):
        app = Flask(__name__)
        app.config["PROFILE_STORE"] = store

        @app.route("/open")
        @authorize([])
        def open_view():
            calls.append("open")
            ctx = request.access_ctx
            return jsonify({"role": ctx.role.value, "needs_setup": ctx.needs_setup}), 200

        @app.route("/admin")
        @authorize([MANAGE_USERS])
        def admin_view():
            calls.append("admin")
            return jsonify({"state": request.auth_state.value}), 200

        @app.route("/notes")
        @authorize([VIEW_NOTES])
        def notes_view():
            calls.append("notes")
            return jsonify({"ok": True}), 200

        @app.route("/boom")
        @authorize([])
        def boom():
            raise RuntimeError("db password is hunter2")

        @app.route("/misconfigured")
        @authorize([])
        def misconfigured():
            raise UnknownCategory("No sensitivity entry for 'client.genome'.")

        @app.route("/owner-only")
        @authorize([])
        def owner_only():
            raise Unauthorized("Not your client")

        return app.test_client()
    return _make


# ── Tests: tokens ────────────────────────────────────────────────────

def test_generate_and_verify_token_roundtrip():
    token = generate_token(Principal(id="u9", email="u9@example.com", email_verified=True))
    payload = verify_token(token)
    assert payload["sub"] == "u9"
    assert payload["email_verified"] is True


def test_verify_token_rejects_expired():
    token = generate_token(Principal("u9", "u9@example.com", True), expires_in_hours=-1)
    assert verify_token(token) is None


def test_verify_token_rejects_wrong_secret():
    payload = {
        "sub": "u9", "aud": config.TOKEN_AUDIENCE, "iss": config.TOKEN_ISSUER,
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    token = jwt.encode(payload, "some-other-secret", algorithm="HS256")
    assert verify_token(token) is None


def test_verify_token_rejects_wrong_audience():
    payload = {
        "sub": "u9", "aud": "someone-else", "iss": config.TOKEN_ISSUER,
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    token = jwt.encode(payload, config.SECRET_KEY, algorithm="HS256")
    assert verify_token(token) is None


@pytest.mark.parametrize("header", ["", "Bearer", "Token abc", "Bearer a b", "Bearer not-a-jwt"])
def test_verify_bearer_rejects_malformed(header):
    with pytest.raises(Unauthenticated):
        verify_bearer(header)


def test_verify_bearer_builds_principal():
    principal = verify_bearer(_headers("u5")["Authorization"])
    assert principal == Principal(id="u5", email="u5@example.com", email_verified=True)


def test_authorize_rejects_unknown_permission_at_decoration():
    with pytest.raises(ValueError, match="Unknown permission"):
        authorize(["launch_rockets"])


# ── Tests: middleware pipeline ───────────────────────────────────────

def test_missing_header_is_401(make_app, calls):
    client = make_app(FakeProfileStore())
    resp = client.get("/notes")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "missing_credentials"}
    assert calls == []


def test_invalid_token_is_401(make_app, calls):
    client = make_app(FakeProfileStore())
    resp = client.get("/notes", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "unauthenticated"}
    assert calls == []


def test_unverified_email_is_403(make_app, calls):
    client = make_app(FakeProfileStore({"u1": _profile("u1", "admin")}))
    resp = client.get("/open", headers=_headers("u1", verified=False))
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "email_unverified"}
    assert calls == []


def test_unverified_email_allowed_when_not_required(make_app, monkeypatch):
    monkeypatch.setattr(config, "REQUIRE_VERIFIED_EMAIL", False)
    client = make_app(FakeProfileStore({"u1": _profile("u1", "viewer")}))
    assert client.get("/open", headers=_headers("u1", verified=False)).status_code == 200


def test_therapist_denied_manage_users_and_handler_never_runs(make_app, calls, capsys):
    client = make_app(FakeProfileStore({"t1": _profile("t1", "therapist")}))
    resp = client.get("/admin", headers=_headers("t1"))
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "insufficient_permission"}
    assert calls == []
    err = capsys.readouterr().err
    assert "[audit] denied user=t1 role=therapist" in err


def test_admin_allowed_and_handler_sees_executing_state(make_app, calls):
    client = make_app(FakeProfileStore({"a1": _profile("a1", "admin")}))
    resp = client.get("/admin", headers=_headers("a1"))
    assert resp.status_code == 200
    assert resp.get_json() == {"state": AuthState.EXECUTING.value}
    assert calls == ["admin"]


@pytest.mark.parametrize("role", [r.value for r in Role] + ["superuser"])
def test_empty_requirement_admits_any_role(make_app, calls, role):
    client = make_app(FakeProfileStore({"u1": _profile("u1", role)}))
    resp = client.get("/open", headers=_headers("u1"))
    assert resp.status_code == 200
    expected = role if role != "superuser" else "viewer"
    assert resp.get_json() == {"role": expected, "needs_setup": False}


def test_new_user_passes_empty_requirement_with_setup_flag(make_app):
    client = make_app(FakeProfileStore({}))
    resp = client.get("/open", headers=_headers("new"))
    assert resp.status_code == 200
    assert resp.get_json() == {"role": "viewer", "needs_setup": True}


def test_new_user_blocked_by_requirement_with_distinct_reason(make_app, calls):
    client = make_app(FakeProfileStore({}))
    resp = client.get("/notes", headers=_headers("new"))
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "profile_incomplete"}
    assert calls == []


def test_degraded_store_grants_baseline_role(make_app, calls):
    client = make_app(FakeProfileStore(error=TimeoutError("profile lookup timed out")))
    resp = client.get("/notes", headers=_headers("u1"))
    assert resp.status_code == 200
    assert calls == ["notes"]


def test_unexpected_store_error_is_500(make_app, calls):
    client = make_app(FakeProfileStore(error=Internal("bad row")))
    resp = client.get("/notes", headers=_headers("u1"))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "internal_error"}
    assert calls == []


def test_handler_exception_is_500_without_detail(make_app, capsys):
    client = make_app(FakeProfileStore({"u1": _profile("u1", "viewer")}))
    resp = client.get("/boom", headers=_headers("u1"))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "internal_error"}
    assert "hunter2" not in resp.get_data(as_text=True)
    assert "hunter2" in capsys.readouterr().err


def test_unknown_category_in_handler_is_generic_500(make_app):
    client = make_app(FakeProfileStore({"u1": _profile("u1", "viewer")}))
    resp = client.get("/misconfigured", headers=_headers("u1"))
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "internal_error"}


def test_handler_raised_denial_keeps_its_reason(make_app):
    client = make_app(FakeProfileStore({"u1": _profile("u1", "viewer")}))
    resp = client.get("/owner-only", headers=_headers("u1"))
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "insufficient_permission"}
