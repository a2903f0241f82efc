"""
Unit tests for data-category classification and level visibility.
"""

import pytest

from dash_access import sensitivity
from dash_access.errors import UnknownCategory
from dash_access.models import Role, SensitivityLevel


def test_classify_known_categories():
    assert sensitivity.classify("client.basic") is SensitivityLevel.INTERNAL
    assert sensitivity.classify("client.medical") is SensitivityLevel.RESTRICTED
    assert sensitivity.classify("notes.basic") is SensitivityLevel.CONFIDENTIAL


def test_classify_unknown_raises():
    with pytest.raises(UnknownCategory):
        sensitivity.classify("client.genome")


def test_levels_are_ordered():
    assert (SensitivityLevel.PUBLIC < SensitivityLevel.INTERNAL
            < SensitivityLevel.CONFIDENTIAL < SensitivityLevel.RESTRICTED)


@pytest.mark.parametrize("level, allowed", [
    (SensitivityLevel.PUBLIC, {"admin", "therapist", "associate", "viewer"}),
    (SensitivityLevel.INTERNAL, {"admin", "therapist", "associate"}),
    (SensitivityLevel.CONFIDENTIAL, {"admin", "therapist", "associate"}),
    (SensitivityLevel.RESTRICTED, {"admin", "therapist"}),
])
def test_can_access_by_level(level, allowed):
    for role in Role:
        assert sensitivity.can_access(level, role) is (role.value in allowed)


def test_can_access_unknown_role_is_denied():
    assert sensitivity.can_access(SensitivityLevel.PUBLIC, "superuser") is False


def test_can_access_category_unknown_is_denied(capsys):
    assert sensitivity.can_access_category("client.genome", Role.ADMIN) is False
    assert "client.genome" in capsys.readouterr().err


def test_register_category(monkeypatch):
    monkeypatch.setitem(sensitivity.DATA_SENSITIVITY, "plans.summary", SensitivityLevel.CONFIDENTIAL)
    sensitivity.register_category("plans.summary", SensitivityLevel.CONFIDENTIAL)
    with pytest.raises(ValueError, match="already registered"):
        sensitivity.register_category("plans.summary", SensitivityLevel.PUBLIC)
    with pytest.raises(ValueError, match="Invalid sensitivity level"):
        sensitivity.register_category("plans.detail", "restricted")


# ── Tests: category inference ────────────────────────────────────────

def test_infer_client_category(intake_client):
    assert sensitivity.infer_client_category({"id": 1, "name": "A"}) == "client.basic"
    assert sensitivity.infer_client_category({"billing": {"cardType": "Visa"}}) == "client.personal"
    assert sensitivity.infer_client_category({"medical": {"physicianName": "X"}}) == "client.medical"
    assert sensitivity.infer_client_category(intake_client) == "client.financial"


def test_infer_note_category():
    assert sensitivity.infer_note_category({"subject": "Intake"}) == "notes.basic"
    assert sensitivity.infer_note_category({"assessment": "Improving"}) == "notes.detailed"
