from __future__ import annotations

from uuid import uuid4

import pytest

from bride_buddy.errors import ValidationError
from bride_buddy.turn_processing.turns import validate_chat_request


def test_valid_request_parses_wire_aliases() -> None:
    sid = uuid4()
    req = validate_chat_request(
        {
            "sessionId": str(sid),
            "message": "Hi!",
            "isOnboarding": True,
            "userLocation": {"latitude": 40.7, "longitude": -74.0},
        }
    )

    assert req.session_id == sid
    assert req.is_onboarding is True
    assert req.user_location is not None
    assert req.user_location.latitude == 40.7


def test_optional_fields_default_to_off() -> None:
    req = validate_chat_request({"sessionId": str(uuid4()), "message": "Hi", "userLocation": None, "isOnboarding": None})
    assert req.is_onboarding is False
    assert req.user_location is None


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"sessionId": "not-a-uuid", "message": "hi"}, "sessionId"),
        ({"sessionId": str(uuid4()), "message": ""}, "message"),
        ({"sessionId": str(uuid4()), "message": "   "}, "message"),
        ({"sessionId": str(uuid4()), "message": "x" * 5001}, "message"),
        ({"message": "hi"}, "sessionId"),
        ({"sessionId": str(uuid4()), "message": "hi", "userLocation": {"latitude": 95, "longitude": 0}}, "userLocation"),
    ],
)
def test_structural_violations_raise_with_field_details(payload: dict, field: str) -> None:
    with pytest.raises(ValidationError) as e:
        validate_chat_request(payload)

    assert e.value.status_code == 400
    assert e.value.message == "Invalid input"
    assert any(issue["loc"][0] == field for issue in e.value.details)


def test_message_at_max_length_is_accepted() -> None:
    req = validate_chat_request({"sessionId": str(uuid4()), "message": "x" * 5000})
    assert len(req.message) == 5000


def test_non_object_payload_is_rejected() -> None:
    with pytest.raises(ValidationError):
        validate_chat_request(None)
    with pytest.raises(ValidationError):
        validate_chat_request(["sessionId"])
