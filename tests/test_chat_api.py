from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

import pytest

import bride_buddy.turn_processing.turns as turns
from bride_buddy import store
from bride_buddy.agents.base import Completion
from bride_buddy.api.models import Profile, SubscriptionTier, Timeline


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _seed(r, now, *, user_id: str = "user-1", **profile_fields) -> str:
    fields = {"full_name": "Emma", "subscription_tier": SubscriptionTier.vip, "trial_start_date": now - timedelta(days=30)}
    fields.update(profile_fields)
    store.save_profile(r=r, profile=Profile(user_id=user_id, **fields))
    store.save_timeline(r=r, timeline=Timeline(user_id=user_id))
    return str(store.create_session(r=r, user_id=user_id).id)


@pytest.fixture()
def stub_model(monkeypatch: pytest.MonkeyPatch):
    def _install(result):
        async def _create_completion(**kwargs):  # type: ignore[no-untyped-def]
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(turns, "create_completion", _create_completion)

    return _install


def test_healthcheck_and_info(client_and_redis) -> None:
    client, _ = client_and_redis
    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "bride-buddy"


def test_chat_success_returns_only_success_flag(client_and_redis, make_token, fixed_now, stub_model) -> None:
    client, r = client_and_redis
    sid = _seed(r, fixed_now)
    stub_model(Completion(content="Congrats!"))

    res = client.post("/chat", json={"sessionId": sid, "message": "We got engaged!"}, headers=_auth(make_token()))

    assert res.status_code == 200
    assert res.json() == {"success": True}

    listed = client.get(f"/sessions/{sid}/messages", headers=_auth(make_token()))
    assert listed.status_code == 200
    assert [m["content"] for m in listed.json()["messages"]] == ["We got engaged!", "Congrats!"]


def test_chat_invalid_input_body(client_and_redis, make_token) -> None:
    client, _ = client_and_redis

    res = client.post("/chat", json={"sessionId": "not-a-uuid", "message": ""}, headers=_auth(make_token()))

    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Invalid input"
    fields = {tuple(d["loc"]) for d in body["details"]}
    assert ("sessionId",) in fields
    assert ("message",) in fields


def test_chat_non_json_body_is_invalid_input(client_and_redis, make_token) -> None:
    client, _ = client_and_redis

    res = client.post(
        "/chat",
        content=b"this is not json",
        headers={**_auth(make_token()), "Content-Type": "application/json"},
    )

    assert res.status_code == 400
    assert res.json()["error"] == "Invalid input"


def test_chat_missing_token_is_unauthenticated(client_and_redis, fixed_now) -> None:
    client, r = client_and_redis
    sid = _seed(r, fixed_now)

    res = client.post("/chat", json={"sessionId": sid, "message": "hi"})

    assert res.status_code == 401
    assert "error" in res.json()


def test_chat_foreign_session_is_forbidden(client_and_redis, make_token, fixed_now) -> None:
    client, r = client_and_redis
    sid = _seed(r, fixed_now, user_id="someone-else")

    res = client.post("/chat", json={"sessionId": sid, "message": "hi"}, headers=_auth(make_token("user-1")))

    assert res.status_code == 403
    assert store.list_messages(r=r, session_id=UUID(sid)) == []


def test_chat_quota_exceeded(client_and_redis, make_token, fixed_now) -> None:
    client, r = client_and_redis
    sid = _seed(
        r,
        fixed_now,
        subscription_tier=SubscriptionTier.free,
        messages_today=20,
        last_message_date=fixed_now.date(),
    )

    res = client.post("/chat", json={"sessionId": sid, "message": "one more"}, headers=_auth(make_token()))

    assert res.status_code == 429
    assert "error" in res.json()


def test_chat_trial_past_window_is_forbidden(client_and_redis, make_token, fixed_now) -> None:
    client, r = client_and_redis
    sid = _seed(r, fixed_now, subscription_tier=SubscriptionTier.trial, trial_start_date=fixed_now - timedelta(days=9))

    res = client.post("/chat", json={"sessionId": sid, "message": "hi"}, headers=_auth(make_token()))

    assert res.status_code == 403


def test_chat_unexpected_failure_is_friendly_500(client_and_redis, make_token, fixed_now, stub_model) -> None:
    client, r = client_and_redis
    sid = _seed(r, fixed_now)
    stub_model(RuntimeError("socket closed"))

    res = client.post("/chat", json={"sessionId": sid, "message": "hi"}, headers=_auth(make_token()))

    assert res.status_code == 500
    body = res.json()
    assert body["error"].startswith("Sorry, something went wrong")
    assert "socket closed" in body["details"]


def test_create_session_then_list_messages(client_and_redis, make_token) -> None:
    client, _ = client_and_redis

    created = client.post("/sessions", json={"title": "Venue ideas"}, headers=_auth(make_token()))
    assert created.status_code == 201
    session = created.json()
    assert session["user_id"] == "user-1"
    assert session["title"] == "Venue ideas"

    listed = client.get(f"/sessions/{session['id']}/messages", headers=_auth(make_token()))
    assert listed.status_code == 200
    assert listed.json()["messages"] == []


def test_list_messages_of_foreign_session_is_forbidden(client_and_redis, make_token) -> None:
    client, _ = client_and_redis
    created = client.post("/sessions", json={}, headers=_auth(make_token("owner")))

    res = client.get(f"/sessions/{created.json()['id']}/messages", headers=_auth(make_token("intruder")))

    assert res.status_code == 403


def test_create_session_requires_token(client_and_redis) -> None:
    client, _ = client_and_redis
    assert client.post("/sessions", json={}).status_code == 401


def test_free_tier_turn_counts_message(client_and_redis, make_token, fixed_now, stub_model) -> None:
    client, r = client_and_redis
    sid = _seed(
        r,
        fixed_now,
        subscription_tier=SubscriptionTier.free,
        messages_today=5,
        last_message_date=date(2025, 3, 9),
    )
    stub_model(Completion(content="ok"))

    res = client.post("/chat", json={"sessionId": sid, "message": "hi"}, headers=_auth(make_token()))

    assert res.status_code == 200
    profile = store.get_profile(r=r, user_id="user-1")
    assert profile is not None
    # A new day resets the counter before this message is counted.
    assert profile.messages_today == 1
    assert profile.last_message_date == fixed_now.date()
