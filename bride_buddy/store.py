from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import redis

from bride_buddy.api.models import (
    ChatMessage,
    ChatSession,
    ChecklistItem,
    MessageRole,
    Profile,
    SubscriptionTier,
    Timeline,
    Vendor,
)


USERS_SET_KEY = "bridebuddy:users"
PROFILE_KEY_PREFIX = "bridebuddy:profile:"  # + {user_id}
TIMELINE_KEY_PREFIX = "bridebuddy:timeline:"  # + {user_id}
SESSION_KEY_PREFIX = "bridebuddy:session:"  # + {session_id}
USER_SESSIONS_KEY_PREFIX = "bridebuddy:sessions:"  # + {user_id}
MESSAGES_KEY_PREFIX = "bridebuddy:messages:"  # + {session_id}
CHECKLIST_KEY_PREFIX = "bridebuddy:checklist:"  # + {user_id}
VENDORS_KEY_PREFIX = "bridebuddy:vendors:"  # + {user_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _profile_key(user_id: str) -> str:
    return f"{PROFILE_KEY_PREFIX}{user_id}"


def _timeline_key(user_id: str) -> str:
    return f"{TIMELINE_KEY_PREFIX}{user_id}"


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def _messages_key(session_id: UUID) -> str:
    return f"{MESSAGES_KEY_PREFIX}{session_id}"


# Sessions + messages


def create_session(*, r: redis.Redis, user_id: str, title: str | None = None) -> ChatSession:
    session = ChatSession(user_id=user_id, title=title, created_at=_now())
    pipe = r.pipeline()
    pipe.set(_session_key(session.id), session.model_dump_json())
    pipe.sadd(f"{USER_SESSIONS_KEY_PREFIX}{user_id}", str(session.id))
    pipe.execute()
    return session


def get_session(*, r: redis.Redis, session_id: UUID) -> ChatSession | None:
    raw = r.get(_session_key(session_id))
    if not raw:
        return None
    return ChatSession.model_validate_json(raw)


def append_message(*, r: redis.Redis, session_id: UUID, role: MessageRole, content: str) -> ChatMessage:
    msg = ChatMessage(session_id=session_id, role=role, content=content, created_at=_now())
    r.rpush(_messages_key(session_id), msg.model_dump_json())
    return msg


def list_messages(*, r: redis.Redis, session_id: UUID, limit: int | None = None) -> list[ChatMessage]:
    """Messages in creation order; with `limit`, only the most recent ones."""

    start = -limit if limit else 0
    return [ChatMessage.model_validate_json(raw) for raw in r.lrange(_messages_key(session_id), start, -1)]


# Profiles + timelines


def get_profile(*, r: redis.Redis, user_id: str) -> Profile | None:
    raw = r.get(_profile_key(user_id))
    if not raw:
        return None
    return Profile.model_validate_json(raw)


def save_profile(*, r: redis.Redis, profile: Profile) -> None:
    r.set(_profile_key(profile.user_id), profile.model_dump_json())
    r.sadd(USERS_SET_KEY, profile.user_id)


def create_default_profile(
    *, r: redis.Redis, user_id: str, full_name: str, now: datetime | None = None
) -> Profile:
    """Provision a trial profile plus an empty timeline in one transaction."""

    profile = Profile(
        user_id=user_id,
        full_name=full_name,
        subscription_tier=SubscriptionTier.trial,
        trial_start_date=now or _now(),
    )
    timeline = Timeline(user_id=user_id)

    pipe = r.pipeline(transaction=True)
    pipe.set(_profile_key(user_id), profile.model_dump_json())
    pipe.set(_timeline_key(user_id), timeline.model_dump_json(), nx=True)
    pipe.sadd(USERS_SET_KEY, user_id)
    pipe.execute()
    return profile


def update_profile(*, r: redis.Redis, user_id: str, fields: dict[str, Any]) -> Profile:
    """Apply `fields` in a single write. Last write wins against other writers."""

    current = get_profile(r=r, user_id=user_id)
    if current is None:
        raise ValueError("Profile not found")
    updated = Profile.model_validate({**current.model_dump(), **fields})
    r.set(_profile_key(user_id), updated.model_dump_json())
    return updated


def get_timeline(*, r: redis.Redis, user_id: str) -> Timeline | None:
    raw = r.get(_timeline_key(user_id))
    if not raw:
        return None
    return Timeline.model_validate_json(raw)


def save_timeline(*, r: redis.Redis, timeline: Timeline) -> None:
    r.set(_timeline_key(timeline.user_id), timeline.model_dump_json())


def update_timeline(*, r: redis.Redis, user_id: str, fields: dict[str, Any]) -> Timeline:
    current = get_timeline(r=r, user_id=user_id) or Timeline(user_id=user_id)
    updated = Timeline.model_validate({**current.model_dump(), **fields})
    r.set(_timeline_key(user_id), updated.model_dump_json())
    return updated


def count_registered_users(*, r: redis.Redis) -> int:
    return int(r.scard(USERS_SET_KEY))


# Checklist + vendors


def list_checklist(*, r: redis.Redis, user_id: str) -> list[ChecklistItem]:
    rows = r.hgetall(f"{CHECKLIST_KEY_PREFIX}{user_id}")
    return [ChecklistItem.model_validate_json(raw) for raw in rows.values()]


def add_checklist_items(*, r: redis.Redis, items: Iterable[ChecklistItem]) -> list[ChecklistItem]:
    added = list(items)
    if not added:
        return added
    pipe = r.pipeline()
    for item in added:
        pipe.hset(f"{CHECKLIST_KEY_PREFIX}{item.user_id}", str(item.id), item.model_dump_json())
    pipe.execute()
    return added


def list_vendors(*, r: redis.Redis, user_id: str) -> list[Vendor]:
    rows = r.hgetall(f"{VENDORS_KEY_PREFIX}{user_id}")
    return [Vendor.model_validate_json(raw) for raw in rows.values()]


def add_vendors_if_missing(*, r: redis.Redis, user_id: str, vendors: Iterable[Vendor]) -> list[Vendor]:
    """Insert vendors whose exact name is not yet tracked for this user.

    Existing rows are never overwritten. Returns only the rows actually inserted.
    """

    key = f"{VENDORS_KEY_PREFIX}{user_id}"
    seen = {v.name for v in list_vendors(r=r, user_id=user_id)}

    inserted: list[Vendor] = []
    for vendor in vendors:
        if vendor.name in seen:
            continue
        seen.add(vendor.name)
        r.hset(key, str(vendor.id), vendor.model_dump_json())
        inserted.append(vendor)
    return inserted
