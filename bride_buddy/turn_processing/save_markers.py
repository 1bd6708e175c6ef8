"""Onboarding save markers: `[SAVE:key=value]` tags embedded in model replies.

Values run up to the first closing bracket, so a value can never contain `]`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

import redis

from bride_buddy import store
from bride_buddy.api.models import ChecklistItem

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"\[SAVE:([A-Za-z_]+)=([^\]]*)\]")
ANY_MARKER_RE = re.compile(r"\[SAVE:[^\]]*\]")
TASK_EMOJI = "✅"


@dataclass(frozen=True, slots=True)
class EngagementDate:
    value: date


@dataclass(frozen=True, slots=True)
class WeddingDate:
    value: date


@dataclass(frozen=True, slots=True)
class RelationshipYears:
    value: str


@dataclass(frozen=True, slots=True)
class PartnerName:
    value: str


@dataclass(frozen=True, slots=True)
class Budget:
    amount: float


@dataclass(frozen=True, slots=True)
class Tasks:
    names: tuple[str, ...]


SaveMarker = EngagementDate | WeddingDate | RelationshipYears | PartnerName | Budget | Tasks


def _parse_one(key: str, value: str) -> SaveMarker | None:
    value = value.strip()
    try:
        if key == "engagement_date":
            return EngagementDate(date.fromisoformat(value))
        if key == "wedding_date":
            return WeddingDate(date.fromisoformat(value))
        if key == "budget":
            return Budget(float(value.replace(",", "").lstrip("$")))
    except ValueError:
        logger.warning("Ignoring unparseable save marker %s=%r", key, value)
        return None

    if key == "relationship_years":
        return RelationshipYears(value) if value else None
    if key == "partner_name":
        return PartnerName(value) if value else None
    if key == "tasks":
        names = tuple(n.strip() for n in value.split("|") if n.strip())
        return Tasks(names) if names else None
    return None


def parse_save_markers(text: str) -> tuple[SaveMarker, ...]:
    """Parse recognized markers; the first occurrence of each key wins."""

    seen: set[str] = set()
    out: list[SaveMarker] = []
    for m in MARKER_RE.finditer(text):
        key = m.group(1).lower()
        if key in seen:
            continue
        parsed = _parse_one(key, m.group(2))
        if parsed is not None:
            seen.add(key)
            out.append(parsed)
    return tuple(out)


def strip_save_markers(text: str) -> str:
    """Remove every `[SAVE:...]` tag, recognized or not."""

    cleaned = ANY_MARKER_RE.sub("", text)
    cleaned = re.sub(r"[ \t]{2,}", " ", cleaned)
    cleaned = re.sub(r"[ \t]+\n", "\n", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


@dataclass(frozen=True, slots=True)
class AppliedMarkers:
    timeline_fields: dict[str, Any]
    profile_fields: dict[str, Any]
    tasks_added: int
    budget: float | None


def apply_save_markers(*, r: redis.Redis, user_id: str, markers: tuple[SaveMarker, ...]) -> AppliedMarkers:
    """Persist parsed markers: one timeline write, one profile write, one row per task."""

    timeline_fields: dict[str, Any] = {}
    profile_fields: dict[str, Any] = {}
    task_names: list[str] = []
    budget: float | None = None

    for marker in markers:
        if isinstance(marker, EngagementDate):
            timeline_fields["engagement_date"] = marker.value
        elif isinstance(marker, WeddingDate):
            timeline_fields["wedding_date"] = marker.value
        elif isinstance(marker, RelationshipYears):
            profile_fields["relationship_duration"] = marker.value
        elif isinstance(marker, PartnerName):
            profile_fields["partner_name"] = marker.value
        elif isinstance(marker, Budget):
            # No budget column exists; captured for logging only.
            budget = marker.amount
        elif isinstance(marker, Tasks):
            task_names.extend(marker.names)

    if timeline_fields:
        store.update_timeline(r=r, user_id=user_id, fields=timeline_fields)
    if profile_fields:
        store.update_profile(r=r, user_id=user_id, fields=profile_fields)
    if task_names:
        store.add_checklist_items(
            r=r,
            items=[ChecklistItem(user_id=user_id, task_name=n, emoji=TASK_EMOJI, completed=True) for n in task_names],
        )

    if budget is not None:
        logger.info("Captured onboarding budget=%s for user=%s (not persisted)", budget, user_id)

    return AppliedMarkers(
        timeline_fields=timeline_fields,
        profile_fields=profile_fields,
        tasks_added=len(task_names),
        budget=budget,
    )
