from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from uuid import UUID

import redis

from bride_buddy import store
from bride_buddy.api.models import ChatMessage, ChecklistItem, Profile, Timeline, Vendor
from bride_buddy.config import ChatSettings
from bride_buddy.core.context import BaseAgentContext, PricingContext, RenderedContext, UserContext, compose_context
from bride_buddy.prompts import ASSISTANT_PROMPT, ONBOARDING_PROMPT, load_prompt, pricing_prompt


@dataclass(frozen=True, slots=True)
class WeddingSnapshot:
    """Everything read from storage to ground one turn."""

    profile: Profile
    timeline: Timeline | None
    checklist: list[ChecklistItem]
    vendors: list[Vendor]
    history: list[ChatMessage]
    registered_users: int


@dataclass(frozen=True, slots=True)
class WeddingFigures:
    days_until_wedding: int | None
    completed_tasks: int
    total_tasks: int
    total_budget: float
    paid_amount: float


def load_snapshot(*, r: redis.Redis, profile: Profile, session_id: UUID, settings: ChatSettings) -> WeddingSnapshot:
    user_id = profile.user_id
    return WeddingSnapshot(
        profile=profile,
        timeline=store.get_timeline(r=r, user_id=user_id),
        checklist=store.list_checklist(r=r, user_id=user_id),
        vendors=store.list_vendors(r=r, user_id=user_id),
        history=store.list_messages(r=r, session_id=session_id, limit=settings.history_limit),
        registered_users=store.count_registered_users(r=r),
    )


def days_until(*, target: date, now: datetime) -> int:
    """Ceiling of whole days from `now` to midnight UTC of `target`. Negative once passed."""

    delta = datetime.combine(target, time.min, tzinfo=UTC) - now
    return math.ceil(delta.total_seconds() / 86_400)


def soonest_due(items: list[ChecklistItem], *, limit: int) -> list[ChecklistItem]:
    # Items without a due date go last.
    ordered = sorted(items, key=lambda i: (i.due_date is None, i.due_date or date.max))
    return ordered[:limit]


def compute_figures(*, snapshot: WeddingSnapshot, now: datetime) -> WeddingFigures:
    wedding = (snapshot.timeline.wedding_date if snapshot.timeline else None) or snapshot.profile.wedding_date
    return WeddingFigures(
        days_until_wedding=days_until(target=wedding, now=now) if wedding else None,
        completed_tasks=sum(1 for i in snapshot.checklist if i.completed),
        total_tasks=len(snapshot.checklist),
        total_budget=sum(v.amount or 0 for v in snapshot.vendors),
        paid_amount=sum(v.amount or 0 for v in snapshot.vendors if v.paid),
    )


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


def wedding_context_text(*, snapshot: WeddingSnapshot, now: datetime, settings: ChatSettings) -> str:
    """Render the user's wedding facts as a prompt block."""

    p = snapshot.profile
    t = snapshot.timeline
    figures = compute_figures(snapshot=snapshot, now=now)

    lines: list[str] = ["WEDDING CONTEXT:"]
    lines.append(f"- User name: {p.full_name or 'unknown'}")
    lines.append(f"- Partner name: {p.partner_name or 'unknown'}")
    lines.append(f"- Together for: {p.relationship_duration or 'unknown'}")

    engagement = t.engagement_date if t else None
    wedding = (t.wedding_date if t else None) or p.wedding_date
    lines.append(f"- Engagement date: {engagement.isoformat() if engagement else 'unknown'}")
    if wedding is None:
        lines.append("- Wedding date: not set yet")
    else:
        lines.append(f"- Wedding date: {wedding.isoformat()} ({figures.days_until_wedding} days away)")

    lines.append(f"- Tasks completed: {figures.completed_tasks} of {figures.total_tasks}")
    upcoming = soonest_due(snapshot.checklist, limit=settings.checklist_context_limit)
    if upcoming:
        lines.append("- Upcoming checklist:")
        for item in upcoming:
            status = "done" if item.completed else "open"
            due = item.due_date.isoformat() if item.due_date else "no due date"
            lines.append(f"  {item.emoji} {item.task_name} ({due}, {status})")

    lines.append(
        f"- Vendor budget: {_money(figures.total_budget)} total, {_money(figures.paid_amount)} paid"
    )
    if snapshot.vendors:
        lines.append("- Vendors:")
        for v in snapshot.vendors:
            amount = _money(v.amount) if v.amount is not None else "no amount"
            lines.append(f"  {v.name} ({v.service}, {amount}, {'paid' if v.paid else 'unpaid'})")

    return "\n".join(lines).strip()


def is_early_adopter(*, snapshot: WeddingSnapshot, settings: ChatSettings) -> bool:
    return snapshot.registered_users <= settings.early_adopter_limit


def build_turn_context(
    *,
    snapshot: WeddingSnapshot,
    is_onboarding: bool,
    now: datetime,
    settings: ChatSettings,
) -> RenderedContext:
    user = UserContext(
        user_id=snapshot.profile.user_id,
        facts_text=wedding_context_text(snapshot=snapshot, now=now, settings=settings),
    )

    if is_onboarding:
        base = BaseAgentContext(system_prompt=load_prompt(ONBOARDING_PROMPT), metadata={"mode": "onboarding"})
        return compose_context(base=base, user=user)

    base = BaseAgentContext(system_prompt=load_prompt(ASSISTANT_PROMPT), metadata={"mode": "assistant"})
    variant = "early_adopter" if is_early_adopter(snapshot=snapshot, settings=settings) else "standard"
    pricing = PricingContext(variant=variant, prompt=pricing_prompt(variant))
    return compose_context(base=base, user=user, pricing=pricing)


def history_messages(snapshot: WeddingSnapshot) -> list[dict[str, str]]:
    return [{"role": m.role.value, "content": m.content} for m in snapshot.history]
