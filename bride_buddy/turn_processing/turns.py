from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import redis
from pydantic import ValidationError as PydanticValidationError

from bride_buddy import store
from bride_buddy.agents.completion import create_completion
from bride_buddy.agents.llm_config import OpenAICompatibleSettings
from bride_buddy.agents.vendor_search import SEARCH_VENDORS, SEARCH_VENDORS_TOOL, run_search_vendors
from bride_buddy.api.models import ChatRequest, ChatSession, MessageRole, Profile, SubscriptionTier
from bride_buddy.auth import AuthenticatedUser, AuthSettings, authenticate
from bride_buddy.config import ChatSettings, settings_from_env
from bride_buddy.errors import BrideBuddyError, Forbidden, InternalError, ValidationError
from bride_buddy.subscription import tier_after_trial_end
from bride_buddy.turn_processing.save_markers import apply_save_markers, parse_save_markers, strip_save_markers
from bride_buddy.turn_processing.validators import (
    DEFAULT_ENTITLEMENT_PIPELINE,
    EntitlementContext,
    EntitlementOutcome,
    effective_daily_count,
)
from bride_buddy.turn_processing.wedding_context import build_turn_context, history_messages, load_snapshot

logger = logging.getLogger(__name__)

TRIAL_ENDED_NOTICE = (
    "💝 Your 7-day VIP trial has ended! You're now on the free plan with 20 messages a day. "
    "Everything you've planned so far is saved. Upgrade to VIP anytime for unlimited planning support ✨"
)


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class TurnResult:
    success: bool
    outcome: EntitlementOutcome
    assistant_message_id: UUID | None = None


def validate_chat_request(payload: object) -> ChatRequest:
    try:
        return ChatRequest.model_validate(payload)
    except PydanticValidationError as e:
        issues = [
            {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in e.errors()
        ]
        raise ValidationError(issues) from e


def require_owned_session(*, r: redis.Redis, user_id: str, session_id: UUID) -> ChatSession:
    """The sole authorization gate: the session must exist and belong to the caller."""

    try:
        session = store.get_session(r=r, session_id=session_id)
    except redis.RedisError as e:
        raise InternalError("Failed to load chat session", details=str(e)) from e

    if session is None or session.user_id != user_id:
        raise Forbidden("Forbidden: this chat session does not belong to you")
    return session


def load_or_repair_profile(*, r: redis.Redis, user: AuthenticatedUser, now: datetime) -> Profile:
    try:
        profile = store.get_profile(r=r, user_id=user.id)
        if profile is not None:
            return profile

        # Provisioning failed at signup; repair so the user can still chat.
        logger.warning("Profile missing for user=%s; creating default trial profile", user.id)
        return store.create_default_profile(r=r, user_id=user.id, full_name=user.full_name, now=now)
    except redis.RedisError as e:
        raise InternalError("Failed to load user profile", details=str(e)) from e


def end_trial(*, r: redis.Redis, session_id: UUID, profile: Profile) -> TurnResult:
    msg = store.append_message(r=r, session_id=session_id, role=MessageRole.assistant, content=TRIAL_ENDED_NOTICE)
    store.update_profile(r=r, user_id=profile.user_id, fields={"subscription_tier": tier_after_trial_end(profile)})
    logger.info("Trial ended for user=%s; downgraded to free", profile.user_id)
    return TurnResult(success=True, outcome=EntitlementOutcome.trial_ended, assistant_message_id=msg.id)


def count_free_tier_message(*, r: redis.Redis, profile: Profile, now: datetime) -> Profile:
    if profile.subscription_tier != SubscriptionTier.free:
        return profile
    today = now.date()
    count = effective_daily_count(profile=profile, today=today)
    return store.update_profile(
        r=r,
        user_id=profile.user_id,
        fields={"messages_today": count + 1, "last_message_date": today},
    )


async def process_chat_turn(
    *,
    r: redis.Redis,
    payload: object,
    authorization: str | None,
    settings: ChatSettings | None = None,
    llm_settings: OpenAICompatibleSettings | None = None,
    auth_settings: AuthSettings | None = None,
) -> TurnResult:
    """Run one chat turn end to end.

    Order matters: the user message is stored before the model is called, and the
    assistant reply is stored only after tool calls and save markers are resolved.
    """

    s = settings or settings_from_env()
    req = validate_chat_request(payload)

    user = authenticate(authorization, settings=auth_settings)
    require_owned_session(r=r, user_id=user.id, session_id=req.session_id)
    now = _now()
    profile = load_or_repair_profile(r=r, user=user, now=now)

    ctx = EntitlementContext(user_id=user.id, now=now, settings=s)
    outcome = DEFAULT_ENTITLEMENT_PIPELINE.evaluate(ctx=ctx, profile=profile)
    if outcome == EntitlementOutcome.trial_ended:
        return end_trial(r=r, session_id=req.session_id, profile=profile)

    logger.info(
        "Chat turn session=%s user=%s tier=%s onboarding=%s",
        req.session_id,
        user.id,
        profile.subscription_tier.value,
        req.is_onboarding,
    )

    store.append_message(r=r, session_id=req.session_id, role=MessageRole.user, content=req.message)
    profile = count_free_tier_message(r=r, profile=profile, now=now)

    snapshot = load_snapshot(r=r, profile=profile, session_id=req.session_id, settings=s)
    rendered = build_turn_context(snapshot=snapshot, is_onboarding=req.is_onboarding, now=now, settings=s)
    logger.info(
        "Context built session=%s mode=%s pricing=%s history=%d",
        req.session_id,
        rendered.metadata.get("mode"),
        rendered.metadata.get("pricing"),
        len(snapshot.history),
    )

    completion = await create_completion(
        ctx=rendered,
        history=history_messages(snapshot),
        tools=[SEARCH_VENDORS_TOOL],
        settings=llm_settings,
    )

    # Single pass: tool results are folded into the reply, never sent back to the model.
    reply = completion.content
    for call in completion.tool_calls:
        if call.name != SEARCH_VENDORS:
            logger.warning("Ignoring unknown tool call %r", call.name)
            continue
        reply += await run_search_vendors(
            r=r,
            user_id=user.id,
            call=call,
            location=req.user_location,
            settings=s,
        )

    if req.is_onboarding:
        markers = parse_save_markers(reply)
        if markers:
            apply_save_markers(r=r, user_id=user.id, markers=markers)
        reply = strip_save_markers(reply)

    msg = store.append_message(r=r, session_id=req.session_id, role=MessageRole.assistant, content=reply)
    return TurnResult(success=True, outcome=EntitlementOutcome.proceed, assistant_message_id=msg.id)


async def handle_chat_turn(**kwargs: Any) -> TurnResult:
    """Boundary around `process_chat_turn`: unexpected failures become a friendly InternalError."""

    try:
        return await process_chat_turn(**kwargs)
    except BrideBuddyError:
        raise
    except Exception as e:
        logger.exception("Chat turn failed")
        raise InternalError("Sorry, something went wrong processing your message. Please try again.", details=str(e)) from e
