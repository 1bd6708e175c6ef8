from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum

from bride_buddy.api.models import Profile, SubscriptionTier
from bride_buddy.config import ChatSettings
from bride_buddy.errors import QuotaExceeded, TrialExpired


class EntitlementOutcome(StrEnum):
    proceed = "proceed"
    # The trial closes on this turn: store the notice, downgrade, skip the model.
    trial_ended = "trial_ended"


@dataclass(frozen=True, slots=True)
class EntitlementContext:
    """Inputs available to entitlement checks.

    Keep this tight and serializable-ish so we can safely log it.
    """

    user_id: str
    now: datetime
    settings: ChatSettings

    @property
    def today(self) -> date:
        return self.now.date()


def effective_daily_count(*, profile: Profile, today: date) -> int:
    """The stored counter only counts for the day it was stored on."""

    if profile.last_message_date != today:
        return 0
    return profile.messages_today


def trial_days_elapsed(*, profile: Profile, now: datetime) -> int:
    start = profile.trial_start_date
    if start is None:
        return 0
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    # Floor of whole days; timedelta.days floors for negative spans too.
    return (now - start).days


class EntitlementCheck(ABC):
    """A small, composable entitlement rule for an incoming chat turn.

    Returns an outcome to stop the pipeline early, None to defer to the next check,
    or raises to reject the turn.
    """

    @abstractmethod
    def check(self, *, ctx: EntitlementContext, profile: Profile) -> EntitlementOutcome | None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class FreeTierQuotaCheck(EntitlementCheck):
    def check(self, *, ctx: EntitlementContext, profile: Profile) -> EntitlementOutcome | None:
        if profile.subscription_tier != SubscriptionTier.free:
            return None
        count = effective_daily_count(profile=profile, today=ctx.today)
        if count >= ctx.settings.daily_message_limit:
            raise QuotaExceeded(
                f"Daily message limit reached ({ctx.settings.daily_message_limit} messages). "
                "Upgrade to VIP for unlimited messages!"
            )
        return None


@dataclass(frozen=True, slots=True)
class TrialWindowCheck(EntitlementCheck):
    def check(self, *, ctx: EntitlementContext, profile: Profile) -> EntitlementOutcome | None:
        if profile.subscription_tier != SubscriptionTier.trial:
            return None
        days = trial_days_elapsed(profile=profile, now=ctx.now)
        if days == ctx.settings.trial_days:
            return EntitlementOutcome.trial_ended
        if days > ctx.settings.trial_days:
            # Tier downgrade and the clock are not atomic across turns.
            raise TrialExpired("Trial period expired. Upgrade to VIP to keep planning with Bride Buddy!")
        return None


@dataclass(frozen=True, slots=True)
class EntitlementPipeline:
    checks: tuple[EntitlementCheck, ...]

    def evaluate(self, *, ctx: EntitlementContext, profile: Profile) -> EntitlementOutcome:
        for c in self.checks:
            outcome = c.check(ctx=ctx, profile=profile)
            if outcome is not None:
                return outcome
        return EntitlementOutcome.proceed


DEFAULT_ENTITLEMENT_PIPELINE = EntitlementPipeline(checks=(FreeTierQuotaCheck(), TrialWindowCheck()))
