from __future__ import annotations

from statemachine import State, StateMachine

from bride_buddy.api.models import Profile, SubscriptionTier


class SubscriptionFSM(StateMachine):
    """Guards subscription tier changes on a Profile.

    - trial -> free when the trial window closes
    - trial/free -> vip on upgrade
    Nothing leads back to trial.
    """

    trial = State(SubscriptionTier.trial.value, value=SubscriptionTier.trial.value, initial=True)
    free = State(SubscriptionTier.free.value, value=SubscriptionTier.free.value)
    vip = State(SubscriptionTier.vip.value, value=SubscriptionTier.vip.value, final=True)

    trial_ended = trial.to(free)
    upgraded = trial.to(vip) | free.to(vip)

    def __init__(self, profile: Profile):
        self.profile = profile
        super().__init__(start_value=profile.subscription_tier.value)

    @property
    def tier(self) -> SubscriptionTier:
        return SubscriptionTier(str(self.current_state.value))


def tier_after_trial_end(profile: Profile) -> SubscriptionTier:
    """Return the tier a profile moves to when its trial ends.

    Raises `statemachine.exceptions.TransitionNotAllowed` if the profile is not on trial.
    """

    fsm = SubscriptionFSM(profile)
    fsm.trial_ended()
    return fsm.tier
