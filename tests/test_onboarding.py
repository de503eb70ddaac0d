import pytest

from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.models import Kitchen
from ghorer_khabar.services import onboarding
from ghorer_khabar.services.onboarding import OnboardingState, onboarding_state


def new_kitchen() -> Kitchen:
    return Kitchen(name="Ammu's Kitchen", onboarding_completed=False, is_verified=False, is_active=False)


def test_happy_path_to_active():
    kitchen = new_kitchen()
    assert onboarding_state(kitchen) == OnboardingState.UNSUBMITTED

    onboarding.submit(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.PENDING

    onboarding.verify(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.VERIFIED

    onboarding.activate(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.ACTIVE
    assert kitchen.is_active and kitchen.is_verified


def test_rejected_kitchen_can_resubmit():
    kitchen = onboarding.submit(new_kitchen())
    onboarding.reject(kitchen, reason="NID photo is blurry")

    assert onboarding_state(kitchen) == OnboardingState.REJECTED
    assert kitchen.rejection_reason == "NID photo is blurry"
    assert kitchen.rejected_at is not None

    onboarding.submit(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.PENDING
    assert kitchen.rejection_reason is None


def test_reject_without_reason_uses_default():
    kitchen = onboarding.reject(onboarding.submit(new_kitchen()))
    assert kitchen.rejection_reason


def test_suspend_and_reactivate():
    kitchen = onboarding.activate(onboarding.verify(onboarding.submit(new_kitchen())))

    onboarding.suspend(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.SUSPENDED
    assert not kitchen.is_active

    onboarding.activate(kitchen)
    assert onboarding_state(kitchen) == OnboardingState.ACTIVE
    assert kitchen.suspended_at is None


@pytest.mark.parametrize("action", ["verify", "reject", "activate", "suspend"])
def test_unsubmitted_kitchen_cannot_be_moderated(action):
    with pytest.raises(InvalidTransitionError) as exc_info:
        onboarding.TRANSITIONS[action](new_kitchen())
    assert exc_info.value.current_state == "UNSUBMITTED"


def test_active_kitchen_cannot_resubmit():
    kitchen = onboarding.activate(onboarding.verify(onboarding.submit(new_kitchen())))
    with pytest.raises(InvalidTransitionError, match="Cannot submit a kitchen that is active"):
        onboarding.submit(kitchen)
