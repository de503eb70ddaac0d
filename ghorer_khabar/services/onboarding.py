"""
Seller Onboarding State Machine

States:
    UNSUBMITTED -> PENDING (onboarding form submitted)
    PENDING -> VERIFIED | REJECTED (admin decision)
    REJECTED -> PENDING (seller resubmits)
    VERIFIED | SUSPENDED -> ACTIVE (admin toggle)
    VERIFIED | ACTIVE -> SUSPENDED (admin toggle)

The state is derived from plain kitchen fields; every transition is a
direct field update with no timers or compensating actions.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from ghorer_khabar.core.errors import InvalidTransitionError
from ghorer_khabar.models import Kitchen


class OnboardingState(str, enum.Enum):
    UNSUBMITTED = "UNSUBMITTED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


def onboarding_state(kitchen: Kitchen) -> OnboardingState:
    """Derive the onboarding state from the kitchen's lifecycle flags."""
    if not kitchen.onboarding_completed:
        return OnboardingState.UNSUBMITTED
    if not kitchen.is_verified:
        if kitchen.rejected_at is not None:
            return OnboardingState.REJECTED
        return OnboardingState.PENDING
    if kitchen.is_active:
        return OnboardingState.ACTIVE
    if kitchen.suspended_at is not None:
        return OnboardingState.SUSPENDED
    return OnboardingState.VERIFIED


def _require(kitchen: Kitchen, allowed: tuple, action: str) -> None:
    state = onboarding_state(kitchen)
    if state not in allowed:
        raise InvalidTransitionError(
            f"Cannot {action} a kitchen that is {state.value.lower()}",
            current_state=state.value,
        )


def submit(kitchen: Kitchen) -> Kitchen:
    """Seller submits (or resubmits after rejection) the onboarding form."""
    _require(kitchen, (OnboardingState.UNSUBMITTED, OnboardingState.REJECTED), "submit")
    kitchen.onboarding_completed = True
    kitchen.is_verified = False
    kitchen.is_active = False
    kitchen.rejected_at = None
    kitchen.rejection_reason = None
    return kitchen


def verify(kitchen: Kitchen) -> Kitchen:
    """Admin approves a pending kitchen."""
    _require(kitchen, (OnboardingState.PENDING,), "verify")
    kitchen.is_verified = True
    return kitchen


def reject(kitchen: Kitchen, reason: Optional[str] = None, now: Optional[datetime] = None) -> Kitchen:
    """Admin rejects a pending kitchen."""
    _require(kitchen, (OnboardingState.PENDING,), "reject")
    kitchen.rejected_at = now or datetime.now(timezone.utc)
    kitchen.rejection_reason = reason or "Verification details could not be confirmed"
    return kitchen


def activate(kitchen: Kitchen) -> Kitchen:
    """Admin opens a verified or suspended kitchen to buyers."""
    _require(kitchen, (OnboardingState.VERIFIED, OnboardingState.SUSPENDED), "activate")
    kitchen.is_active = True
    kitchen.suspended_at = None
    return kitchen


def suspend(kitchen: Kitchen, now: Optional[datetime] = None) -> Kitchen:
    """Admin hides a kitchen from buyers."""
    _require(kitchen, (OnboardingState.VERIFIED, OnboardingState.ACTIVE), "suspend")
    kitchen.is_active = False
    kitchen.suspended_at = now or datetime.now(timezone.utc)
    return kitchen


TRANSITIONS = {
    "verify": verify,
    "reject": reject,
    "activate": activate,
    "suspend": suspend,
}
