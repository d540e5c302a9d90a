"""Rewards engine: credits, streaks, badges and priority levels.

All functions are pure. They take the current ``BloodProfile`` and return a
``RewardOutcome`` carrying a *new* profile; the input is never mutated.
Persisting the outcome is the caller's job (see ``services/profiles.py``).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from blood_credits.exceptions import DonationTooSoonError
from blood_credits.models.credits import (
    DONATION_INTERVAL_DAYS,
    Badge,
    BadgeType,
    BloodProfile,
    BloodType,
    CreditTransaction,
    CreditType,
    DonationEvent,
    DonationRecord,
    PriorityLevel,
)
from blood_credits.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)

# ======== Credit values ========

CREDITS_DONATION = 100
CREDITS_FIRST_DONATION = 50
CREDITS_URGENT_DONATION = 50
CREDITS_STREAK_STEP = 25  # multiplied by the streak length
CREDITS_REFERRAL = 30
CREDITS_HELP_RESPONSE = 10
CREDITS_WELCOME = 25

# streak continues only when the gap falls inside this window (days, inclusive)
_STREAK_WINDOW = (DONATION_INTERVAL_DAYS, 90)

_DONATION_BADGES: list[tuple[BadgeType, int]] = [
    (BadgeType.FIRST_DONATION, 1),
    (BadgeType.FIVE_DONATIONS, 5),
    (BadgeType.TEN_DONATIONS, 10),
    (BadgeType.TWENTY_FIVE_DONATIONS, 25),
    (BadgeType.FIFTY_DONATIONS, 50),
    (BadgeType.HUNDRED_DONATIONS, 100),
]
_STREAK_STARTER_LENGTH = 2
_STREAK_MASTER_LENGTH = 5
_COMMUNITY_HERO_RESPONSES = 10


@dataclass
class RewardOutcome:
    profile: BloodProfile
    transaction: CreditTransaction
    new_badges: list[Badge] = field(default_factory=list)
    donation: Optional[DonationRecord] = None


def compute_priority(total_credits: int) -> PriorityLevel:
    return PriorityLevel.for_credits(total_credits)


# ---------- eligibility (display only unless enforcement is switched on) ----------


def next_eligible_at(profile: BloodProfile) -> Optional[datetime]:
    if profile.last_donation_at is None:
        return None
    return ensure_utc(profile.last_donation_at) + timedelta(days=DONATION_INTERVAL_DAYS)


def days_since_last_donation(profile: BloodProfile, now: datetime) -> Optional[int]:
    if profile.last_donation_at is None:
        return None
    return (ensure_utc(now) - ensure_utc(profile.last_donation_at)).days


def can_donate_now(profile: BloodProfile, now: Optional[datetime] = None) -> bool:
    days = days_since_last_donation(profile, now or utc_now())
    return days is None or days >= DONATION_INTERVAL_DAYS


def days_until_can_donate(profile: BloodProfile, now: Optional[datetime] = None) -> int:
    eligible_at = next_eligible_at(profile)
    if eligible_at is None:
        return 0
    return max(0, (eligible_at - ensure_utc(now or utc_now())).days)


# ---------- internals ----------


def _grant(
    profile: BloodProfile,
    credit_type: CreditType,
    amount: int,
    description: str,
    now: datetime,
    related_donation_id: Optional[str] = None,
) -> CreditTransaction:
    """Appends a ledger entry and moves ``total_credits`` by the same amount."""
    transaction = CreditTransaction(
        type=credit_type,
        amount=amount,
        description=description,
        timestamp=now,
        related_donation_id=related_donation_id,
    )
    profile.total_credits += amount
    profile.transactions.insert(0, transaction)
    return transaction


def evaluate_badges(
    profile: BloodProfile,
    *,
    now: datetime,
    blood_type: Optional[BloodType] = None,
    was_urgent: bool = False,
) -> list[Badge]:
    """Returns badges the profile now qualifies for but does not hold yet.

    ``blood_type`` and ``was_urgent`` describe the event being recorded;
    they are ``None`` / ``False`` for non-donation events.
    """
    qualified: list[BadgeType] = [
        badge_type for badge_type, required in _DONATION_BADGES if profile.lifetime_donations >= required
    ]
    if was_urgent:
        qualified.append(BadgeType.LIFE_SAVER)
    if profile.current_streak >= _STREAK_STARTER_LENGTH:
        qualified.append(BadgeType.STREAK_STARTER)
    if profile.current_streak >= _STREAK_MASTER_LENGTH:
        qualified.append(BadgeType.STREAK_MASTER)
    if profile.help_response_count >= _COMMUNITY_HERO_RESPONSES:
        qualified.append(BadgeType.COMMUNITY_HERO)
    if blood_type is not None and blood_type.is_rare:
        qualified.append(BadgeType.RARE_HERO)

    held = {b.identifier for b in profile.badges}
    return [Badge(identifier=badge_type, earned_at=now) for badge_type in qualified if badge_type not in held]


def _award_badges(profile: BloodProfile, **kwargs) -> list[Badge]:
    new_badges = evaluate_badges(profile, **kwargs)
    profile.badges.extend(new_badges)
    return new_badges


# ---------- operations ----------


def record_donation(
    profile: BloodProfile,
    event: DonationEvent,
    *,
    user_id: str,
    now: Optional[datetime] = None,
    enforce_interval: bool = False,
) -> RewardOutcome:
    """Applies one recorded donation.

    * base credits, plus first-donation and urgent bonuses
    * streak: first ever donation starts at 1; a gap of 56 to 90 days extends
      it and pays ``25 * streak``; a gap over 90 days restarts it at 1;
      a shorter gap leaves it untouched
    * appends the donation record and a single ledger entry
    * evaluates badges
    """
    now = ensure_utc(now or utc_now())
    days_since = days_since_last_donation(profile, now)
    if enforce_interval and days_since is not None and days_since < DONATION_INTERVAL_DAYS:
        raise DonationTooSoonError(days_until_can_donate(profile, now))

    updated = profile.model_copy(deep=True)

    # 1) base + bonuses
    credits = CREDITS_DONATION
    is_first = updated.lifetime_donations == 0
    if is_first:
        credits += CREDITS_FIRST_DONATION
    if event.was_urgent_response:
        credits += CREDITS_URGENT_DONATION

    # 2) streak calculation
    streak_bonus = 0
    if days_since is None:
        updated.current_streak = 1
    elif _STREAK_WINDOW[0] <= days_since <= _STREAK_WINDOW[1]:
        updated.current_streak += 1
        streak_bonus = CREDITS_STREAK_STEP * updated.current_streak
        credits += streak_bonus
    elif days_since > _STREAK_WINDOW[1]:
        updated.current_streak = 1
    updated.longest_streak = max(updated.longest_streak, updated.current_streak)

    # 3) donation record and counters
    donation = DonationRecord(
        user_id=user_id,
        timestamp=now,
        blood_type=event.blood_type,
        location=event.location,
        facility_name=event.facility_name,
        units_donated=event.units_donated,
        was_urgent_response=event.was_urgent_response,
        related_help_request_id=event.related_help_request_id,
        credits_awarded=credits,
    )
    updated.donations.insert(0, donation)
    updated.lifetime_donations += 1
    updated.last_donation_at = now

    # 4) ledger entry
    description = f"Blood donation at {event.facility_name}"
    if is_first:
        description += " (First donation)"
    if event.was_urgent_response:
        description += " (Urgent)"
    if streak_bonus:
        description += f" - Streak x{updated.current_streak}!"
    transaction = _grant(
        updated,
        CreditType.URGENT_DONATION if event.was_urgent_response else CreditType.DONATION,
        credits,
        description,
        now,
        related_donation_id=donation.id,
    )

    new_badges = _award_badges(updated, now=now, blood_type=event.blood_type, was_urgent=event.was_urgent_response)

    logger.debug(
        "donation recorded user=%s credits=%d streak=%d new_badges=%s",
        user_id,
        credits,
        updated.current_streak,
        [b.identifier.value for b in new_badges],
    )
    return RewardOutcome(profile=updated, transaction=transaction, new_badges=new_badges, donation=donation)


def record_help_response(
    profile: BloodProfile,
    *,
    request_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RewardOutcome:
    now = ensure_utc(now or utc_now())
    updated = profile.model_copy(deep=True)
    updated.help_response_count += 1
    transaction = _grant(
        updated,
        CreditType.HELP_RESPONSE,
        CREDITS_HELP_RESPONSE,
        "Responded to blood help request",
        now,
    )
    new_badges = _award_badges(updated, now=now)
    logger.debug("help response recorded request=%s responses=%d", request_id, updated.help_response_count)
    return RewardOutcome(profile=updated, transaction=transaction, new_badges=new_badges)


def record_referral(profile: BloodProfile, referred_name: str, *, now: Optional[datetime] = None) -> RewardOutcome:
    now = ensure_utc(now or utc_now())
    updated = profile.model_copy(deep=True)
    updated.referral_count += 1
    transaction = _grant(
        updated,
        CreditType.REFERRAL,
        CREDITS_REFERRAL,
        f"Referred {referred_name} to donate blood",
        now,
    )
    # no badge is keyed to referrals today; evaluated for consistency
    new_badges = _award_badges(updated, now=now)
    return RewardOutcome(profile=updated, transaction=transaction, new_badges=new_badges)


def award_welcome(profile: BloodProfile, *, amount: int = CREDITS_WELCOME, now: Optional[datetime] = None) -> RewardOutcome:
    """One-off credits granted when a profile is created."""
    now = ensure_utc(now or utc_now())
    updated = profile.model_copy(deep=True)
    transaction = _grant(
        updated,
        CreditType.WELCOME,
        amount,
        "Welcome! Start your donation journey.",
        now,
    )
    return RewardOutcome(profile=updated, transaction=transaction)
