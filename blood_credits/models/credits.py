"""
Blood credit data models.

Plain records describing a donor's accumulated profile: credit ledger,
donation history, badges and the derived priority level.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from blood_credits.utils.time import utc_now

# Minimum gap between two whole-blood donations
DONATION_INTERVAL_DAYS = 56
LIVES_PER_DONATION = 3


def _new_id() -> str:
    return str(uuid.uuid4())


class BloodType(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"

    @property
    def is_rare(self) -> bool:
        return self in RARE_BLOOD_TYPES


RARE_BLOOD_TYPES = frozenset({BloodType.AB_NEG, BloodType.B_NEG, BloodType.O_NEG, BloodType.A_NEG})


class CreditType(str, Enum):
    """What a credit transaction was granted for."""

    DONATION = "donation"
    FIRST_TIME_DONATION = "first_time_donation"
    URGENT_DONATION = "urgent_donation"
    STREAK_BONUS = "streak_bonus"
    REFERRAL = "referral"
    HELP_RESPONSE = "help_response"
    WELCOME = "welcome"


class BadgeType(str, Enum):
    FIRST_DONATION = "first-donation"
    FIVE_DONATIONS = "five-donations"
    TEN_DONATIONS = "ten-donations"
    TWENTY_FIVE_DONATIONS = "twenty-five-donations"
    FIFTY_DONATIONS = "fifty-donations"
    HUNDRED_DONATIONS = "hundred-donations"
    LIFE_SAVER = "life-saver"
    STREAK_STARTER = "streak-starter"
    STREAK_MASTER = "streak-master"
    COMMUNITY_HERO = "community-hero"
    RARE_HERO = "rare-hero"
    # Granted manually from external ranking data, never by the engine
    EARLY_ADOPTER = "early-adopter"
    TOP_DONOR = "top-donor"

    @property
    def title(self) -> str:
        return _BADGE_TEXT[self][0]

    @property
    def description(self) -> str:
        return _BADGE_TEXT[self][1]


_BADGE_TEXT: dict[BadgeType, tuple[str, str]] = {
    BadgeType.FIRST_DONATION: ("First Drop", "Made your first blood donation"),
    BadgeType.FIVE_DONATIONS: ("Regular Donor", "Completed 5 blood donations"),
    BadgeType.TEN_DONATIONS: ("Dedicated Donor", "Completed 10 blood donations"),
    BadgeType.TWENTY_FIVE_DONATIONS: ("Silver Heart", "Completed 25 blood donations"),
    BadgeType.FIFTY_DONATIONS: ("Gold Heart", "Completed 50 blood donations"),
    BadgeType.HUNDRED_DONATIONS: ("Platinum Heart", "Completed 100 blood donations"),
    BadgeType.LIFE_SAVER: ("Life Saver", "Donated blood to an urgent request"),
    BadgeType.STREAK_STARTER: ("Streak Starter", "Donated 2 times consecutively"),
    BadgeType.STREAK_MASTER: ("Streak Master", "Donated 5 times consecutively"),
    BadgeType.COMMUNITY_HERO: ("Community Hero", "Responded to 10 help requests"),
    BadgeType.RARE_HERO: ("Rare Hero", "Donated a rare blood type"),
    BadgeType.EARLY_ADOPTER: ("Early Adopter", "Among the first 1000 users"),
    BadgeType.TOP_DONOR: ("Top Donor", "Ranked in top 10 donors"),
}


class PriorityLevel(str, Enum):
    STANDARD = "Standard"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"

    @property
    def min_credits(self) -> int:
        return _PRIORITY_THRESHOLDS[self]

    @property
    def benefits(self) -> list[str]:
        return list(_PRIORITY_BENEFITS[self])

    @classmethod
    def for_credits(cls, credits: int) -> "PriorityLevel":
        """Highest level whose threshold is reached (exact threshold qualifies)."""
        level = cls.STANDARD
        for candidate in (cls.SILVER, cls.GOLD, cls.PLATINUM):
            if credits >= candidate.min_credits:
                level = candidate
            else:
                break
        return level


_PRIORITY_THRESHOLDS: dict[PriorityLevel, int] = {
    PriorityLevel.STANDARD: 0,
    PriorityLevel.SILVER: 200,
    PriorityLevel.GOLD: 500,
    PriorityLevel.PLATINUM: 1000,
}

_PRIORITY_BENEFITS: dict[PriorityLevel, tuple[str, ...]] = {
    PriorityLevel.STANDARD: ("Access to blood bank locator", "Submit blood requests"),
    PriorityLevel.SILVER: ("Priority in request queue", "Badge showcase", "Donation reminders"),
    PriorityLevel.GOLD: ("Higher priority matching", "Featured on leaderboard", "Early access to features"),
    PriorityLevel.PLATINUM: (
        "Highest priority requests",
        "VIP support",
        "Exclusive badges",
        "Recognition on app",
    ),
}


class CreditTransaction(BaseModel):
    """Append-only ledger entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    type: CreditType
    amount: int = Field(..., gt=0)
    description: str
    timestamp: datetime = Field(default_factory=utc_now)
    related_donation_id: Optional[str] = None


class DonationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    blood_type: BloodType
    location: str
    facility_name: str
    units_donated: int = 1
    was_urgent_response: bool = False
    related_help_request_id: Optional[str] = None
    credits_awarded: int
    # Reserved for hospital confirmation; has no effect on rewards yet
    verified: bool = False

    @property
    def next_eligible_at(self) -> datetime:
        return self.timestamp + timedelta(days=DONATION_INTERVAL_DAYS)


class Badge(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: BadgeType
    earned_at: datetime = Field(default_factory=utc_now)


class BloodProfile(BaseModel):
    """Per-user accumulating profile. Lists are ordered newest first,
    except ``badges`` which keeps earn order."""

    total_credits: int = Field(default=0, ge=0)
    lifetime_donations: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    badges: list[Badge] = Field(default_factory=list)
    transactions: list[CreditTransaction] = Field(default_factory=list)
    donations: list[DonationRecord] = Field(default_factory=list)
    help_response_count: int = Field(default=0, ge=0)
    referral_count: int = Field(default=0, ge=0)
    last_donation_at: Optional[datetime] = None

    @computed_field  # type: ignore[misc]
    @property
    def lives_saved(self) -> int:
        return self.lifetime_donations * LIVES_PER_DONATION

    @computed_field  # type: ignore[misc]
    @property
    def priority_level(self) -> PriorityLevel:
        return PriorityLevel.for_credits(self.total_credits)

    def has_badge(self, badge_type: BadgeType) -> bool:
        return any(b.identifier == badge_type for b in self.badges)

    def ledger_total(self) -> int:
        return sum(t.amount for t in self.transactions)


class DonationEvent(BaseModel):
    """Input for a recorded donation; validated before it reaches the engine."""

    blood_type: BloodType
    location: str = Field(..., min_length=1)
    facility_name: str = Field(..., min_length=1)
    was_urgent_response: bool = False
    related_help_request_id: Optional[str] = None
    units_donated: int = Field(default=1, ge=1)
