"""
Exception types raised by the profile store and the rewards engine.

Every failure is local to one user's mutation attempt: callers surface it
and decide whether to retry the whole operation.
"""


class BloodCreditsError(Exception):
    """Base class for all errors raised by this package."""


class ProfileStoreError(BloodCreditsError):
    """Store unreachable or write rejected; the event was not applied."""


class ConcurrentUpdateError(ProfileStoreError):
    """Another writer changed the profile between read and write."""


class DuplicateEventError(ProfileStoreError):
    """An event with the same idempotency key was already applied."""

    def __init__(self, idempotency_key: str):
        super().__init__(f"event {idempotency_key!r} was already recorded")
        self.idempotency_key = idempotency_key


class StoreTimeoutError(ProfileStoreError):
    """The store did not answer within the configured bound."""


class ProfileDecodeError(BloodCreditsError):
    """Stored document cannot be interpreted (e.g. newer schema version)."""


class DonationTooSoonError(BloodCreditsError):
    """Raised only when the 56-day interval is enforced."""

    def __init__(self, days_remaining: int):
        super().__init__(f"next donation possible in {days_remaining} day(s)")
        self.days_remaining = days_remaining
