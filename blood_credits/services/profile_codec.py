"""Encoding and decoding of stored profile documents.

Documents are versioned through the ``schema_version`` key:

* **0** (no key): written by the mobile app: camelCase keys, dates as
  seconds since 2001-01-01 UTC, snake_case badge identifiers.
* **1**: written by this package: snake_case keys, ISO-8601 timestamps.

Missing fields never fail decoding. They are replaced with the defaults
listed in ``PROFILE_DEFAULTS`` (and ``_ITEM_DEFAULTS`` for list items); a
missing transaction id, donation id or timestamp gets a freshly generated
one, and a badge without an identifier is skipped. List entries that are not
objects are skipped, and a collection that is not a list decodes as empty. Stored ``lives_saved`` and
``priority_level`` are ignored because both are derived.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from blood_credits.exceptions import ProfileDecodeError
from blood_credits.models.credits import BloodProfile

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Reference date used by the mobile app's JSON encoder for numeric dates
_LEGACY_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

PROFILE_DEFAULTS: dict[str, Any] = {
    "total_credits": 0,
    "lifetime_donations": 0,
    "current_streak": 0,
    "longest_streak": 0,
    "badges": [],
    "transactions": [],
    "donations": [],
    "help_response_count": 0,
    "referral_count": 0,
    "last_donation_at": None,
}

_DERIVED_KEYS = ("lives_saved", "priority_level", "livesSaved", "priorityLevel")

_LEGACY_PROFILE_KEYS = {
    "totalCredits": "total_credits",
    "lifetimeDonations": "lifetime_donations",
    "currentStreak": "current_streak",
    "longestStreak": "longest_streak",
    "helpResponseCount": "help_response_count",
    "referralCount": "referral_count",
    "lastDonationDate": "last_donation_at",
}
_LEGACY_TRANSACTION_KEYS = {
    "date": "timestamp",
    "relatedDonationId": "related_donation_id",
}
_LEGACY_DONATION_KEYS = {
    "userId": "user_id",
    "date": "timestamp",
    "bloodType": "blood_type",
    "hospitalName": "facility_name",
    "unitsdonated": "units_donated",
    "wasUrgent": "was_urgent_response",
    "helpRequestId": "related_help_request_id",
    "creditsEarned": "credits_awarded",
}


def encode_profile(profile: BloodProfile) -> dict[str, Any]:
    data = profile.model_dump(mode="json")
    data["schema_version"] = SCHEMA_VERSION
    return data


def _legacy_date(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _LEGACY_EPOCH + timedelta(seconds=value)
    return value


def _rename(item: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    return {mapping.get(key, key): value for key, value in item.items()}


def _dict_items(value: Any, key: str) -> list[dict[str, Any]]:
    """Entries of a stored list that are objects; anything else is dropped."""
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("profile %s is %s, not a list; using empty default", key, type(value).__name__)
        return []
    items = [item for item in value if isinstance(item, dict)]
    if len(items) != len(value):
        logger.warning("profile %s: skipped %d malformed entries", key, len(value) - len(items))
    return items


def _upgrade_v0(data: dict[str, Any]) -> dict[str, Any]:
    upgraded = _rename(data, _LEGACY_PROFILE_KEYS)
    upgraded["last_donation_at"] = _legacy_date(upgraded.get("last_donation_at"))

    transactions = []
    for raw in _dict_items(upgraded.get("transactions"), "transactions"):
        tx = _rename(raw, _LEGACY_TRANSACTION_KEYS)
        tx["timestamp"] = _legacy_date(tx.get("timestamp"))
        transactions.append(tx)
    upgraded["transactions"] = transactions

    donations = []
    for raw in _dict_items(upgraded.get("donations"), "donations"):
        donation = _rename(raw, _LEGACY_DONATION_KEYS)
        donation["timestamp"] = _legacy_date(donation.get("timestamp"))
        donations.append(donation)
    upgraded["donations"] = donations

    badges = []
    for raw in _dict_items(upgraded.get("badges"), "badges"):
        identifier = raw.get("type") or raw.get("id")
        badges.append(
            {
                "identifier": str(identifier).replace("_", "-") if identifier else None,
                "earned_at": _legacy_date(raw.get("earnedDate")),
            }
        )
    upgraded["badges"] = badges
    return upgraded


_ITEM_DEFAULTS: dict[str, dict[str, Any]] = {
    "transactions": {"description": ""},
    "donations": {"user_id": "", "location": "", "facility_name": "", "credits_awarded": 0},
    "badges": {},
}


def _fill_item(item: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    # None ids/timestamps are dropped so the model's default factories apply
    filled = {k: v for k, v in item.items() if v is not None}
    for key, default in defaults.items():
        filled.setdefault(key, default)
    return filled


def decode_profile(data: dict[str, Any] | None) -> BloodProfile:
    """Build a ``BloodProfile`` from a stored document, upgrading old schemas."""
    if not data:
        return BloodProfile()
    if not isinstance(data, dict):
        raise ProfileDecodeError(f"profile document must be an object, got {type(data).__name__}")

    version = data.get("schema_version", 0)
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise ProfileDecodeError(f"unsupported profile schema version: {version!r}")

    payload = dict(data)
    payload.pop("schema_version", None)
    if version == 0:
        payload = _upgrade_v0(payload)
    for key in _DERIVED_KEYS:
        payload.pop(key, None)

    for key, default in PROFILE_DEFAULTS.items():
        if payload.get(key) is None:
            payload[key] = list(default) if isinstance(default, list) else default

    for key, defaults in _ITEM_DEFAULTS.items():
        payload[key] = [_fill_item(item, defaults) for item in _dict_items(payload[key], key)]
    payload["badges"] = [b for b in payload["badges"] if b.get("identifier")]

    try:
        profile = BloodProfile.model_validate(payload)
    except ValidationError as exc:
        raise ProfileDecodeError(f"malformed profile document: {exc}") from exc

    if profile.ledger_total() != profile.total_credits:
        logger.warning(
            "profile ledger mismatch: total_credits=%d, transactions sum=%d",
            profile.total_credits,
            profile.ledger_total(),
        )
    return profile
