"""
Unit tests for stored profile documents.

Tests cover:
- Current schema encoding
- Legacy (mobile app) documents
- Default substitution for missing fields
- Rejection of unknown schema versions
"""

from datetime import datetime, timedelta, timezone

import pytest

from blood_credits.exceptions import ProfileDecodeError
from blood_credits.models.credits import BadgeType, BloodProfile, BloodType, CreditType, PriorityLevel
from blood_credits.services import rewards
from blood_credits.services.profile_codec import SCHEMA_VERSION, decode_profile, encode_profile


class TestEncode:
    def test_document_is_versioned_and_json_ready(self, donation_event, now):
        profile = rewards.record_donation(BloodProfile(), donation_event, user_id="u1", now=now).profile

        data = encode_profile(profile)

        assert data["schema_version"] == SCHEMA_VERSION
        assert data["total_credits"] == 150
        assert data["lives_saved"] == 3
        assert data["priority_level"] == "Standard"
        assert data["last_donation_at"].startswith("2025-06-01T12:00:00")
        assert data["badges"][0]["identifier"] == "first-donation"

    def test_decode_restores_encoded_profile(self, donation_event, now):
        profile = rewards.record_donation(BloodProfile(), donation_event, user_id="u1", now=now).profile

        decoded = decode_profile(encode_profile(profile))

        assert decoded == profile


class TestDecodeDefaults:
    def test_empty_document(self):
        profile = decode_profile({})

        assert profile.total_credits == 0
        assert profile.badges == []
        assert profile.transactions == []
        assert profile.last_donation_at is None
        assert profile.priority_level == PriorityLevel.STANDARD

    def test_none_document(self):
        assert decode_profile(None) == BloodProfile()

    def test_missing_and_null_fields(self):
        profile = decode_profile({"schema_version": 1, "total_credits": 30, "badges": None,
                                  "transactions": [{"type": "referral", "amount": 30}]})

        assert profile.total_credits == 30
        assert profile.badges == []
        assert profile.transactions[0].description == ""
        assert profile.transactions[0].id

    def test_stored_derived_values_are_ignored(self):
        profile = decode_profile({"schema_version": 1, "total_credits": 0, "lifetime_donations": 2,
                                  "lives_saved": 99, "priority_level": "Platinum"})

        assert profile.lives_saved == 6
        assert profile.priority_level == PriorityLevel.STANDARD


class TestLegacyDocuments:
    def test_mobile_app_document(self):
        # seconds since 2001-01-01, as written by the app's JSON encoder
        legacy_seconds = 770_000_000
        expected = datetime(2001, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=legacy_seconds)
        data = {
            "totalCredits": 175,
            "lifetimeDonations": 1,
            "livesSaved": 3,
            "currentStreak": 1,
            "longestStreak": 1,
            "helpResponseCount": 0,
            "referralCount": 0,
            "priorityLevel": "Standard",
            "lastDonationDate": legacy_seconds,
            "badges": [{"id": "first_donation", "type": "first_donation", "earnedDate": legacy_seconds}],
            "transactions": [
                {"id": "T2", "type": "donation", "amount": 150, "description": "Blood donation at X",
                 "date": legacy_seconds, "relatedDonationId": "D1"},
                {"id": "T1", "type": "welcome", "amount": 25, "description": "Welcome", "date": legacy_seconds - 10},
            ],
            "donations": [
                {"id": "D1", "userId": "u1", "date": legacy_seconds, "bloodType": "B-", "location": "Pune",
                 "hospitalName": "Sassoon", "unitsdonated": 1, "wasUrgent": False, "creditsEarned": 150,
                 "verified": False},
            ],
        }

        profile = decode_profile(data)

        assert profile.total_credits == 175
        assert profile.ledger_total() == 175
        assert profile.last_donation_at == expected
        assert profile.badges[0].identifier == BadgeType.FIRST_DONATION
        assert profile.transactions[0].type == CreditType.DONATION
        assert profile.transactions[0].related_donation_id == "D1"
        donation = profile.donations[0]
        assert donation.facility_name == "Sassoon"
        assert donation.blood_type == BloodType.B_NEG
        assert donation.credits_awarded == 150

    def test_legacy_manual_badges_survive(self):
        profile = decode_profile({"badges": [{"type": "top_donor"}, {"type": "early_adopter"}, {}]})

        assert [b.identifier for b in profile.badges] == [BadgeType.TOP_DONOR, BadgeType.EARLY_ADOPTER]


class TestMalformedEntries:
    def test_non_object_entries_are_skipped(self):
        profile = decode_profile({"schema_version": 1, "total_credits": 30,
                                  "transactions": ["junk", {"type": "referral", "amount": 30}, 7],
                                  "donations": [None], "badges": ["first-donation"]})

        assert [t.amount for t in profile.transactions] == [30]
        assert profile.donations == []
        assert profile.badges == []

    def test_collection_that_is_not_a_list(self):
        profile = decode_profile({"schema_version": 1, "transactions": {"type": "welcome", "amount": 25},
                                  "badges": "first-donation"})

        assert profile.transactions == []
        assert profile.badges == []

    def test_legacy_string_badges(self):
        profile = decode_profile({"totalCredits": 0, "badges": ["first_donation", {"type": "life_saver"}]})

        assert [b.identifier for b in profile.badges] == [BadgeType.LIFE_SAVER]

    def test_document_that_is_not_an_object(self):
        with pytest.raises(ProfileDecodeError):
            decode_profile(["first-donation"])


class TestDecodeErrors:
    def test_newer_schema_version(self):
        with pytest.raises(ProfileDecodeError):
            decode_profile({"schema_version": SCHEMA_VERSION + 1})

    def test_invalid_values(self):
        with pytest.raises(ProfileDecodeError):
            decode_profile({"schema_version": 1, "transactions": [{"type": "donation", "amount": -5}]})
