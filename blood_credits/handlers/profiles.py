from typing import Any, Optional

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession

from blood_credits.models.credits import Badge, BloodProfile, DonationEvent
from blood_credits.services import profiles
from blood_credits.services.accounts import upsert_user_account
from blood_credits.services.leaderboard import get_user_rank
from blood_credits.services.rewards import (
    RewardOutcome,
    can_donate_now,
    days_until_can_donate,
    next_eligible_at,
)
from blood_credits.utils.blood import normalize_blood_type

from .errors import error_response

routes = web.RouteTableDef()

IDEMPOTENCY_HEADER = "Idempotency-Key"


# --- helpers ---


async def _read_json(request: web.Request) -> dict[str, Any]:
    if not request.body_exists:
        return {}
    data = await request.json()
    if not isinstance(data, dict):
        raise ValueError("JSON object expected")
    return data


def _session(request: web.Request) -> AsyncSession:
    return request["session"]


def _badge_view(badge: Badge) -> dict[str, Any]:
    return {
        "identifier": badge.identifier.value,
        "title": badge.identifier.title,
        "description": badge.identifier.description,
        "earned_at": badge.earned_at.isoformat(),
    }


def profile_view(profile: BloodProfile) -> dict[str, Any]:
    data = profile.model_dump(mode="json")
    data["badges"] = [_badge_view(b) for b in profile.badges]
    data["priority_benefits"] = profile.priority_level.benefits
    eligible_at = next_eligible_at(profile)
    data["eligibility"] = {
        "can_donate_now": can_donate_now(profile),
        "days_until_can_donate": days_until_can_donate(profile),
        "next_eligible_at": eligible_at.isoformat() if eligible_at else None,
    }
    return data


def outcome_view(outcome: RewardOutcome) -> dict[str, Any]:
    return {
        "profile": profile_view(outcome.profile),
        "transaction": outcome.transaction.model_dump(mode="json"),
        "new_badges": [_badge_view(b) for b in outcome.new_badges],
    }


def _idempotency_key(request: web.Request) -> Optional[str]:
    return request.headers.get(IDEMPOTENCY_HEADER) or None


# --- profile ---


@routes.get("/profiles/{user_id}")
async def get_profile(request: web.Request) -> web.Response:
    profile = await profiles.get_or_create_profile(_session(request), request.match_info["user_id"])
    return web.json_response(profile_view(profile))


@routes.get("/profiles/{user_id}/rank")
async def get_rank(request: web.Request) -> web.Response:
    user_id = request.match_info["user_id"]
    rank = await get_user_rank(_session(request), user_id)
    if rank is None:
        return error_response(404, "not_found", f"no profile for {user_id}")
    return web.json_response({"user_id": user_id, "rank": rank})


# --- recorded events ---


@routes.post("/profiles/{user_id}/donations")
async def post_donation(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    raw_type = payload.get("blood_type")
    blood_type = normalize_blood_type(raw_type) if isinstance(raw_type, str) else None
    if blood_type is None:
        raise ValueError(f"unknown blood type: {raw_type!r}")
    payload["blood_type"] = blood_type
    event = DonationEvent.model_validate(payload)

    outcome = await profiles.record_donation(
        _session(request),
        request.match_info["user_id"],
        event,
        idempotency_key=_idempotency_key(request),
    )
    return web.json_response(outcome_view(outcome), status=201)


@routes.post("/profiles/{user_id}/help-responses")
async def post_help_response(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    request_id = payload.get("request_id")
    outcome = await profiles.record_help_response(
        _session(request),
        request.match_info["user_id"],
        request_id=str(request_id) if request_id is not None else None,
        idempotency_key=_idempotency_key(request),
    )
    return web.json_response(outcome_view(outcome), status=201)


@routes.post("/profiles/{user_id}/referrals")
async def post_referral(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    referred_name = str(payload.get("referred_name") or "").strip()
    if not referred_name:
        raise ValueError("referred_name is required")
    outcome = await profiles.record_referral(
        _session(request),
        request.match_info["user_id"],
        referred_name,
        idempotency_key=_idempotency_key(request),
    )
    return web.json_response(outcome_view(outcome), status=201)


# --- public account data ---


@routes.put("/users/{user_id}")
async def put_user(request: web.Request) -> web.Response:
    payload = await _read_json(request)
    account = await upsert_user_account(
        _session(request),
        request.match_info["user_id"],
        display_name=payload.get("display_name"),
        profile_image_url=payload.get("profile_image_url"),
    )
    return web.json_response(
        {
            "user_id": account.user_id,
            "display_name": account.display_name,
            "profile_image_url": account.profile_image_url,
        }
    )
