import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blood_credits.config import settings
from blood_credits.exceptions import (
    ConcurrentUpdateError,
    DuplicateEventError,
    ProfileStoreError,
    StoreTimeoutError,
)
from blood_credits.models import ProcessedEvent, ProfileDocument
from blood_credits.models.credits import BloodProfile, DonationEvent
from blood_credits.services import rewards
from blood_credits.services.profile_codec import decode_profile, encode_profile
from blood_credits.utils.time import utc_now

logger = logging.getLogger(__name__)

Mutation = Callable[[BloodProfile], rewards.RewardOutcome]


async def _load_document(session: AsyncSession, user_id: str) -> Optional[ProfileDocument]:
    # always re-read: a cached row would carry a stale version
    return await session.get(ProfileDocument, user_id, populate_existing=True)


async def get_profile(session: AsyncSession, user_id: str) -> Optional[BloodProfile]:
    doc = await _load_document(session, user_id)
    if doc is None:
        return None
    return decode_profile(doc.data)


async def get_or_create_profile(session: AsyncSession, user_id: str) -> BloodProfile:
    """Returns the stored profile, creating it (with welcome credits) on first access."""
    doc = await _load_document(session, user_id)
    if doc is not None:
        return decode_profile(doc.data)

    profile = BloodProfile()
    if settings.WELCOME_CREDITS > 0:
        profile = rewards.award_welcome(profile, amount=settings.WELCOME_CREDITS).profile

    session.add(
        ProfileDocument(
            user_id=user_id,
            data=encode_profile(profile),
            total_credits=profile.total_credits,
        )
    )
    try:
        await session.commit()
    except IntegrityError:
        # created concurrently by another request, use theirs
        await session.rollback()
        doc = await _load_document(session, user_id)
        if doc is None:
            raise ProfileStoreError(f"profile {user_id} could not be created")
        return decode_profile(doc.data)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise ProfileStoreError(f"profile {user_id} could not be created: {exc}") from exc

    logger.info("profile created user=%s welcome_credits=%d", user_id, profile.total_credits)
    return profile


async def _apply_once(
    session: AsyncSession,
    user_id: str,
    kind: str,
    mutation: Mutation,
    idempotency_key: str,
) -> rewards.RewardOutcome:
    """One read-modify-write round.

    The profile update and the processed-event row are committed together,
    so an event is either fully applied or not at all.
    """
    try:
        if await session.get(ProcessedEvent, idempotency_key) is not None:
            raise DuplicateEventError(idempotency_key)

        doc = await _load_document(session, user_id)
        if doc is None:
            await get_or_create_profile(session, user_id)
            doc = await _load_document(session, user_id)
            if doc is None:
                raise ProfileStoreError(f"profile {user_id} disappeared after creation")

        outcome = mutation(decode_profile(doc.data))

        result = await session.execute(
            update(ProfileDocument)
            .where(ProfileDocument.user_id == user_id)  # type: ignore[arg-type]
            .where(ProfileDocument.version == doc.version)  # type: ignore[arg-type]
            .values(
                data=encode_profile(outcome.profile),
                total_credits=outcome.profile.total_credits,
                version=doc.version + 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise ConcurrentUpdateError(f"profile {user_id} changed since version {doc.version}")

        session.add(ProcessedEvent(idempotency_key=idempotency_key, user_id=user_id, kind=kind))
        await session.commit()
    except IntegrityError as exc:
        # the processed-event row is the only insert here
        await session.rollback()
        raise DuplicateEventError(idempotency_key) from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise ProfileStoreError(f"profile {user_id} write failed: {exc}") from exc
    except (Exception, asyncio.CancelledError):
        await session.rollback()
        raise
    return outcome


async def _apply(
    session: AsyncSession,
    user_id: str,
    kind: str,
    mutation: Mutation,
    idempotency_key: Optional[str],
) -> rewards.RewardOutcome:
    key = idempotency_key or str(uuid.uuid4())

    async def _retrying() -> rewards.RewardOutcome:
        for attempt in range(1, settings.MAX_WRITE_RETRIES + 1):
            try:
                return await _apply_once(session, user_id, kind, mutation, key)
            except ConcurrentUpdateError:
                logger.info("version conflict user=%s kind=%s attempt=%d", user_id, kind, attempt)
        raise ConcurrentUpdateError(
            f"profile {user_id} kept changing; gave up after {settings.MAX_WRITE_RETRIES} attempts"
        )

    try:
        outcome = await asyncio.wait_for(_retrying(), timeout=settings.STORE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError as exc:
        logger.warning("store timeout user=%s kind=%s", user_id, kind)
        raise StoreTimeoutError(f"profile store did not answer within {settings.STORE_TIMEOUT_SECONDS}s") from exc

    logger.info(
        "event applied user=%s kind=%s key=%s credits=%d total=%d badges=%s",
        user_id,
        kind,
        key,
        outcome.transaction.amount,
        outcome.profile.total_credits,
        [b.identifier.value for b in outcome.new_badges],
    )
    return outcome


# --------- recorded events ---------


async def record_donation(
    session: AsyncSession,
    user_id: str,
    event: DonationEvent,
    *,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> rewards.RewardOutcome:
    return await _apply(
        session,
        user_id,
        "donation",
        lambda profile: rewards.record_donation(
            profile,
            event,
            user_id=user_id,
            now=now,
            enforce_interval=settings.ENFORCE_DONATION_INTERVAL,
        ),
        idempotency_key,
    )


async def record_help_response(
    session: AsyncSession,
    user_id: str,
    *,
    request_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> rewards.RewardOutcome:
    return await _apply(
        session,
        user_id,
        "help_response",
        lambda profile: rewards.record_help_response(profile, request_id=request_id, now=now),
        idempotency_key,
    )


async def record_referral(
    session: AsyncSession,
    user_id: str,
    referred_name: str,
    *,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> rewards.RewardOutcome:
    return await _apply(
        session,
        user_id,
        "referral",
        lambda profile: rewards.record_referral(profile, referred_name, now=now),
        idempotency_key,
    )
