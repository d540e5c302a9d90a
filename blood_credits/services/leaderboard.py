import logging
from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy import and_, asc, desc, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from blood_credits.config import settings
from blood_credits.exceptions import ProfileDecodeError
from blood_credits.models import ProfileDocument, UserAccount
from blood_credits.models.credits import PriorityLevel
from blood_credits.services.profile_codec import decode_profile

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous Donor"

# credits desc; ties: earlier profile first, then user id
_RANKING_ORDER = (
    desc(ProfileDocument.total_credits),  # type: ignore[arg-type]
    asc(ProfileDocument.created_at),  # type: ignore[arg-type]
    asc(ProfileDocument.user_id),  # type: ignore[arg-type]
)


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    user_name: str
    profile_image_url: Optional[str]
    total_credits: int
    lifetime_donations: int
    lives_saved: int
    priority_level: PriorityLevel
    badge_count: int

    def as_dict(self) -> dict:
        data = asdict(self)
        data["priority_level"] = self.priority_level.value
        return data


async def get_leaderboard(session: AsyncSession, limit: Optional[int] = None) -> list[LeaderboardEntry]:
    """Top donors by credits. Ranks are positions 1..N with a fixed tie-break."""
    limit = limit or settings.LEADERBOARD_LIMIT
    rows = (
        await session.execute(
            select(ProfileDocument, UserAccount)
            .join(UserAccount, UserAccount.user_id == ProfileDocument.user_id, isouter=True)  # type: ignore[arg-type]
            .order_by(*_RANKING_ORDER)
            .limit(limit)
        )
    ).all()

    entries: list[LeaderboardEntry] = []
    for index, (doc, account) in enumerate(rows):
        try:
            profile = decode_profile(doc.data)
            lifetime, lives, badges = profile.lifetime_donations, profile.lives_saved, len(profile.badges)
        except ProfileDecodeError:
            logger.warning("leaderboard: undecodable profile user=%s", doc.user_id)
            lifetime, lives, badges = 0, 0, 0
        entries.append(
            LeaderboardEntry(
                rank=index + 1,
                user_id=doc.user_id,
                user_name=(account.display_name if account and account.display_name else ANONYMOUS_NAME),
                profile_image_url=account.profile_image_url if account else None,
                total_credits=doc.total_credits,
                lifetime_donations=lifetime,
                lives_saved=lives,
                priority_level=PriorityLevel.for_credits(doc.total_credits),
                badge_count=badges,
            )
        )
    return entries


async def get_user_rank(session: AsyncSession, user_id: str) -> Optional[int]:
    """Position of *user_id* in the full ranking, ``None`` if it has no profile."""
    row = (
        await session.execute(
            select(ProfileDocument.total_credits, ProfileDocument.created_at).where(
                ProfileDocument.user_id == user_id
            )
        )
    ).first()
    if row is None:
        return None
    credits, created_at = row
    # profiles ranked ahead under _RANKING_ORDER
    ahead = (
        await session.execute(
            select(func.count()).select_from(ProfileDocument).where(
                or_(
                    ProfileDocument.total_credits > credits,
                    and_(ProfileDocument.total_credits == credits, ProfileDocument.created_at < created_at),
                    and_(
                        ProfileDocument.total_credits == credits,
                        ProfileDocument.created_at == created_at,
                        ProfileDocument.user_id < user_id,
                    ),
                )
            )
        )
    ).scalar_one()
    return ahead + 1
