from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from blood_credits.models import UserAccount


async def get_user_account(session: AsyncSession, user_id: str) -> Optional[UserAccount]:
    return await session.get(UserAccount, user_id)


async def upsert_user_account(
    session: AsyncSession,
    user_id: str,
    display_name: Optional[str] = None,
    profile_image_url: Optional[str] = None,
) -> UserAccount:
    """Create or update the public part of a user (shown on the leaderboard).

    Only the fields passed explicitly are overwritten.
    """
    account = await get_user_account(session, user_id)
    if account is None:
        account = UserAccount(user_id=user_id)
    if display_name is not None:
        account.display_name = display_name.strip() or None
    if profile_image_url is not None:
        account.profile_image_url = profile_image_url or None

    session.add(account)
    await session.commit()
    await session.refresh(account)
    return account
