import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from blood_credits.services.leaderboard import get_leaderboard
from blood_credits.services.profiles import get_profile


async def export_leaderboard(session: AsyncSession, file_path: str, limit: int | None = None) -> str:
    """Exports the leaderboard to an Excel sheet."""
    entries = await get_leaderboard(session, limit)
    rows = [
        {
            "Rank": e.rank,
            "Donor": e.user_name,
            "Credits": e.total_credits,
            "Donations": e.lifetime_donations,
            "Lives saved": e.lives_saved,
            "Priority": e.priority_level.value,
            "Badges": e.badge_count,
        }
        for e in entries
    ]
    if not rows:
        rows.append({"Rank": "-", "Donor": "no data"})
    pd.DataFrame(rows).to_excel(file_path, index=False)
    return file_path


async def export_transactions(session: AsyncSession, user_id: str, file_path: str) -> str:
    """Exports one donor's credit ledger (newest first) to Excel."""
    profile = await get_profile(session, user_id)
    if profile is None:
        raise ValueError(f"Profile {user_id} not found")

    rows = [
        {
            "Date": t.timestamp.replace(tzinfo=None),
            "Type": t.type.value,
            "Credits": t.amount,
            "Description": t.description,
            "Donation": t.related_donation_id or "",
        }
        for t in profile.transactions
    ]
    df = pd.DataFrame(rows, columns=["Date", "Type", "Credits", "Description", "Donation"])
    df.to_excel(file_path, index=False)
    return file_path
