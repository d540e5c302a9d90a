from aiohttp import web

from blood_credits.config import settings
from blood_credits.services.leaderboard import get_leaderboard

routes = web.RouteTableDef()

MAX_LIMIT = 500


@routes.get("/leaderboard")
async def leaderboard(request: web.Request) -> web.Response:
    raw_limit = request.query.get("limit")
    limit = int(raw_limit) if raw_limit else settings.LEADERBOARD_LIMIT
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")
    entries = await get_leaderboard(request["session"], limit)
    return web.json_response({"entries": [e.as_dict() for e in entries]})
