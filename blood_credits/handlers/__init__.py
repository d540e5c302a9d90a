from .errors import error_middleware
from .leaderboard import routes as leaderboard_routes
from .profiles import routes as profile_routes

__all__ = [
    "error_middleware",
    "leaderboard_routes",
    "profile_routes",
]
