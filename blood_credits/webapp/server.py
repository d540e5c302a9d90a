"""HTTP server exposing the rewards engine.

This module exposes ``create_app`` (used by tests and by ``main``) and a
coroutine ``start_webapp_server`` that launches an ``aiohttp.web.TCPSite``
on ``http://localhost:8080`` (configurable via env/Settings).
"""

import asyncio
import logging

from aiohttp import web
from sqlalchemy.ext.asyncio import async_sessionmaker

from blood_credits.config import settings
from blood_credits.handlers import error_middleware, leaderboard_routes, profile_routes

logger = logging.getLogger(__name__)


def db_session_middleware(session_pool: async_sessionmaker):
    """Opens one database session per request, available as ``request["session"]``."""

    @web.middleware
    async def middleware(request: web.Request, handler):
        async with session_pool() as session:
            request["session"] = session
            return await handler(request)

    return middleware


def create_app(session_pool: async_sessionmaker) -> web.Application:
    app = web.Application(middlewares=[error_middleware, db_session_middleware(session_pool)])
    app.router.add_routes(profile_routes)
    app.router.add_routes(leaderboard_routes)
    return app


async def start_webapp_server(session_pool: async_sessionmaker, port: int | None = None) -> None:
    """Launch the API server.

    This coroutine **never returns**: it blocks until the event loop is
    cancelled.
    """

    _port = port or settings.LOCAL_WEBAPP_PORT
    app = create_app(session_pool)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host="127.0.0.1", port=_port)
    await site.start()

    logger.info("Blood credits API is being served at http://localhost:%d/", _port)

    # Keep the coroutine alive for the lifetime of the application.
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
