from __future__ import annotations

import json
import logging
from typing import Any

import psutil
from aiohttp import web

from ..context import BotContext
from ..database import get_database_info
from ..services.base import PersistenceError
from .admin_api import AdminAPI, AdminResult, AdminStatus

log = logging.getLogger("etabot.web")

# Mounted at the root and under /api, where the original admin page calls it.
ROUTE_PREFIXES = ("", "/api")


async def _read_body(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be JSON"}), content_type="application/json"
        )
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be a JSON object"}), content_type="application/json"
        )
    return body


def _pop_secret(body: dict[str, Any]) -> Any:
    secret = body.pop("secret", None)
    password = body.pop("password", None)
    return secret if secret is not None else password


def _result_response(result: AdminResult, message: str) -> web.Response:
    if result.status is AdminStatus.UNAUTHORIZED:
        return web.json_response({"error": "Unauthorized"}, status=401)
    if result.status is AdminStatus.INVALID:
        return web.json_response(
            {
                "error": "Invalid config",
                "issues": [{"path": i.path, "message": i.message} for i in result.issues],
            },
            status=400,
        )
    return web.json_response({"success": True, "message": message})


def create_app(context: BotContext, api: AdminAPI | None = None) -> web.Application:
    api = api or AdminAPI(context)
    app = web.Application()

    async def get_config(_: web.Request) -> web.Response:
        return web.json_response(api.get_config())

    async def post_config(request: web.Request) -> web.Response:
        body = await _read_body(request)
        secret = _pop_secret(body)
        try:
            result = await api.set_config(secret, body)
        except PersistenceError:
            log.exception("Config update could not be saved")
            return web.json_response({"error": "Could not save config"}, status=500)
        return _result_response(result, "Config updated")

    async def get_statistics(_: web.Request) -> web.Response:
        return web.json_response(api.get_statistics())

    async def reset_statistics(request: web.Request) -> web.Response:
        body = await _read_body(request)
        try:
            result = await api.reset_statistics(_pop_secret(body))
        except PersistenceError:
            log.exception("Statistics reset could not be saved")
            return web.json_response({"error": "Could not reset statistics"}, status=500)
        return _result_response(result, "Statistics reset")

    async def health(_: web.Request) -> web.Response:
        payload: dict[str, Any] = {
            "ok": True,
            "service": "eta-bot",
            "stats": context.stats.to_dict(),
            "active_cooldowns": len(context.cooldowns),
            "memory_mb": round(psutil.Process().memory_info().rss / 1024 / 1024, 2),
        }
        try:
            payload["database_mb"] = round((await get_database_info(context.documents.path))["size_mb"], 3)
        except Exception as e:
            log.warning("Database info unavailable: %s", e)
        return web.json_response(payload)

    for base in ROUTE_PREFIXES:
        app.router.add_get(f"{base}/config", get_config)
        app.router.add_post(f"{base}/config", post_config)
        app.router.add_get(f"{base}/statistics", get_statistics)
        app.router.add_post(f"{base}/statistics/reset", reset_statistics)
    app.router.add_get("/healthz", health)
    return app


async def start_web_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("Admin API listening on %s:%s", host, port)
    return runner
