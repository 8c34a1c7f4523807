"""Admin HTTP API for creating, listing, editing and deleting tasks.

Runs alongside the scheduler in the same asyncio event loop using aiohttp's
AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from pushcron.api.schemas import CYCLE_CONFIG_REQUIRED, REQUIRED_FIELDS, TaskCreate, TaskUpdate
from pushcron.config import settings
from pushcron.errors import NotFoundError
from pushcron.scheduler.models import utc_now
from pushcron.scheduler.store import LogStore, TaskStore

logger = logging.getLogger(__name__)

TASK_STORE = web.AppKey("task_store", TaskStore)
LOG_STORE = web.AppKey("log_store", LogStore)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(
            text='{"success": false, "message": "invalid JSON"}',
            content_type="application/json",
        ) from None
    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(
            text='{"success": false, "message": "expected a JSON object"}',
            content_type="application/json",
        )
    return payload


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


async def _create_task(request: web.Request) -> web.Response:
    """POST /api/tasks"""
    payload = await _read_json(request)
    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        return _error(f"Missing required fields: {', '.join(missing)}", 400)

    task = TaskCreate.model_validate(payload).to_task()
    await request.app[TASK_STORE].add_task(task)
    return web.json_response({"success": True, "taskId": task.id}, status=201)


async def _list_tasks(request: web.Request) -> web.Response:
    """GET /api/tasks"""
    tasks = await request.app[TASK_STORE].list_tasks()
    return web.json_response([task.to_dict() for task in tasks])


async def _update_task(request: web.Request) -> web.Response:
    """PUT /api/tasks/{task_id}: merge the body into the stored task."""
    task_id = request.match_info["task_id"]
    payload = await _read_json(request)
    store = request.app[TASK_STORE]
    task = await store.require_task(task_id)
    changes = TaskUpdate.model_validate(payload).changes()

    updated = replace(task, **changes, update_time=utc_now())
    if updated.is_cycle and updated.cycle_config is None:
        return _error(CYCLE_CONFIG_REQUIRED, 400)
    await store.update_task(updated)
    logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
    return web.json_response({"success": True})


async def _delete_task(request: web.Request) -> web.Response:
    """DELETE /api/tasks/{task_id}"""
    task_id = request.match_info["task_id"]
    if not await request.app[TASK_STORE].delete_task(task_id):
        msg = f"Task not found: {task_id}"
        raise NotFoundError(msg)
    return web.json_response({"success": True})


async def _task_logs(request: web.Request) -> web.Response:
    """GET /api/tasks/{task_id}/logs: most recent execution records."""
    task_id = request.match_info["task_id"]
    try:
        limit = int(request.query.get("limit", "50"))
    except ValueError:
        return _error("limit must be an integer", 400)
    records = await request.app[LOG_STORE].list_logs(task_id, limit=max(1, min(limit, 500)))
    return web.json_response([record.to_dict() for record in records])


@web.middleware
async def _error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map handler exceptions onto JSON error responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except NotFoundError as exc:
        return _error(str(exc), 404)
    except ValidationError as exc:
        return _error(str(exc), 400)
    except Exception as exc:
        logger.exception("API handler failed: %s %s", request.method, request.path)
        return _error(f"Internal Server Error: {exc}", 500)


def create_web_app(task_store: TaskStore, log_store: LogStore) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[_error_middleware])
    app[TASK_STORE] = task_store
    app[LOG_STORE] = log_store
    app.router.add_get("/health", _health)
    app.router.add_post("/api/tasks", _create_task)
    app.router.add_get("/api/tasks", _list_tasks)
    app.router.add_put("/api/tasks/{task_id}", _update_task)
    app.router.add_delete("/api/tasks/{task_id}", _delete_task)
    app.router.add_get("/api/tasks/{task_id}/logs", _task_logs)
    return app


class ApiServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        task_store: TaskStore,
        log_store: LogStore,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self._task_store = task_store
        self._log_store = log_store
        self.host = host or settings.api_host
        self.port = port or settings.api_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for admin API requests."""
        app = create_web_app(self._task_store, self._log_store)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("API server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")
