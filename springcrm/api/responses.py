"""JSON response envelope shared by every endpoint."""

from __future__ import annotations

import json
from typing import Any

from aiohttp import web


class ApiError(Exception):
    """Raised by handlers; rendered as `{success: false, message}`."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def ok(**payload: Any) -> web.Response:
    return web.json_response({"success": True, **payload}, dumps=_dumps)


def fail(status: int, message: str) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status, dumps=_dumps)


async def read_json(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise ApiError(400, "Invalid JSON body") from None
    if not isinstance(body, dict):
        raise ApiError(400, "JSON body must be an object")
    return body


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)
