# Overview: JSON response envelope helpers.

"""
Every response uses the envelope {success, data?, message?, error?}.

Lists nest the page under the resource name alongside pagination, e.g.
{"success": true, "data": {"orders": [...], "pagination": {...}}}.
"""

from __future__ import annotations

import math
from typing import Any

from flask import jsonify


def ok(data: Any = None, message: str | None = None, status: int = 200):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def created(data: Any = None, message: str | None = None):
    return ok(data, message, status=201)


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def paged(key: str, items: list, page: int, limit: int, total: int):
    return ok({key: items, "pagination": pagination(page, limit, total)})
