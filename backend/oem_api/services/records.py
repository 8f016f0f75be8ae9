# Overview: Shared persistence helpers for user-owned records.

"""
Every resource row is owned by a user_id, and every read or write is scoped
by the caller's id. A record owned by someone else is indistinguishable from
a missing one: both raise NotFoundError.
"""

from __future__ import annotations

import secrets
import string
import time
from typing import Any, Iterable

from ..errors import NotFoundError
from ..extensions import db
from ..validation import PageParams


_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(prefix: str) -> str:
    """Human-traceable id: <prefix>-<epoch ms>-<4 uppercase alphanumerics>."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def owned_query(model, user_id: str):
    return db.session.query(model).filter(model.user_id == user_id)


def find_owned(model, record_id: str, user_id: str, not_found: str = "Resource not found"):
    record = owned_query(model, user_id).filter(model.id == record_id).first()
    if record is None:
        raise NotFoundError(not_found)
    return record


def apply_filters(query, model, filters: dict[str, Any]):
    for column, value in filters.items():
        if value is not None:
            query = query.filter(getattr(model, column) == value)
    return query


def paginate(query, model, params: PageParams) -> tuple[list, int]:
    """Newest first; returns (page items, total matching rows)."""
    total = query.order_by(None).count()
    items = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )
    return items, total


def save(record):
    db.session.add(record)
    db.session.commit()
    return record


def delete(record) -> None:
    db.session.delete(record)
    db.session.commit()


def count_by(rows: Iterable, attr: str, keys: Iterable[str]) -> dict[str, int]:
    """Count rows per value of `attr`, reporting every key in `keys` (zero included)."""
    counts = {key: 0 for key in keys}
    for row in rows:
        value = getattr(row, attr)
        if value in counts:
            counts[value] += 1
    return counts
