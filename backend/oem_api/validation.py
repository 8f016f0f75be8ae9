# Overview: Request validation helpers: body schemas, patch merging, list paging.

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Mapping

from flask import request
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from .errors import ValidationError


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def format_schema_errors(exc: SchemaValidationError) -> str:
    """One "field: message" entry per violation, comma separated."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return ", ".join(parts)


def parse_body(schema: type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(payload)
    except SchemaValidationError as e:
        raise ValidationError(format_schema_errors(e)) from None


def validate_body(schema: type[BaseModel]):
    """
    Validate the JSON body against `schema` before the view runs.

    The parsed model is passed to the view as the `body` keyword argument;
    on failure the view never runs and the client gets a 400 listing every
    violated field.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = request.get_json(silent=True)
            kwargs["body"] = parse_body(schema, payload)
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def apply_patch(patch: BaseModel, record: Any, null_defaults: Mapping[str, Any] | None = None) -> set[str]:
    """
    Copy the fields present in `patch` onto `record`.

    Absent fields are left alone. A field sent as explicit null is cleared,
    or reset to its `null_defaults` entry when the column has a non-null
    empty value (e.g. documents -> []). Returns the names of the fields that
    actually changed.
    """
    null_defaults = null_defaults or {}
    changed = set()
    for name in sorted(patch.model_fields_set):
        value = getattr(patch, name)
        if value is None and name in null_defaults:
            value = null_defaults[name]
        if getattr(record, name) != value:
            setattr(record, name, value)
            changed.add(name)
    return changed


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _int_arg(args: Mapping[str, str], name: str, default: int) -> int:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None


def page_params(args: Mapping[str, str] | None = None) -> PageParams:
    args = request.args if args is None else args
    page = _int_arg(args, "page", 1)
    limit = _int_arg(args, "limit", DEFAULT_PAGE_SIZE)
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return PageParams(page=page, limit=limit)


def choice_arg(name: str, choices: tuple[str, ...], args: Mapping[str, str] | None = None) -> str | None:
    """Optional enum-valued query filter; unknown values are a 400."""
    args = request.args if args is None else args
    value = args.get(name)
    if value is None or value == "":
        return None
    if value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}")
    return value
