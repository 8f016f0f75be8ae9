# backend/oem_api/routes/compliance.py
"""
Compliance API

Certifications, audits, reports and alerts with due dates. Items created
with high or critical priority alert the owner over WhatsApp (best effort).
"""

from __future__ import annotations

from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import ValidationError
from ..models.compliance import COMPLIANCE_PRIORITIES, COMPLIANCE_STATUSES, COMPLIANCE_TYPES
from ..responses import created, ok, paged
from ..schemas import ComplianceCreate, CompliancePatch
from ..services import compliance_service
from ..services.integrations import current_integrations
from ..validation import choice_arg, page_params, validate_body

compliance_bp = Blueprint("compliance", __name__, url_prefix="/api/compliance")

MAX_UPCOMING_DAYS = 3650


@compliance_bp.route("", methods=["POST"])
@require_auth
@validate_body(ComplianceCreate)
def create_item(ctx, body: ComplianceCreate):
    item = compliance_service.create_item(ctx.user_id, body, whatsapp=current_integrations().whatsapp)
    return created(item.to_dict(), "Compliance item created successfully")


@compliance_bp.route("", methods=["GET"])
@require_auth
def list_items(ctx):
    params = page_params()
    items, total = compliance_service.list_items(
        ctx.user_id,
        params,
        type=choice_arg("type", COMPLIANCE_TYPES),
        status=choice_arg("status", COMPLIANCE_STATUSES),
        priority=choice_arg("priority", COMPLIANCE_PRIORITIES),
    )
    return paged("compliance", [i.to_dict() for i in items], params.page, params.limit, total)


@compliance_bp.route("/stats", methods=["GET"])
@require_auth
def compliance_stats(ctx):
    return ok(compliance_service.compliance_stats(ctx.user_id))


@compliance_bp.route("/upcoming", methods=["GET"])
@require_auth
def upcoming(ctx):
    raw = request.args.get("days")
    try:
        days = int(raw) if raw not in (None, "") else compliance_service.DEFAULT_UPCOMING_DAYS
    except ValueError:
        raise ValidationError("days must be an integer") from None
    if days < 0 or days > MAX_UPCOMING_DAYS:
        raise ValidationError(f"days must be between 0 and {MAX_UPCOMING_DAYS}")

    items = compliance_service.upcoming(ctx.user_id, days)
    return ok({"upcoming": [i.to_dict() for i in items], "count": len(items)})


@compliance_bp.route("/<item_id>", methods=["GET"])
@require_auth
def get_item(ctx, item_id: str):
    return ok(compliance_service.get_item(ctx.user_id, item_id).to_dict())


@compliance_bp.route("/<item_id>", methods=["PATCH"])
@require_auth
@validate_body(CompliancePatch)
def update_item(ctx, item_id: str, body: CompliancePatch):
    item = compliance_service.update_item(ctx.user_id, item_id, body)
    return ok(item.to_dict(), "Compliance item updated successfully")


@compliance_bp.route("/<item_id>", methods=["DELETE"])
@require_auth
def delete_item(ctx, item_id: str):
    compliance_service.delete_item(ctx.user_id, item_id)
    return ok(message="Compliance item deleted successfully")
