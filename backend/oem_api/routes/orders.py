# backend/oem_api/routes/orders.py
"""
Orders API

Every route is scoped to the authenticated caller; another user's order id
answers 404 exactly like a missing one.
"""

from __future__ import annotations

from flask import Blueprint

from ..decorators import require_auth
from ..models.orders import ORDER_STATUSES
from ..responses import created, ok, paged
from ..schemas import OrderCreate, OrderPatch
from ..services import order_service
from ..services.integrations import current_integrations
from ..validation import choice_arg, page_params, validate_body

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.route("", methods=["POST"])
@require_auth
@validate_body(OrderCreate)
def create_order(ctx, body: OrderCreate):
    order = order_service.create_order(ctx.user_id, body)
    return created(order.to_dict(), "Order created successfully")


@orders_bp.route("", methods=["GET"])
@require_auth
def list_orders(ctx):
    params = page_params()
    status = choice_arg("status", ORDER_STATUSES)
    orders, total = order_service.list_orders(ctx.user_id, params, status=status)
    return paged("orders", [o.to_dict() for o in orders], params.page, params.limit, total)


@orders_bp.route("/stats", methods=["GET"])
@require_auth
def order_stats(ctx):
    return ok(order_service.order_stats(ctx.user_id))


@orders_bp.route("/<order_id>", methods=["GET"])
@require_auth
def get_order(ctx, order_id: str):
    return ok(order_service.get_order(ctx.user_id, order_id).to_dict())


@orders_bp.route("/<order_id>", methods=["PATCH"])
@require_auth
@validate_body(OrderPatch)
def update_order(ctx, order_id: str, body: OrderPatch):
    order = order_service.update_order(ctx.user_id, order_id, body, whatsapp=current_integrations().whatsapp)
    return ok(order.to_dict(), "Order updated successfully")


@orders_bp.route("/<order_id>", methods=["DELETE"])
@require_auth
def delete_order(ctx, order_id: str):
    order_service.delete_order(ctx.user_id, order_id)
    return ok(message="Order deleted successfully")
