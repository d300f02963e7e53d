# controllers/admin_order_controller.py

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from models.user_model import User
from schemas.order_schema import (
    BulkStatusResult,
    BulkStatusUpdate,
    OrderItemsUpdate,
    OrderNoteCreate,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    RefundRequest,
    ReorderRequest,
    ShippingInfoUpdate,
)
from services.order_services import OrderService, serialize_order
from services.payment_services import PaymentService
from utils.jwt_utils import get_current_admin_user
from utils.response_helper import success_response


router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])


def _actor(admin: User, admin_id: Optional[str] = None) -> str:
    return admin_id or admin.email


# 🔹 Reporting routes are declared before /{order_id} so they are not
# captured by the path parameter.
@router.get("/analytics/overview")
def order_analytics(
    period: Literal["7d", "30d", "90d"] = "30d",
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = OrderService(db).get_order_analytics(period)
    return success_response(message="Order analytics retrieved successfully", data=data)


@router.get("/refunds/stats")
def refund_stats(
    period: Literal["7d", "30d", "90d"] = "30d",
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = OrderService(db).get_refund_stats(period)
    return success_response(message="Refund statistics retrieved successfully", data=data)


@router.post("/bulk/status")
def bulk_update_status(
    body: BulkStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    result = OrderService(db).bulk_update_status(
        body.order_ids,
        body.status,
        notes=body.notes,
        actor=_actor(admin, body.admin_id),
    )
    return success_response(
        message=f"{result['updated_count']} orders updated successfully",
        data=BulkStatusResult(**result).model_dump(),
    )


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    payment_status: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: Literal["created_at", "total", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = OrderService(db).list_orders(
        page=page,
        limit=limit,
        status=status_filter,
        payment_status=payment_status,
        search=search,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success_response(message="Orders retrieved successfully", data=data)


@router.get("/{order_id}")
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = OrderService(db).get_order(order_id)
    return success_response(message="Order retrieved successfully", data=serialize_order(order))


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    shipping_info = body.shipping_info.model_dump(exclude_none=True) if body.shipping_info else None
    order, changed = OrderService(db).update_status(
        order_id,
        body.status,
        notes=body.notes,
        shipping_info=shipping_info,
        actor=_actor(admin, body.admin_id),
    )
    message = (
        f"Order status updated to {order.status}"
        if changed
        else f"Order is already {order.status}"
    )
    return success_response(message=message, data=serialize_order(order))


@router.patch("/{order_id}/payment")
def update_payment_status(
    order_id: int,
    body: PaymentStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order, changed = PaymentService(db).update_payment_status(
        order_id,
        body.payment_status,
        notes=body.notes,
        refund_amount=body.refund_amount,
        actor=admin.email,
    )
    message = (
        f"Payment status updated to {order.payment_status}"
        if changed
        else f"Payment status is already {order.payment_status}"
    )
    return success_response(message=message, data=serialize_order(order))


@router.post("/{order_id}/refund")
def process_refund(
    order_id: int,
    body: RefundRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = PaymentService(db).process_refund(
        order_id,
        amount=body.amount,
        reason=body.reason,
        refund_method=body.refund_method,
        actor=_actor(admin, body.admin_id),
    )
    return success_response(message="Refund processed successfully", data=serialize_order(order))


@router.post("/{order_id}/cod-collected")
def mark_cod_collected(
    order_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = PaymentService(db).mark_cod_collected(order_id, actor=admin.email)
    return success_response(message="Cash payment recorded", data=serialize_order(order))


@router.post("/{order_id}/notes", status_code=status.HTTP_201_CREATED)
def add_order_note(
    order_id: int,
    body: OrderNoteCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = OrderService(db).add_note(
        order_id,
        body.note,
        note_type=body.type,
        is_visible=body.is_visible,
        actor=admin.email,
    )
    return success_response(
        message="Note added successfully",
        data=serialize_order(order),
        status_code=status.HTTP_201_CREATED,
    )


@router.patch("/{order_id}/items")
def update_order_items(
    order_id: int,
    body: OrderItemsUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = OrderService(db).update_items(order_id, body.items, actor=_actor(admin, body.admin_id))
    return success_response(message="Order items updated successfully", data=serialize_order(order))


@router.patch("/{order_id}/shipping")
def update_shipping_info(
    order_id: int,
    body: ShippingInfoUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = OrderService(db).update_shipping_info(
        order_id,
        body.shipping_info.model_dump(exclude_none=True),
        actor=_actor(admin, body.admin_id),
    )
    return success_response(message="Shipping information updated successfully", data=serialize_order(order))


@router.post("/{order_id}/reorder", status_code=status.HTTP_201_CREATED)
def create_reorder(
    order_id: int,
    body: Optional[ReorderRequest] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    body = body or ReorderRequest()
    order = OrderService(db).create_reorder(
        order_id,
        user_id=body.user_id,
        actor=_actor(admin, body.admin_id),
    )
    return success_response(
        message="Reorder created successfully",
        data=serialize_order(order),
        status_code=status.HTTP_201_CREATED,
    )
