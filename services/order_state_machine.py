# services/order_state_machine.py

from typing import Optional

from sqlalchemy.orm import Session

from models.order_model import Order, ORDER_STATUSES, PAYMENT_STATUSES, utcnow
from services.inventory_services import InventoryService
from utils.exceptions import InvalidTransition, ValidationError
from utils.logger import logger


ORDER_TRANSITIONS = {
    "pending": ("processing", "shipped", "cancelled"),
    "processing": ("shipped", "delivered", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    # cancelling a delivered order covers refund-after-delivery
    "delivered": ("cancelled",),
    "cancelled": (),
}

# payment status only moves forward
PAYMENT_TRANSITIONS = {
    "unpaid": ("paid",),
    "paid": ("refunded",),
    "refunded": (),
}


def check_status(target: str) -> None:
    if target not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status value '{target}'. Allowed values: {', '.join(ORDER_STATUSES)}"
        )


def check_payment_status(target: str) -> None:
    if target not in PAYMENT_STATUSES:
        raise ValidationError(
            f"Invalid payment status value '{target}'. Allowed values: {', '.join(PAYMENT_STATUSES)}"
        )


def ensure_transition(current: str, target: str) -> None:
    allowed = ORDER_TRANSITIONS.get(current, ())
    if target not in allowed:
        raise InvalidTransition(current, target, allowed)


def ensure_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(current, ())
    if target not in allowed:
        raise InvalidTransition(current, target, allowed, field="payment status")


class OrderStateMachine:
    """
    Applies one order status transition and its reconciliation side effects.

    The caller owns the timeline entry, persistence and notification; this
    class only validates the move and mutates the order (and, through the
    inventory service, its products) in memory.
    """

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)

    def transition(
        self,
        order: Order,
        target: str,
        actor: str,
        notes: Optional[str] = None,
        shipping_info: Optional[dict] = None,
    ) -> bool:
        """Return False for a same-status no-op, True when the status changed."""
        check_status(target)
        current = order.status

        if current == target:
            return False

        ensure_transition(current, target)

        if current == "pending" and target == "processing":
            self.inventory.reserve(order)

        if target == "shipped":
            self.inventory.commit_stock(order)
            if shipping_info:
                order.merge_shipping_info(shipping_info)
                order.shipped_at = utcnow()
            elif order.shipped_at is None:
                order.shipped_at = utcnow()

        if target == "delivered":
            order.actual_delivery = utcnow()

        if target == "cancelled":
            self.inventory.release(order)
            order.cancellation_reason = notes or f"Cancelled by {actor}"
            order.cancelled_at = utcnow()
            order.cancelled_by = actor
            order.cancellation_refund_status = (
                "pending" if order.payment_status == "paid" else "not_applicable"
            )

        order.status = target
        logger.info(f"Order {order.id} status {current} -> {target} by {actor}")
        return True
