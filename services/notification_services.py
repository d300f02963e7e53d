# services/notification_services.py

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from models.order_model import Order, OrderTimelineEntry
from utils import order_emails
from utils.email_client import send_email
from utils.logger import logger


class NotificationService:
    """
    Best-effort customer notifications.

    Every ``send_*`` returns True only when the email was accepted.
    Exceptions and falsy results are treated the same way: logged and
    reported as False. Nothing here is retried.
    """

    def _dispatch(self, order: Order, builder, *args) -> bool:
        user = order.user
        if user is None or not user.email:
            logger.info(f"No customer email for order {order.id}, skipping notification")
            return False

        try:
            subject, html, text = builder(user, order, *args)
            sent = send_email(to=user.email, subject=subject, html=html, text=text)
        except Exception as e:
            logger.warning(f"Notification for order {order.id} failed: {e}")
            return False

        if not sent:
            logger.warning(f"Notification for order {order.id} was not delivered")
        return bool(sent)

    def send_order_confirmation(self, order: Order) -> bool:
        return self._dispatch(order, order_emails.order_confirmation)

    def send_status_change(self, order: Order, old_status: str, new_status: str, notes: Optional[str] = None) -> bool:
        if new_status == "shipped":
            return self._dispatch(order, order_emails.shipping_notification)
        if new_status == "delivered":
            return self._dispatch(order, order_emails.delivery_confirmation)
        if new_status == "cancelled":
            return self._dispatch(order, order_emails.cancellation, notes)
        return self._dispatch(order, order_emails.status_update, old_status, new_status)

    def send_shipping_notification(self, order: Order) -> bool:
        return self._dispatch(order, order_emails.shipping_notification)

    def send_payment_confirmation(self, order: Order) -> bool:
        return self._dispatch(order, order_emails.payment_confirmed)

    def send_upi_payment_verified(self, order: Order) -> bool:
        return self._dispatch(order, order_emails.upi_payment_verified)

    def send_upi_payment_rejected(self, order: Order, reason: Optional[str]) -> bool:
        return self._dispatch(order, order_emails.upi_payment_rejected, reason)

    def send_refund_processed(self, order: Order) -> bool:
        return self._dispatch(order, order_emails.refund_processed)


def mark_notified(db, entry: OrderTimelineEntry, sent: bool) -> None:
    """Flip ``notification_sent`` after a successful dispatch."""
    if not sent:
        return
    entry.notification_sent = True
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not record notification flag for timeline entry {entry.id}: {e}")
