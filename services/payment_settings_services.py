# services/payment_settings_services.py

from typing import Optional

from sqlalchemy.orm import Session

from models.order_model import Order, utcnow
from models.payment_settings_model import PaymentSettings
from schemas.order_schema import OrderRead
from schemas.payment_schema import (
    PaymentSettingsRead,
    PaymentSettingsUpdate,
    UPISubmitRequest,
    UPIVerifyRequest,
)
from services.notification_services import NotificationService, mark_notified
from services.order_services import commit_order
from services.order_state_machine import OrderStateMachine, ensure_payment_transition
from services.payment_services import ensure_payable
from utils.caching_utils import get_or_set_cache, invalidate_cache
from utils.exceptions import AlreadyPaid, AlreadyRefunded, NotFound, ValidationError
from utils.logger import logger
from utils.order_emails import money
from utils import razorpay_client as gateway


PAYMENT_MODE_CACHE_KEY = "payment_settings:mode"
PAYMENT_MODE_CACHE_TTL = 300


class PaymentSettingsService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.state_machine = OrderStateMachine(db)
        self.notifier = notifier or NotificationService()

    def _read(self, settings: PaymentSettings) -> dict:
        settings.razorpay_configured = gateway.is_configured()
        return PaymentSettingsRead.model_validate(settings).model_dump()

    def _save(self, settings: PaymentSettings, updated_by: str) -> dict:
        settings.updated_by = updated_by
        self.db.commit()
        self.db.refresh(settings)
        invalidate_cache(keys=[PAYMENT_MODE_CACHE_KEY])
        return self._read(settings)

    # ------ SETTINGS ------
    def get_payment_mode(self) -> dict:
        def fetch():
            settings = PaymentSettings.get_settings(self.db)
            data = {"payment_mode": settings.payment_mode, "upi_settings": None}
            if settings.payment_mode == "manual_upi":
                data["upi_settings"] = settings.upi_settings
            return data

        return get_or_set_cache(key=PAYMENT_MODE_CACHE_KEY, ttl=PAYMENT_MODE_CACHE_TTL, fetch_fn=fetch)

    def get_settings(self) -> dict:
        return self._read(PaymentSettings.get_settings(self.db))

    def update_settings(self, data: PaymentSettingsUpdate, updated_by: str) -> dict:
        settings = PaymentSettings.get_settings(self.db)

        mode = data.payment_mode if data.payment_mode is not None else settings.payment_mode
        qr_code_image = settings.upi_qr_code_image
        if data.upi_settings is not None and data.upi_settings.qr_code_image is not None:
            qr_code_image = data.upi_settings.qr_code_image
        if mode == "manual_upi" and not qr_code_image:
            raise ValidationError("Upload a UPI QR code before enabling manual UPI payments")

        settings.payment_mode = mode

        if data.upi_settings is not None:
            upi = data.upi_settings
            if upi.qr_code_image is not None:
                settings.upi_qr_code_image = upi.qr_code_image
            if upi.upi_id is not None:
                settings.upi_id = upi.upi_id
            if upi.merchant_name is not None:
                settings.upi_merchant_name = upi.merchant_name
            if upi.instructions is not None:
                settings.upi_instructions = upi.instructions

        logger.info(f"Payment settings updated by {updated_by}: mode={settings.payment_mode}")
        return self._save(settings, updated_by)

    def upload_qr(self, qr_code_image: str, updated_by: str) -> dict:
        settings = PaymentSettings.get_settings(self.db)
        settings.upi_qr_code_image = qr_code_image
        logger.info(f"UPI QR code updated by {updated_by}")
        return self._save(settings, updated_by)

    # ------ MANUAL UPI ------
    def submit_upi_transaction(self, user_id: int, data: UPISubmitRequest) -> Order:
        order = self.db.get(Order, data.order_id)
        if not order or order.user_id != user_id:
            raise NotFound("Order not found")

        if order.payment_status == "paid":
            raise AlreadyPaid()
        if order.payment_status == "refunded":
            raise AlreadyRefunded()
        if order.status == "cancelled":
            raise ValidationError("Cannot take payment for a cancelled order")
        if order.payment_info_status == "pending_verification":
            raise ValidationError("A UPI payment for this order is already awaiting verification")

        settings = PaymentSettings.get_settings(self.db)
        if settings.payment_mode != "manual_upi":
            raise ValidationError("Manual UPI payments are not enabled")

        transaction_id = data.upi_transaction_id.strip()
        if not transaction_id:
            raise ValidationError("UPI transaction ID is required")

        order.payment_method = "manual_upi"
        order.payment_info_status = "pending_verification"
        order.upi_transaction_id = transaction_id
        order.upi_submitted_at = utcnow()
        order.payment_amount = order.total
        order.add_timeline_entry(
            "UPI Payment Submitted",
            performed_by="customer",
            details=f"UPI transaction ID {transaction_id} submitted for verification",
        )
        logger.info(f"UPI transaction submitted for order {order.id}")
        return commit_order(self.db, order)

    def list_pending_verifications(self) -> list:
        orders = (
            self.db.query(Order)
            .filter(
                Order.payment_method == "manual_upi",
                Order.payment_info_status == "pending_verification",
            )
            .order_by(Order.upi_submitted_at.desc(), Order.id.desc())
            .all()
        )
        return [OrderRead.model_validate(o).model_dump(mode="json") for o in orders]

    def verify_upi_payment(self, data: UPIVerifyRequest, actor: str) -> Order:
        """Approve or reject a submitted UPI payment."""
        order = self.db.get(Order, data.order_id)
        if not order:
            raise NotFound("Order not found")
        if order.payment_method != "manual_upi" or order.payment_info_status != "pending_verification":
            raise ValidationError("Order has no UPI payment awaiting verification")

        order.payment_verified_at = utcnow()
        order.payment_verified_by = actor
        order.verification_notes = data.notes

        if data.verified:
            ensure_payable(order)
            ensure_payment_transition(order.payment_status, "paid")
            old_status = order.status
            order.payment_status = "paid"
            order.payment_info_status = "completed"
            order.paid_at = utcnow()
            order.transaction_id = order.upi_transaction_id
            if order.status == "pending":
                self.state_machine.transition(order, "processing", actor=actor)

            entry = order.add_timeline_entry(
                "UPI Payment Verified",
                performed_by=actor,
                details=(
                    f"UPI payment of {money(order.total)} verified "
                    f"(transaction {order.upi_transaction_id}); status {old_status} -> {order.status}"
                    + (f". Notes: {data.notes}" if data.notes else "")
                ),
                old_value="unpaid",
                new_value="paid",
            )
            commit_order(self.db, order)
            logger.info(f"UPI payment verified for order {order.id} by {actor}")
            sent = self.notifier.send_upi_payment_verified(order)
        else:
            reason = data.notes or "Payment could not be verified"
            order.payment_info_status = "failed"
            order.payment_failed_at = utcnow()
            order.payment_failure_reason = reason
            entry = order.add_timeline_entry(
                "UPI Payment Rejected",
                performed_by=actor,
                details=f"UPI transaction {order.upi_transaction_id} rejected: {reason}",
            )
            commit_order(self.db, order)
            logger.info(f"UPI payment rejected for order {order.id} by {actor}")
            sent = self.notifier.send_upi_payment_rejected(order, reason)

        mark_notified(self.db, entry, sent)
        return order
