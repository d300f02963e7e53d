# services/payment_services.py

import secrets
import time
from decimal import Decimal
from typing import Optional, Tuple

from razorpay.errors import BadRequestError
from sqlalchemy.orm import Session

from models.order_model import Order, quantize_money, utcnow
from models.payment_model import Payment
from schemas.payment_schema import (
    PaymentSessionCreate,
    PaymentSessionResponse,
    PaymentVerifyRequest,
    PaymentRead,
    PaymentInitiateRequest,
    PaymentProcessRequest,
)
from services.notification_services import NotificationService, mark_notified
from services.order_services import commit_order
from services.order_state_machine import (
    OrderStateMachine,
    check_payment_status,
    ensure_payment_transition,
)
from utils.exceptions import (
    AlreadyPaid,
    AlreadyRefunded,
    NotFound,
    PaymentGatewayError,
    RefundExceedsTotal,
    SignatureMismatch,
    ValidationError,
)
from utils.logger import logger
from utils.order_emails import money
from utils.payment_config import RAZORPAY_KEY_ID, PAYMENT_CURRENCY
from utils import razorpay_client as gateway


PAYMENT_METHODS = [
    {"id": "card", "name": "Credit/Debit Card", "description": "Visa, Mastercard, American Express"},
    {"id": "upi", "name": "UPI", "description": "Google Pay, PhonePe, Paytm"},
    {"id": "net_banking", "name": "Net Banking", "description": "All major banks supported"},
    {"id": "wallet", "name": "Wallet", "description": "Paytm, Amazon Pay, Mobikwik"},
    {"id": "cod", "name": "Cash on Delivery", "description": "Pay when you receive"},
]


def generate_reference(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5).upper()}"


def ensure_payable(order: Order) -> None:
    if order.payment_status == "paid":
        raise AlreadyPaid()
    if order.payment_status == "refunded":
        raise AlreadyRefunded()
    if order.status == "cancelled":
        raise ValidationError("Cannot take payment for a cancelled order")


def apply_refund(
    order: Order,
    amount: Optional[Decimal],
    reason: Optional[str],
    refund_method: str,
) -> Decimal:
    """Move a paid order to refunded. Partial amounts are recorded as-is."""
    if order.payment_status == "refunded":
        raise AlreadyRefunded()
    if order.payment_status != "paid":
        raise ValidationError("Only paid orders can be refunded")

    total = quantize_money(order.total)
    refund_amount = quantize_money(amount) if amount is not None else total
    if refund_amount <= 0:
        raise ValidationError("Refund amount must be greater than zero")
    if refund_amount > total:
        raise RefundExceedsTotal()

    order.payment_status = "refunded"
    order.refund_amount = refund_amount
    order.refund_reason = reason
    order.refunded_at = utcnow()
    order.refund_method = refund_method
    order.refund_reference = generate_reference("REF")

    if order.status == "cancelled":
        order.cancellation_refund_status = "processed"
    return refund_amount


class PaymentService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.state_machine = OrderStateMachine(db)
        self.notifier = notifier or NotificationService()

    def _get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        order = self.db.get(Order, order_id)
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFound("Order not found")
        return order

    def _mark_paid(self, order: Order, actor: str) -> Tuple[str, bool]:
        """Set paid/completed and advance a pending order to processing."""
        ensure_payment_transition(order.payment_status, "paid")
        order.payment_status = "paid"
        order.payment_info_status = "completed"
        order.paid_at = utcnow()
        order.payment_amount = order.total

        old_status = order.status
        advanced = False
        if order.status == "pending":
            advanced = self.state_machine.transition(order, "processing", actor=actor)
        return old_status, advanced

    # ------------------------------------------------------------------
    # 1) RAZORPAY: open a gateway order for a local order
    # ------------------------------------------------------------------
    def create_payment_session(self, user_id: int, data: PaymentSessionCreate) -> PaymentSessionResponse:
        logger.info(f"Creating payment session for user {user_id}, order {data.order_id}")
        order = self._get_order(data.order_id, user_id)
        ensure_payable(order)

        if not order.total or order.total <= 0:
            raise ValidationError("Order has no payable amount")
        if not gateway.is_configured():
            raise PaymentGatewayError("Online payments are not configured")

        amount_paise = int(quantize_money(order.total) * 100)
        try:
            razorpay_order = gateway.razorpay_client.order.create(
                {
                    "amount": amount_paise,
                    "currency": PAYMENT_CURRENCY,
                    "receipt": f"order_{order.id}",
                    "payment_capture": 1,
                }
            )
        except BadRequestError as e:
            logger.error(f"Razorpay rejected order {order.id}: {e}")
            raise ValidationError(f"Payment gateway rejected the request: {e}")
        except Exception as e:
            logger.exception(f"Razorpay order creation failed for order {order.id}: {e}")
            raise PaymentGatewayError()

        rp_order_id = razorpay_order["id"]
        logger.info(f"Razorpay order created: {rp_order_id}")

        self.db.add(
            Payment(
                order_id=order.id,
                user_id=user_id,
                provider="razorpay",
                razorpay_order_id=rp_order_id,
                amount=order.total,
                currency=PAYMENT_CURRENCY,
                status="PENDING",
            )
        )
        order.payment_method = "razorpay"
        order.payment_info_status = "initiated"
        order.gateway_order_id = rp_order_id
        order.payment_amount = order.total
        order.payment_initiated_at = utcnow()
        order.add_timeline_entry(
            "Payment Initiated",
            performed_by="customer",
            details=f"Razorpay order {rp_order_id} created for {money(order.total)}",
        )
        commit_order(self.db, order)

        return PaymentSessionResponse(
            razorpay_order_id=rp_order_id,
            amount=amount_paise,
            currency=PAYMENT_CURRENCY,
            key_id=RAZORPAY_KEY_ID,
            order_id=order.id,
        )

    # ------------------------------------------------------------------
    # 2) RAZORPAY: verify the checkout signature
    # ------------------------------------------------------------------
    def verify_and_capture_payment(self, user_id: int, data: PaymentVerifyRequest) -> PaymentRead:
        payment = (
            self.db.query(Payment)
            .filter(
                Payment.order_id == data.order_id,
                Payment.user_id == user_id,
                Payment.razorpay_order_id == data.razorpay_order_id,
            )
            .first()
        )
        if not payment:
            raise NotFound("Payment session not found")

        order = self._get_order(payment.order_id, user_id)
        ensure_payable(order)

        if not gateway.verify_signature(
            data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
        ):
            payment.status = "FAILED"
            order.payment_info_status = "failed"
            order.payment_failed_at = utcnow()
            order.payment_failure_reason = "Signature verification failed"
            order.add_timeline_entry(
                "Payment Failed",
                performed_by="system",
                details=f"Signature verification failed for Razorpay order {data.razorpay_order_id}",
            )
            commit_order(self.db, order)
            logger.error(f"Payment signature verification failed, order {order.id}")
            raise SignatureMismatch()

        payment.razorpay_payment_id = data.razorpay_payment_id
        payment.razorpay_signature = data.razorpay_signature
        payment.status = "SUCCESS"

        order.payment_id = data.razorpay_payment_id
        order.transaction_id = data.razorpay_payment_id
        order.gateway_signature = data.razorpay_signature
        old_status, advanced = self._mark_paid(order, actor="system")

        entry = order.add_timeline_entry(
            "Payment Received",
            performed_by="system",
            details=(
                f"Payment of {money(order.total)} received via razorpay"
                + (f"; status {old_status} -> processing" if advanced else "")
            ),
            old_value="unpaid",
            new_value="paid",
        )
        commit_order(self.db, order)
        logger.info(f"Order {order.id} marked as paid via Razorpay")

        sent = self.notifier.send_payment_confirmation(order)
        mark_notified(self.db, entry, sent)

        self.db.refresh(payment)
        return PaymentRead.model_validate(payment)

    # ------------------------------------------------------------------
    # DUMMY GATEWAY (development checkout without a real processor)
    # ------------------------------------------------------------------
    def initiate_payment(self, user_id: int, data: PaymentInitiateRequest) -> dict:
        order = self._get_order(data.order_id, user_id)
        ensure_payable(order)

        payment_id = generate_reference("PAY")
        self.db.add(
            Payment(
                order_id=order.id,
                user_id=user_id,
                provider="dummy",
                razorpay_order_id=payment_id,
                amount=order.total,
                currency=PAYMENT_CURRENCY,
                status="PENDING",
                method=data.payment_method,
            )
        )
        order.payment_id = payment_id
        order.payment_method = data.payment_method
        order.payment_info_status = "initiated"
        order.payment_initiated_at = utcnow()
        order.add_timeline_entry(
            "Payment Initiated",
            performed_by="customer",
            details=f"Payment session {payment_id} opened via {data.payment_method}",
        )
        commit_order(self.db, order)

        return {
            "payment_id": payment_id,
            "order_id": order.id,
            "amount": float(order.total),
            "currency": PAYMENT_CURRENCY,
            "payment_method": data.payment_method,
            "status": "pending",
            "test_details": {
                "card": {"number": "4111 1111 1111 1111", "expiry": "12/30", "cvv": "123"},
                "upi": "test@upi",
                "note": "Dummy payment system. Use any details to simulate payment.",
            },
        }

    def process_payment(self, user_id: int, data: PaymentProcessRequest) -> dict:
        order = self._get_order(data.order_id, user_id)
        ensure_payable(order)

        payment = (
            self.db.query(Payment)
            .filter(
                Payment.order_id == order.id,
                Payment.provider == "dummy",
                Payment.razorpay_order_id == data.payment_id,
            )
            .first()
        )
        if not payment:
            raise NotFound("Payment session not found")

        if data.simulate_failure:
            payment.status = "FAILED"
            order.payment_info_status = "failed"
            order.payment_failed_at = utcnow()
            order.payment_failure_reason = "Payment declined by bank"
            order.add_timeline_entry(
                "Payment Failed",
                performed_by="system",
                details="Payment declined by bank",
            )
            commit_order(self.db, order)
            raise ValidationError("Payment failed. Please try again.")

        transaction_id = generate_reference("TXN")
        payment.status = "SUCCESS"
        payment.razorpay_payment_id = transaction_id
        order.transaction_id = transaction_id
        old_status, advanced = self._mark_paid(order, actor="system")

        entry = order.add_timeline_entry(
            "Payment Received",
            performed_by="system",
            details=f"Payment of {money(order.total)} received via {order.payment_method}",
            old_value="unpaid",
            new_value="paid",
        )
        commit_order(self.db, order)

        sent = self.notifier.send_payment_confirmation(order)
        mark_notified(self.db, entry, sent)

        return {
            "payment_id": data.payment_id,
            "transaction_id": transaction_id,
            "status": "completed",
            "amount": float(order.total),
            "paid_at": order.paid_at,
            "order": {"id": order.id, "status": order.status, "payment_status": order.payment_status},
        }

    def get_payment_methods(self) -> list:
        online = gateway.is_configured()
        methods = [dict(m, enabled=True) for m in PAYMENT_METHODS]
        methods.append(
            {
                "id": "razorpay",
                "name": "Razorpay",
                "description": "Cards, UPI and net banking via Razorpay checkout",
                "enabled": online,
            }
        )
        return methods

    def get_payment_status(self, user_id: int, order_id: int) -> dict:
        order = self._get_order(order_id, user_id)
        return {
            "order_id": order.id,
            "payment_status": order.payment_status,
            "payment_info": order.payment_info,
            "total": float(order.total),
        }

    # ------------------------------------------------------------------
    # CASH ON DELIVERY
    # ------------------------------------------------------------------
    def process_cod(self, user_id: int, order_id: int) -> Order:
        order = self._get_order(order_id, user_id)
        ensure_payable(order)
        if order.payment_method == "cod" and order.payment_info_status == "pending_cod":
            raise ValidationError("Order is already confirmed for Cash on Delivery")

        old_status = order.status
        self.state_machine.transition(order, "processing", actor="customer")

        order.payment_id = generate_reference("PAY")
        order.payment_method = "cod"
        order.payment_info_status = "pending_cod"
        order.payment_initiated_at = utcnow()
        order.add_timeline_entry(
            "COD Order Confirmed",
            performed_by="customer",
            details="Order confirmed for Cash on Delivery",
            old_value=old_status,
            new_value=order.status,
        )
        commit_order(self.db, order)
        logger.info(f"Order {order.id} confirmed for COD")
        return order

    def mark_cod_collected(self, order_id: int, actor: str = "admin") -> Order:
        order = self._get_order(order_id)
        if order.payment_method != "cod" or order.payment_info_status != "pending_cod":
            raise ValidationError("Order is not awaiting a cash-on-delivery payment")
        if order.status != "delivered":
            raise ValidationError("Cash can only be collected for delivered orders")

        self._mark_paid(order, actor=actor)
        order.transaction_id = generate_reference("COD")
        order.add_timeline_entry(
            "COD Payment Collected",
            performed_by=actor,
            details=f"Cash payment of {money(order.total)} collected on delivery",
            old_value="unpaid",
            new_value="paid",
        )
        return commit_order(self.db, order)

    # ------------------------------------------------------------------
    # ADMIN: PAYMENT STATUS OVERRIDE & REFUNDS
    # ------------------------------------------------------------------
    def update_payment_status(
        self,
        order_id: int,
        payment_status: str,
        notes: Optional[str] = None,
        refund_amount: Optional[Decimal] = None,
        actor: str = "admin",
    ) -> Tuple[Order, bool]:
        check_payment_status(payment_status)
        order = self._get_order(order_id)
        old_payment_status = order.payment_status

        if old_payment_status == payment_status:
            return order, False

        ensure_payment_transition(old_payment_status, payment_status)

        if payment_status == "refunded":
            apply_refund(order, refund_amount, notes, refund_method="manual")
        else:
            order.payment_status = "paid"
            order.payment_info_status = "completed"
            order.paid_at = utcnow()
            order.payment_amount = order.total

        order.add_timeline_entry(
            "Payment Status Updated",
            performed_by=actor,
            details=notes or f"Payment status changed from {old_payment_status} to {payment_status}",
            old_value=old_payment_status,
            new_value=payment_status,
        )
        commit_order(self.db, order)
        logger.info(f"Order {order.id} payment status {old_payment_status} -> {payment_status} by {actor}")
        return order, True

    def process_refund(
        self,
        order_id: int,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
        refund_method: str = "original_payment",
        actor: str = "admin",
    ) -> Order:
        order = self._get_order(order_id)
        refund_amount = apply_refund(
            order,
            amount,
            reason or "Refund processed by admin",
            refund_method,
        )

        entry = order.add_timeline_entry(
            "Refund Processed",
            performed_by=actor,
            details=f"Refund of {money(refund_amount)} processed. Reference: {order.refund_reference}",
            old_value="paid",
            new_value="refunded",
        )
        commit_order(self.db, order)
        logger.info(f"Refund {order.refund_reference} of {refund_amount} processed for order {order.id}")

        sent = self.notifier.send_refund_processed(order)
        mark_notified(self.db, entry, sent)
        return order
