# models/order_model.py

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    ForeignKey,
    DateTime,
    Text,
    JSON,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import relationship

from database import Base


ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("unpaid", "paid", "refunded")

# Side-effect ledger keys
EFFECT_INVENTORY_RESERVED = "inventory_reserved"
EFFECT_STOCK_COMMITTED = "stock_committed"
EFFECT_INVENTORY_RELEASED = "inventory_released"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def quantize_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    shipping = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="unpaid", index=True)

    # ----- payment info -----
    payment_method = Column(String(20), nullable=False, default="card")  # card / upi / net_banking / wallet / cod / razorpay / manual_upi
    payment_info_status = Column(String(30), nullable=False, default="initiated")  # initiated / pending_cod / pending_verification / completed / failed
    payment_id = Column(String(100), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_signature = Column(String(255), nullable=True)
    payment_amount = Column(Numeric(10, 2), nullable=True)
    payment_initiated_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_failed_at = Column(DateTime(timezone=True), nullable=True)
    payment_failure_reason = Column(String(255), nullable=True)
    upi_transaction_id = Column(String(100), nullable=True)
    upi_submitted_at = Column(DateTime(timezone=True), nullable=True)
    payment_verified_at = Column(DateTime(timezone=True), nullable=True)
    payment_verified_by = Column(String(100), nullable=True)
    verification_notes = Column(Text, nullable=True)

    shipping_address = Column(JSON, nullable=False, default=dict)

    # ----- shipping info -----
    carrier = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    tracking_url = Column(String(500), nullable=True)
    shipping_method = Column(String(20), nullable=False, default="standard")  # standard / express / overnight / international
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)

    # ----- inventory flags (mirrors of the side-effect ledger) -----
    inventory_reserved = Column(Boolean, nullable=False, default=False)
    inventory_updated = Column(Boolean, nullable=False, default=False)

    # ----- cancellation -----
    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(100), nullable=True)
    cancellation_refund_status = Column(String(20), nullable=True)  # pending / processed / not_applicable

    # ----- refund -----
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(String(500), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_method = Column(String(50), nullable=True)
    refund_reference = Column(String(100), nullable=True)

    is_reorder = Column(Boolean, nullable=False, default=False)
    original_order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": version}

    user = relationship("User", lazy="joined")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    timeline = relationship(
        "OrderTimelineEntry",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderTimelineEntry.id",
    )
    order_notes = relationship(
        "OrderNote",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderNote.id",
    )
    side_effects = relationship(
        "OrderSideEffect",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderSideEffect.id",
    )
    payments = relationship("Payment", back_populates="order")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", "pending")
        kwargs.setdefault("payment_status", "unpaid")
        kwargs.setdefault("payment_method", "card")
        kwargs.setdefault("payment_info_status", "initiated")
        kwargs.setdefault("shipping_method", "standard")
        kwargs.setdefault("shipping_cost", Decimal("0.00"))
        kwargs.setdefault("shipping_address", {})
        kwargs.setdefault("inventory_reserved", False)
        kwargs.setdefault("inventory_updated", False)
        kwargs.setdefault("is_reorder", False)
        kwargs.setdefault("subtotal", Decimal("0.00"))
        kwargs.setdefault("shipping", Decimal("0.00"))
        super().__init__(**kwargs)
        if self.total is None:
            self.recalculate_totals()

    @property
    def reference(self) -> str:
        """Short human reference used in emails and timeline text."""
        return f"{self.id:08d}" if self.id is not None else "NEW"

    # ------------------------------------------------------------------
    # TOTALS
    # ------------------------------------------------------------------
    def recalculate_totals(self) -> None:
        if self.items:
            self.subtotal = quantize_money(sum(quantize_money(i.item_total) for i in self.items))
        self.subtotal = quantize_money(self.subtotal)
        self.shipping = quantize_money(self.shipping)
        self.total = self.subtotal + self.shipping

    # ------------------------------------------------------------------
    # AUDIT TRAIL
    # ------------------------------------------------------------------
    def add_timeline_entry(
        self,
        action: str,
        performed_by: str,
        details: str = None,
        old_value: str = None,
        new_value: str = None,
    ) -> "OrderTimelineEntry":
        entry = OrderTimelineEntry(
            action=action,
            details=details,
            performed_by=performed_by,
            performed_at=utcnow(),
            old_value=old_value,
            new_value=new_value,
            notification_sent=False,
        )
        self.timeline.append(entry)
        return entry

    def add_note(
        self,
        note: str,
        added_by: str,
        note_type: str = "internal",
        is_visible: bool = False,
    ) -> "OrderNote":
        order_note = OrderNote(
            note=note,
            added_by=added_by,
            added_at=utcnow(),
            type=note_type,
            is_visible=is_visible,
        )
        self.order_notes.append(order_note)
        return order_note

    # ------------------------------------------------------------------
    # SIDE-EFFECT LEDGER
    # ------------------------------------------------------------------
    def has_side_effect(self, effect: str) -> bool:
        return any(e.effect == effect for e in self.side_effects)

    def record_side_effect(self, effect: str) -> "OrderSideEffect":
        record = OrderSideEffect(effect=effect, applied_at=utcnow())
        self.side_effects.append(record)
        return record

    SHIPPING_FIELDS = (
        "carrier",
        "tracking_number",
        "tracking_url",
        "shipping_method",
        "shipping_cost",
        "shipped_at",
        "estimated_delivery",
        "actual_delivery",
    )

    def merge_shipping_info(self, info: dict) -> None:
        """Overlay the non-null fields of ``info`` on the current shipping info."""
        for key, value in (info or {}).items():
            if key in self.SHIPPING_FIELDS and value is not None:
                setattr(self, key, value)

    # ------------------------------------------------------------------
    # GROUPED VIEWS
    # ------------------------------------------------------------------
    @property
    def payment_info(self) -> dict:
        return {
            "method": self.payment_method,
            "status": self.payment_info_status,
            "payment_id": self.payment_id,
            "transaction_id": self.transaction_id,
            "gateway_order_id": self.gateway_order_id,
            "amount": self.payment_amount,
            "initiated_at": self.payment_initiated_at,
            "paid_at": self.paid_at,
            "failed_at": self.payment_failed_at,
            "failure_reason": self.payment_failure_reason,
            "upi_transaction_id": self.upi_transaction_id,
            "upi_submitted_at": self.upi_submitted_at,
            "verified_at": self.payment_verified_at,
            "verified_by": self.payment_verified_by,
            "verification_notes": self.verification_notes,
        }

    @property
    def shipping_info(self) -> dict:
        return {
            "carrier": self.carrier,
            "tracking_number": self.tracking_number,
            "tracking_url": self.tracking_url,
            "shipping_method": self.shipping_method,
            "shipping_cost": self.shipping_cost,
            "shipped_at": self.shipped_at,
            "estimated_delivery": self.estimated_delivery,
            "actual_delivery": self.actual_delivery,
        }

    @property
    def cancellation(self):
        if self.cancelled_at is None:
            return None
        return {
            "reason": self.cancellation_reason,
            "cancelled_at": self.cancelled_at,
            "cancelled_by": self.cancelled_by,
            "refund_status": self.cancellation_refund_status,
        }

    @property
    def refund_info(self):
        if self.refunded_at is None:
            return None
        return {
            "amount": self.refund_amount,
            "reason": self.refund_reason,
            "processed_at": self.refunded_at,
            "refund_method": self.refund_method,
            "refund_reference": self.refund_reference,
        }


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    # captured at purchase time
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(String(500), nullable=True)

    quantity = Column(Integer, nullable=False)
    item_total = Column(Numeric(10, 2), nullable=False)
    selected_color = Column(String(50), nullable=False, default="")
    selected_size = Column(String(50), nullable=False, default="")
    # units of this line currently held in the product reservation
    reserved_quantity = Column(Integer, nullable=False, default=0)

    order = relationship("Order", back_populates="items")

    def __init__(self, **kwargs):
        kwargs.setdefault("reserved_quantity", 0)
        super().__init__(**kwargs)
        if self.quantity is None or self.quantity < 1:
            raise ValueError("Line item quantity must be at least 1")
        self.price = quantize_money(self.price)
        self.item_total = quantize_money(self.price * self.quantity)


class OrderTimelineEntry(Base):
    __tablename__ = "order_timeline"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    action = Column(String(100), nullable=False)
    details = Column(Text, nullable=True)
    performed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    performed_by = Column(String(100), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    notification_sent = Column(Boolean, nullable=False, default=False)

    order = relationship("Order", back_populates="timeline")


@event.listens_for(OrderTimelineEntry, "before_update")
def _timeline_is_append_only(mapper, connection, target):
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        if attr.key == "notification_sent":
            continue
        if state.attrs[attr.key].history.has_changes():
            raise ValueError("Timeline entries are append-only")


class OrderNote(Base):
    __tablename__ = "order_notes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    note = Column(Text, nullable=False)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    added_by = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="internal")
    is_visible = Column(Boolean, nullable=False, default=False)

    order = relationship("Order", back_populates="order_notes")


class OrderSideEffect(Base):
    """Append-only record of inventory effects already applied to an order."""

    __tablename__ = "order_side_effects"
    __table_args__ = (
        UniqueConstraint("order_id", "effect", name="uq_order_side_effect"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    effect = Column(String(50), nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="side_effects")
