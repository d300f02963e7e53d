# schemas/order_schema.py

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ----- Requests -----

class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    selected_color: str = ""
    selected_size: str = ""


class ShippingAddress(BaseModel):
    full_name: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)


class ShippingInfoIn(BaseModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    shipping_method: Optional[Literal["standard", "express", "overnight", "international"]] = None
    shipping_cost: Optional[Decimal] = Field(None, ge=0)
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None
    shipping_info: Optional[ShippingInfoIn] = None
    admin_id: Optional[str] = None


class BulkStatusUpdate(BaseModel):
    order_ids: List[int] = Field(..., min_length=1)
    status: str
    notes: Optional[str] = None
    admin_id: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: str
    notes: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(None, gt=0)


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = None
    refund_method: str = "original_payment"
    admin_id: Optional[str] = None


class OrderNoteCreate(BaseModel):
    note: str
    type: Literal["internal", "customer", "system"] = "internal"
    is_visible: bool = False


class OrderItemsUpdate(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    admin_id: Optional[str] = None


class ShippingInfoUpdate(BaseModel):
    shipping_info: ShippingInfoIn
    admin_id: Optional[str] = None


class ReorderRequest(BaseModel):
    user_id: Optional[int] = None
    admin_id: Optional[str] = None


# ----- Responses -----

class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    name: str
    price: float
    image: Optional[str] = None
    quantity: int
    item_total: float
    selected_color: str = ""
    selected_size: str = ""


class PaymentInfoRead(BaseModel):
    method: str
    status: str
    payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    amount: Optional[float] = None
    initiated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    upi_transaction_id: Optional[str] = None
    upi_submitted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None


class ShippingInfoRead(BaseModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    shipping_method: str = "standard"
    shipping_cost: float = 0
    shipped_at: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


class CancellationRead(BaseModel):
    reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    refund_status: Optional[str] = None


class RefundInfoRead(BaseModel):
    amount: Optional[float] = None
    reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    refund_method: Optional[str] = None
    refund_reference: Optional[str] = None


class TimelineEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    details: Optional[str] = None
    performed_at: datetime
    performed_by: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    notification_sent: bool


class OrderNoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    note: str
    added_at: datetime
    added_by: str
    type: str
    is_visible: bool


class CustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    customer: Optional[CustomerSummary] = Field(None, validation_alias="user")
    items: List[OrderItemRead]
    subtotal: float
    shipping: float
    total: float
    status: str
    payment_status: str
    payment_info: PaymentInfoRead
    shipping_address: dict
    shipping_info: ShippingInfoRead
    inventory_reserved: bool
    inventory_updated: bool
    cancellation: Optional[CancellationRead] = None
    refund_info: Optional[RefundInfoRead] = None
    refunded_at: Optional[datetime] = None
    refund_amount: Optional[float] = None
    refund_reason: Optional[str] = None
    timeline: List[TimelineEntryRead]
    order_notes: List[OrderNoteRead]
    is_reorder: bool
    original_order_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class BulkStatusResult(BaseModel):
    updated_count: int
    updated: List[int]
    unchanged: List[int]
    failed: List[dict]
