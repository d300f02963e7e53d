# schemas/payment_schema.py

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ----- Razorpay -----

class PaymentSessionCreate(BaseModel):
    order_id: int


class PaymentSessionResponse(BaseModel):
    razorpay_order_id: str
    amount: int  # paise
    currency: str
    key_id: str
    order_id: int


class PaymentVerifyRequest(BaseModel):
    order_id: int
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    user_id: int
    status: str
    amount: float
    currency: str


# ----- Dummy gateway / COD -----

class PaymentInitiateRequest(BaseModel):
    order_id: int
    payment_method: Literal["card", "upi", "net_banking", "wallet"] = "card"


class PaymentProcessRequest(BaseModel):
    order_id: int
    payment_id: str
    simulate_failure: bool = False


class CODRequest(BaseModel):
    order_id: int


# ----- Manual UPI -----

class UPISubmitRequest(BaseModel):
    order_id: int
    upi_transaction_id: str = Field(..., min_length=1)


class UPIVerifyRequest(BaseModel):
    order_id: int
    verified: bool
    notes: Optional[str] = None


# ----- Payment settings -----

class UPISettings(BaseModel):
    qr_code_image: Optional[str] = None
    upi_id: Optional[str] = None
    merchant_name: Optional[str] = None
    instructions: Optional[str] = None


class PaymentSettingsUpdate(BaseModel):
    payment_mode: Optional[Literal["razorpay", "manual_upi"]] = None
    upi_settings: Optional[UPISettings] = None


class QRCodeUpload(BaseModel):
    qr_code_image: str = Field(..., min_length=1)


class PaymentSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payment_mode: str
    upi_settings: UPISettings
    razorpay_configured: bool
    updated_by: Optional[str] = None
