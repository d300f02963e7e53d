# controllers/payment_settings_controller.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.user_model import User
from schemas.payment_schema import (
    PaymentSettingsUpdate,
    QRCodeUpload,
    UPISubmitRequest,
    UPIVerifyRequest,
)
from services.order_services import serialize_order
from services.payment_settings_services import PaymentSettingsService
from utils.jwt_utils import get_current_admin_user, get_current_user
from utils.response_helper import success_response


router = APIRouter(prefix="/payment-settings", tags=["Payment Settings"])


@router.get("/mode")
def get_payment_mode(db: Session = Depends(get_db)):
    data = PaymentSettingsService(db).get_payment_mode()
    return success_response(message="Payment mode retrieved successfully", data=data)


@router.get("")
def get_payment_settings(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = PaymentSettingsService(db).get_settings()
    return success_response(message="Payment settings retrieved successfully", data=data)


@router.put("")
def update_payment_settings(
    body: PaymentSettingsUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = PaymentSettingsService(db).update_settings(body, updated_by=admin.email)
    return success_response(message="Payment settings updated successfully", data=data)


@router.post("/upload-qr")
def upload_qr_code(
    body: QRCodeUpload,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    data = PaymentSettingsService(db).upload_qr(body.qr_code_image, updated_by=admin.email)
    return success_response(message="QR code uploaded successfully", data=data)


@router.get("/pending-verifications")
def list_pending_verifications(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    orders = PaymentSettingsService(db).list_pending_verifications()
    return success_response(message="Pending verifications retrieved successfully", data=orders)


@router.post("/submit-upi")
def submit_upi_transaction(
    body: UPISubmitRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = PaymentSettingsService(db).submit_upi_transaction(current_user.id, body)
    return success_response(
        message="UPI transaction submitted. Your payment will be verified shortly.",
        data=serialize_order(order, customer_view=True),
    )


@router.post("/verify-payment")
def verify_upi_payment(
    body: UPIVerifyRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    order = PaymentSettingsService(db).verify_upi_payment(body, actor=admin.email)
    message = "Payment verified successfully" if body.verified else "Payment rejected"
    return success_response(message=message, data=serialize_order(order))
