# controllers/payment_controller.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user_model import User
from schemas.payment_schema import (
    CODRequest,
    PaymentInitiateRequest,
    PaymentProcessRequest,
    PaymentSessionCreate,
    PaymentVerifyRequest,
)
from services.order_services import serialize_order
from services.payment_services import PaymentService
from utils.jwt_utils import get_current_user
from utils.response_helper import success_response


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/methods")
def list_payment_methods(db: Session = Depends(get_db)):
    methods = PaymentService(db).get_payment_methods()
    return success_response(message="Payment methods retrieved successfully", data=methods)


# 🔹 Razorpay checkout
@router.post("/razorpay/order", status_code=status.HTTP_201_CREATED)
def create_razorpay_order(
    payload: PaymentSessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = PaymentService(db).create_payment_session(current_user.id, payload)
    return success_response(
        message="Payment order created",
        data=session.model_dump(),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/razorpay/verify")
def verify_razorpay_payment(
    payload: PaymentVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payment = PaymentService(db).verify_and_capture_payment(current_user.id, payload)
    return success_response(message="Payment verified successfully", data=payment.model_dump())


# 🔹 Cash on delivery
@router.post("/cod")
def confirm_cod(
    payload: CODRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = PaymentService(db).process_cod(current_user.id, payload.order_id)
    return success_response(
        message="Order confirmed for Cash on Delivery",
        data=serialize_order(order, customer_view=True),
    )


# 🔹 Dummy gateway
@router.post("/initiate")
def initiate_payment(
    payload: PaymentInitiateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = PaymentService(db).initiate_payment(current_user.id, payload)
    return success_response(message="Payment initiated", data=data)


@router.post("/process")
def process_payment(
    payload: PaymentProcessRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = PaymentService(db).process_payment(current_user.id, payload)
    return success_response(message="Payment processed successfully", data=data)


@router.get("/{order_id}/status")
def get_payment_status(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = PaymentService(db).get_payment_status(current_user.id, order_id)
    return success_response(message="Payment status retrieved successfully", data=data)
