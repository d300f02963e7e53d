# controllers/order_controller.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user_model import User
from schemas.order_schema import OrderCreate
from services.order_services import OrderService, serialize_order
from utils.jwt_utils import get_current_user
from utils.response_helper import success_response


router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = OrderService(db).create_order(current_user.id, body)
    return success_response(
        message="Order created successfully",
        data=serialize_order(order, customer_view=True),
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    orders = OrderService(db).list_user_orders(current_user.id)
    return success_response(message="Orders retrieved successfully", data=orders)


@router.get("/{order_id}")
def get_my_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = OrderService(db).get_order_for_user(order_id, current_user.id)
    return success_response(
        message="Order retrieved successfully",
        data=serialize_order(order, customer_view=True),
    )


@router.patch("/{order_id}/cancel")
def cancel_my_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # customers may only cancel orders that are still pending
    order = OrderService(db).cancel_my_order(order_id, current_user.id)
    return success_response(
        message="Order cancelled successfully",
        data=serialize_order(order, customer_view=True),
    )
