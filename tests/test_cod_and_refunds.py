from decimal import Decimal

import pytest

from services.order_services import OrderService
from services.payment_services import PaymentService
from utils.exceptions import AlreadyRefunded, InvalidTransition, RefundExceedsTotal, ValidationError


@pytest.fixture
def paid_order(db, place_order):
    order = place_order(quantity=2)
    PaymentService(db).update_payment_status(order.id, "paid", notes="Bank transfer received")
    return order


# ------ Cash on delivery ------

def test_cod_confirms_order_but_stays_unpaid(client, db, customer_headers, place_order, product):
    order = place_order(quantity=2)

    res = client.post("/payments/cod", json={"order_id": order.id}, headers=customer_headers)

    assert res.status_code == 200, res.text
    db.refresh(order)
    assert order.status == "processing"
    assert order.payment_status == "unpaid"
    assert order.payment_info["method"] == "cod"
    assert order.payment_info["status"] == "pending_cod"
    assert order.inventory_reserved is True
    assert order.timeline[-1].action == "COD Order Confirmed"


def test_cod_cannot_be_confirmed_twice(client, customer_headers, place_order):
    order = place_order()
    client.post("/payments/cod", json={"order_id": order.id}, headers=customer_headers)

    res = client.post("/payments/cod", json={"order_id": order.id}, headers=customer_headers)

    assert res.status_code == 400


def test_cod_collected_only_after_delivery(client, db, customer_headers, admin_headers, place_order):
    order = place_order()
    client.post("/payments/cod", json={"order_id": order.id}, headers=customer_headers)

    early = client.post(f"/admin/orders/{order.id}/cod-collected", headers=admin_headers)
    assert early.status_code == 400

    service = OrderService(db)
    service.update_status(order.id, "shipped")
    service.update_status(order.id, "delivered")

    res = client.post(f"/admin/orders/{order.id}/cod-collected", headers=admin_headers)

    assert res.status_code == 200, res.text
    db.refresh(order)
    assert order.payment_status == "paid"
    assert order.payment_info["status"] == "completed"
    assert order.status == "delivered"
    assert order.timeline[-1].action == "COD Payment Collected"


def test_cod_collected_rejects_prepaid_orders(client, admin_headers, paid_order):
    res = client.post(f"/admin/orders/{paid_order.id}/cod-collected", headers=admin_headers)

    assert res.status_code == 400


# ------ Refunds ------

def test_full_refund_defaults_to_total(db, paid_order, outbox):
    outbox.clear()

    order = PaymentService(db).process_refund(paid_order.id, reason="Damaged in transit")

    assert order.payment_status == "refunded"
    assert order.refund_info["amount"] == Decimal("50.00")
    assert order.refund_info["reason"] == "Damaged in transit"
    assert order.refund_info["refund_reference"].startswith("REF_")
    assert order.status == "pending"
    assert order.timeline[-1].action == "Refund Processed"
    assert order.timeline[-1].notification_sent is True
    assert outbox[0]["subject"].startswith("Refund Processed")


def test_partial_refund_is_recorded(db, paid_order):
    order = PaymentService(db).process_refund(paid_order.id, amount=Decimal("15.50"))

    assert order.payment_status == "refunded"
    assert order.refund_amount == Decimal("15.50")


def test_second_refund_is_rejected(db, paid_order):
    service = PaymentService(db)
    service.process_refund(paid_order.id, amount=Decimal("10.00"))

    with pytest.raises(AlreadyRefunded):
        service.process_refund(paid_order.id, amount=Decimal("10.00"))


def test_refund_unpaid_order_is_rejected(db, place_order):
    order = place_order()

    with pytest.raises(ValidationError) as exc:
        PaymentService(db).process_refund(order.id)

    assert exc.value.message == "Only paid orders can be refunded"


def test_oversized_refund_leaves_payment_status(client, db, admin_headers, paid_order):
    res = client.post(
        f"/admin/orders/{paid_order.id}/refund",
        json={"amount": "500.00", "reason": "Too much"},
        headers=admin_headers,
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Refund amount cannot exceed order total"
    db.rollback()
    db.refresh(paid_order)
    assert paid_order.payment_status == "paid"
    assert paid_order.refund_info is None


def test_refund_of_cancelled_order_processes_cancellation_refund(db, paid_order):
    OrderService(db).update_status(paid_order.id, "cancelled", notes="Out of stock")

    order = PaymentService(db).process_refund(paid_order.id)

    assert order.status == "cancelled"
    assert order.cancellation["refund_status"] == "processed"


def test_refund_api_returns_envelope(client, admin_headers, paid_order):
    res = client.post(
        f"/admin/orders/{paid_order.id}/refund",
        json={"reason": "Customer request", "admin_id": "ops-7"},
        headers=admin_headers,
    )

    body = res.json()
    assert res.status_code == 200, res.text
    assert body["success"] is True
    assert body["data"]["payment_status"] == "refunded"
    assert body["data"]["refund_info"]["amount"] == 50.0
    assert body["data"]["timeline"][-1]["performed_by"] == "ops-7"


# ------ Admin payment override ------

def test_payment_status_only_moves_forward(db, paid_order):
    with pytest.raises(InvalidTransition) as exc:
        PaymentService(db).update_payment_status(paid_order.id, "unpaid")

    assert "payment status" in exc.value.message


def test_unpaid_cannot_jump_to_refunded(db, place_order):
    order = place_order()

    with pytest.raises(InvalidTransition):
        PaymentService(db).update_payment_status(order.id, "refunded")


def test_override_to_same_status_is_a_no_op(db, paid_order):
    entries = len(paid_order.timeline)

    order, changed = PaymentService(db).update_payment_status(paid_order.id, "paid")

    assert changed is False
    assert len(order.timeline) == entries


def test_override_to_refunded_records_refund(client, db, admin_headers, paid_order):
    res = client.patch(
        f"/admin/orders/{paid_order.id}/payment",
        json={"payment_status": "refunded", "notes": "Refunded offline", "refund_amount": "20.00"},
        headers=admin_headers,
    )

    assert res.status_code == 200, res.text
    db.refresh(paid_order)
    assert paid_order.payment_status == "refunded"
    assert paid_order.refund_amount == Decimal("20.00")
    assert paid_order.timeline[-1].action == "Payment Status Updated"
    assert paid_order.status == "pending"
