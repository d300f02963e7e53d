import json

import pytest

from models.payment_settings_model import PaymentSettings


@pytest.fixture
def manual_upi(db):
    settings = PaymentSettings.get_settings(db)
    settings.payment_mode = "manual_upi"
    settings.upi_qr_code_image = "data:image/png;base64,iVBORw0KGgo="
    settings.upi_id = "store@upi"
    db.commit()
    return settings


def _submit(client, headers, order_id, txn="UPI4455667788"):
    return client.post(
        "/payment-settings/submit-upi",
        json={"order_id": order_id, "upi_transaction_id": txn},
        headers=headers,
    )


def test_submit_requires_manual_mode(client, customer_headers, place_order):
    order = place_order()

    res = _submit(client, customer_headers, order.id)

    assert res.status_code == 400
    assert res.json()["message"] == "Manual UPI payments are not enabled"


def test_submit_marks_pending_verification(client, db, customer_headers, admin_headers, place_order, manual_upi):
    order = place_order()

    res = _submit(client, customer_headers, order.id)

    assert res.status_code == 200, res.text
    db.refresh(order)
    assert order.payment_info["status"] == "pending_verification"
    assert order.payment_info["upi_transaction_id"] == "UPI4455667788"
    assert order.payment_status == "unpaid"
    assert order.timeline[-1].action == "UPI Payment Submitted"
    assert order.timeline[-1].performed_by == "customer"

    pending = client.get("/payment-settings/pending-verifications", headers=admin_headers)
    assert [o["id"] for o in pending.json()["data"]] == [order.id]


def test_blank_transaction_id_is_rejected(client, customer_headers, place_order, manual_upi):
    order = place_order()

    res = _submit(client, customer_headers, order.id, txn="   ")

    assert res.status_code == 400


def test_approve_pays_and_advances(client, db, customer_headers, admin_headers, place_order, manual_upi, outbox):
    order = place_order()
    _submit(client, customer_headers, order.id)
    outbox.clear()

    res = client.post(
        "/payment-settings/verify-payment",
        json={"order_id": order.id, "verified": True, "notes": "Matched bank statement"},
        headers=admin_headers,
    )

    assert res.status_code == 200, res.text
    db.refresh(order)
    assert order.payment_status == "paid"
    assert order.status == "processing"
    assert order.inventory_reserved is True
    info = order.payment_info
    assert info["status"] == "completed"
    assert info["verified_by"] == "admin@example.com"
    assert info["verified_at"] is not None
    assert order.timeline[-1].action == "UPI Payment Verified"
    assert order.timeline[-1].notification_sent is True

    assert len(outbox) == 1
    assert outbox[0]["subject"] == f"Order Confirmed - #{order.reference}"
    assert "Brass Diya" in outbox[0]["html"]


def test_reject_leaves_order_and_payment_status(client, db, customer_headers, admin_headers, place_order, manual_upi, outbox):
    order = place_order()
    _submit(client, customer_headers, order.id)
    outbox.clear()

    res = client.post(
        "/payment-settings/verify-payment",
        json={"order_id": order.id, "verified": False, "notes": "No matching credit"},
        headers=admin_headers,
    )

    assert res.status_code == 200, res.text
    assert res.json()["message"] == "Payment rejected"
    db.refresh(order)
    assert order.status == "pending"
    assert order.payment_status == "unpaid"
    assert order.payment_info["status"] == "failed"
    assert order.payment_info["failure_reason"] == "No matching credit"
    assert outbox[0]["subject"].startswith("Payment Verification Failed")


def test_approve_after_cancel_is_rejected(client, db, customer_headers, admin_headers, place_order, manual_upi):
    order = place_order()
    _submit(client, customer_headers, order.id)
    client.patch(f"/orders/{order.id}/cancel", headers=customer_headers)

    res = client.post(
        "/payment-settings/verify-payment",
        json={"order_id": order.id, "verified": True},
        headers=admin_headers,
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Cannot take payment for a cancelled order"
    db.refresh(order)
    assert order.status == "cancelled"
    assert order.payment_status == "unpaid"
    assert order.payment_info["status"] == "pending_verification"


def test_verify_without_submission_fails(client, admin_headers, place_order, manual_upi):
    order = place_order()

    res = client.post(
        "/payment-settings/verify-payment",
        json={"order_id": order.id, "verified": True},
        headers=admin_headers,
    )

    assert res.status_code == 400


def test_customer_cannot_verify(client, customer_headers, place_order, manual_upi):
    order = place_order()

    res = client.post(
        "/payment-settings/verify-payment",
        json={"order_id": order.id, "verified": True},
        headers=customer_headers,
    )

    assert res.status_code == 403


def test_payment_mode_is_cached_and_invalidated(client, admin_headers, fake_redis):
    first = client.get("/payment-settings/mode")
    assert first.json()["data"] == {"payment_mode": "razorpay", "upi_settings": None}
    assert json.loads(fake_redis.store["test:payment_settings:mode"])["payment_mode"] == "razorpay"

    client.post(
        "/payment-settings/upload-qr",
        json={"qr_code_image": "data:image/png;base64,AAAA"},
        headers=admin_headers,
    )
    assert "test:payment_settings:mode" not in fake_redis.store

    res = client.put(
        "/payment-settings",
        json={"payment_mode": "manual_upi", "upi_settings": {"upi_id": "store@upi"}},
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["upi_settings"]["upi_id"] == "store@upi"

    mode = client.get("/payment-settings/mode").json()["data"]
    assert mode["payment_mode"] == "manual_upi"
    assert mode["upi_settings"]["qr_code_image"] == "data:image/png;base64,AAAA"


def test_manual_mode_requires_qr_code(client, admin_headers):
    res = client.put("/payment-settings", json={"payment_mode": "manual_upi"}, headers=admin_headers)

    assert res.status_code == 400


def test_refused_mode_change_leaves_settings_untouched(client, db, admin_headers):
    res = client.put(
        "/payment-settings",
        json={"payment_mode": "manual_upi", "upi_settings": {"upi_id": "shop@upi"}},
        headers=admin_headers,
    )

    assert res.status_code == 400
    settings = PaymentSettings.get_settings(db)
    assert settings.payment_mode == "razorpay"
    assert settings.upi_id != "shop@upi"
