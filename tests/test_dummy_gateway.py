from models.product_model import Product


def _initiate(client, headers, order_id, method="upi"):
    res = client.post(
        "/payments/initiate",
        json={"order_id": order_id, "payment_method": method},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["data"]


def test_methods_are_public(client):
    res = client.get("/payments/methods")

    ids = [m["id"] for m in res.json()["data"]]
    assert res.status_code == 200
    assert {"card", "upi", "cod", "razorpay"} <= set(ids)
    assert all("enabled" in m for m in res.json()["data"])


def test_initiate_then_process(client, db, customer_headers, place_order, product):
    order = place_order(quantity=2)
    session = _initiate(client, customer_headers, order.id)
    assert session["payment_id"].startswith("PAY_")
    assert session["status"] == "pending"

    res = client.post(
        "/payments/process",
        json={"order_id": order.id, "payment_id": session["payment_id"]},
        headers=customer_headers,
    )

    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["transaction_id"].startswith("TXN_")
    assert data["order"] == {"id": order.id, "status": "processing", "payment_status": "paid"}
    assert db.get(Product, product.id).reserved_quantity == 2

    status = client.get(f"/payments/{order.id}/status", headers=customer_headers).json()["data"]
    assert status["payment_status"] == "paid"
    assert status["payment_info"]["method"] == "upi"
    assert status["payment_info"]["status"] == "completed"


def test_simulated_failure(client, db, customer_headers, place_order):
    order = place_order()
    session = _initiate(client, customer_headers, order.id, method="card")

    res = client.post(
        "/payments/process",
        json={"order_id": order.id, "payment_id": session["payment_id"], "simulate_failure": True},
        headers=customer_headers,
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Payment failed. Please try again."
    db.refresh(order)
    assert order.payment_status == "unpaid"
    assert order.status == "pending"
    assert order.payment_info["status"] == "failed"


def test_paid_order_cannot_be_initiated_again(client, customer_headers, place_order):
    order = place_order()
    session = _initiate(client, customer_headers, order.id)
    client.post(
        "/payments/process",
        json={"order_id": order.id, "payment_id": session["payment_id"]},
        headers=customer_headers,
    )

    res = client.post(
        "/payments/initiate",
        json={"order_id": order.id, "payment_method": "card"},
        headers=customer_headers,
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Order is already paid"


def test_unknown_session_is_404(client, customer_headers, place_order):
    order = place_order()

    res = client.post(
        "/payments/process",
        json={"order_id": order.id, "payment_id": "PAY_missing"},
        headers=customer_headers,
    )

    assert res.status_code == 404
