from models.product_model import Product

from conftest import auth_headers


def _create(client, headers, product_id, quantity=2):
    return client.post(
        "/orders",
        json={
            "items": [{"product_id": product_id, "quantity": quantity}],
            "shipping_address": {"full_name": "Asha Rao", "city": "Pune", "postal_code": "411001"},
        },
        headers=headers,
    )


def test_place_order(client, customer_headers, product, outbox):
    res = _create(client, customer_headers, product.id)

    assert res.status_code == 201, res.text
    body = res.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "pending"
    assert data["payment_status"] == "unpaid"
    assert data["subtotal"] == 40.0
    assert data["shipping"] == 10.0
    assert data["total"] == 50.0
    assert data["items"][0]["name"] == "Brass Diya"
    assert data["items"][0]["price"] == 20.0
    assert data["shipping_address"]["city"] == "Pune"
    assert data["timeline"][0]["action"] == "Order Placed"
    assert data["timeline"][0]["notification_sent"] is True
    assert outbox[0]["to"] == "asha@example.com"


def test_order_needs_at_least_one_item(client, customer_headers):
    res = client.post("/orders", json={"items": []}, headers=customer_headers)

    assert res.status_code == 400
    assert res.json()["success"] is False


def test_zero_quantity_is_rejected(client, customer_headers, product):
    res = _create(client, customer_headers, product.id, quantity=0)

    assert res.status_code == 400


def test_cannot_order_more_than_available(client, customer_headers, product):
    res = _create(client, customer_headers, product.id, quantity=11)

    assert res.status_code == 400
    assert res.json()["message"] == "Insufficient stock for Brass Diya"


def test_inactive_product_is_rejected(client, db, customer_headers, product):
    product.status = "inactive"
    db.commit()

    res = _create(client, customer_headers, product.id)

    assert res.status_code == 400


def test_customers_only_see_their_own_orders(client, customer_headers, other_customer, place_order):
    mine = place_order()
    theirs = place_order(user=other_customer)

    listed = client.get("/orders", headers=customer_headers).json()["data"]
    assert [o["id"] for o in listed] == [mine.id]

    res = client.get(f"/orders/{theirs.id}", headers=customer_headers)
    assert res.status_code == 404


def test_order_list_is_cached_per_user(client, customer_headers, place_order, fake_redis, customer):
    place_order()

    client.get("/orders", headers=customer_headers)
    assert f"test:user_orders:{customer.id}" in fake_redis.store

    place_order()
    assert f"test:user_orders:{customer.id}" not in fake_redis.store
    assert len(client.get("/orders", headers=customer_headers).json()["data"]) == 2


def test_customer_cancels_pending_order(client, db, customer_headers, place_order, outbox):
    order = place_order()
    outbox.clear()

    res = client.patch(f"/orders/{order.id}/cancel", headers=customer_headers)

    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation"]["cancelled_by"] == "customer"
    assert data["cancellation"]["refund_status"] == "not_applicable"
    assert outbox[0]["subject"].startswith("Order Cancelled")


def test_customer_cannot_cancel_processing_order(client, db, customer_headers, place_order, product):
    from services.order_services import OrderService

    order = place_order(quantity=2)
    OrderService(db).update_status(order.id, "processing")

    res = client.patch(f"/orders/{order.id}/cancel", headers=customer_headers)

    assert res.status_code == 400
    db.refresh(order)
    assert order.status == "processing"
    assert db.get(Product, product.id).reserved_quantity == 2


def test_other_customer_cannot_cancel(client, place_order, other_customer):
    order = place_order()

    res = client.patch(f"/orders/{order.id}/cancel", headers=auth_headers(other_customer))

    assert res.status_code == 404
