from decimal import Decimal

import pytest

from models.order_model import OrderTimelineEntry
from models.product_model import Product
from services.inventory_services import InventoryService
from services.order_services import OrderService
from services.order_state_machine import ORDER_TRANSITIONS, ensure_transition
from utils.exceptions import InvalidTransition, ValidationError


def _actions(order):
    return [e.action for e in order.timeline]


def test_new_order_totals_and_defaults(place_order):
    order = place_order(quantity=2)

    assert order.status == "pending"
    assert order.payment_status == "unpaid"
    assert order.subtotal == Decimal("40.00")
    assert order.shipping == Decimal("10.00")
    assert order.total == order.subtotal + order.shipping
    assert order.inventory_reserved is False
    assert order.inventory_updated is False
    assert _actions(order) == ["Order Placed"]


def test_free_shipping_above_threshold(place_order):
    order = place_order(quantity=3)

    assert order.subtotal == Decimal("60.00")
    assert order.shipping == Decimal("0.00")
    assert order.total == Decimal("60.00")


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "delivered"),
        ("processing", "pending"),
        ("shipped", "processing"),
        ("delivered", "shipped"),
        ("cancelled", "pending"),
        ("cancelled", "processing"),
    ],
)
def test_illegal_edges_are_rejected(current, target):
    with pytest.raises(InvalidTransition):
        ensure_transition(current, target)


def test_cancelled_is_terminal():
    assert ORDER_TRANSITIONS["cancelled"] == ()


def test_invalid_transition_message_lists_allowed_targets(db, place_order):
    order = place_order()
    service = OrderService(db)
    service.update_status(order.id, "processing")
    service.update_status(order.id, "shipped")
    service.update_status(order.id, "delivered")

    with pytest.raises(InvalidTransition) as exc:
        service.update_status(order.id, "processing")

    assert exc.value.message == (
        'Cannot change status from "delivered" to "processing". '
        'Valid transitions from "delivered" are: cancelled'
    )
    assert exc.value.status_code == 400


def test_unknown_status_is_a_validation_error(db, place_order):
    order = place_order()

    with pytest.raises(ValidationError):
        OrderService(db).update_status(order.id, "lost")


def test_same_status_update_is_a_no_op(db, place_order):
    order = place_order()
    service = OrderService(db)
    service.update_status(order.id, "processing")
    entries_before = len(order.timeline)

    order, changed = service.update_status(order.id, "processing")

    assert changed is False
    assert len(order.timeline) == entries_before


def test_processing_reserves_inventory(db, place_order, product):
    order = place_order(quantity=2)

    order, changed = OrderService(db).update_status(order.id, "processing")

    assert changed is True
    assert order.inventory_reserved is True
    assert db.get(Product, product.id).reserved_quantity == 2
    assert db.get(Product, product.id).stock_quantity == 10


def test_shipping_commits_stock(db, place_order, product):
    order = place_order(quantity=2)
    service = OrderService(db)
    service.update_status(order.id, "processing")

    order, _ = service.update_status(
        order.id,
        "shipped",
        shipping_info={"carrier": "BlueDart", "tracking_number": "BD123"},
    )

    stocked = db.get(Product, product.id)
    assert order.inventory_updated is True
    assert stocked.stock_quantity == 8
    assert stocked.reserved_quantity == 0
    assert order.carrier == "BlueDart"
    assert order.tracking_number == "BD123"
    assert order.shipped_at is not None


def test_direct_ship_keeps_other_reservations(db, place_order, product):
    first = place_order(quantity=2)
    second = place_order(quantity=3)
    service = OrderService(db)
    service.update_status(first.id, "processing")

    service.update_status(second.id, "shipped")

    stocked = db.get(Product, product.id)
    assert stocked.stock_quantity == 7
    assert stocked.reserved_quantity == 2


def test_cancel_releases_reservation(db, place_order, product):
    order = place_order(quantity=2)
    service = OrderService(db)
    service.update_status(order.id, "processing")

    order, _ = service.update_status(order.id, "cancelled", notes="Customer changed mind")

    stocked = db.get(Product, product.id)
    assert stocked.reserved_quantity == 0
    assert stocked.stock_quantity == 10
    assert order.cancellation["reason"] == "Customer changed mind"
    assert order.cancellation["refund_status"] == "not_applicable"


def test_cancel_after_shipping_does_not_release(db, place_order, product):
    order = place_order(quantity=2)
    service = OrderService(db)
    service.update_status(order.id, "processing")
    service.update_status(order.id, "shipped")

    service.update_status(order.id, "cancelled")

    stocked = db.get(Product, product.id)
    assert stocked.stock_quantity == 8
    assert stocked.reserved_quantity == 0


def test_cancel_paid_order_marks_refund_pending(db, place_order):
    order = place_order()
    order.payment_status = "paid"
    db.commit()

    order, _ = OrderService(db).update_status(order.id, "cancelled")

    assert order.cancellation["refund_status"] == "pending"
    assert order.cancellation["reason"] == "Cancelled by admin"
    assert order.payment_status == "paid"


def test_reserve_applies_once(db, place_order, product):
    order = place_order(quantity=2)
    OrderService(db).update_status(order.id, "processing")

    applied = InventoryService(db).reserve(order)
    db.commit()

    assert applied is False
    assert db.get(Product, product.id).reserved_quantity == 2


def test_insufficient_stock_does_not_block_transition(db, place_order, product):
    order = place_order(quantity=2)
    product.stock_quantity = 1
    db.commit()

    order, changed = OrderService(db).update_status(order.id, "processing")

    assert changed is True
    assert order.status == "processing"
    assert order.inventory_reserved is True
    assert db.get(Product, product.id).reserved_quantity == 0


def test_status_change_records_one_entry_and_notifies(db, place_order, outbox):
    order = place_order()
    outbox.clear()

    order, _ = OrderService(db).update_status(order.id, "processing", notes="Packed")

    entry = order.timeline[-1]
    assert _actions(order) == ["Order Placed", "Status Updated"]
    assert (entry.old_value, entry.new_value) == ("pending", "processing")
    assert entry.notification_sent is True
    assert len(outbox) == 1
    assert outbox[0]["subject"].startswith("Order Update")
    assert order.order_notes[-1].note == "Packed"


def test_failed_notification_leaves_flag_false(db, place_order, monkeypatch):
    from services import notification_services

    order = place_order()
    monkeypatch.setattr(notification_services, "send_email", lambda **kwargs: False)

    order, _ = OrderService(db).update_status(order.id, "processing")

    assert order.status == "processing"
    assert order.timeline[-1].notification_sent is False


def test_timeline_entries_are_append_only(db, place_order):
    order = place_order()
    entry = db.get(OrderTimelineEntry, order.timeline[0].id)

    entry.action = "Rewritten"
    with pytest.raises(ValueError):
        db.commit()
    db.rollback()


def test_concurrent_write_is_rejected(db, place_order):
    from conftest import TestingSessionLocal
    from models.order_model import Order
    from services.order_services import commit_order
    from utils.exceptions import ConcurrentModification

    order = place_order()
    other = TestingSessionLocal()
    try:
        stale = other.get(Order, order.id)
        assert stale.version == order.version

        OrderService(db).update_status(order.id, "processing")

        stale.payment_status = "paid"
        with pytest.raises(ConcurrentModification) as exc:
            commit_order(other, stale)
        assert exc.value.status_code == 409
    finally:
        other.close()

    db.refresh(order)
    assert order.payment_status == "unpaid"


def test_failed_reservation_never_eats_another_orders_hold(db, place_order, product):
    first = place_order(quantity=5)
    second = place_order(quantity=3)
    service = OrderService(db)
    service.update_status(first.id, "processing")
    product.stock_quantity = 6
    db.commit()

    second, _ = service.update_status(second.id, "processing")
    assert second.items[0].reserved_quantity == 0
    assert db.get(Product, product.id).reserved_quantity == 5

    service.update_status(second.id, "cancelled")

    assert db.get(Product, product.id).reserved_quantity == 5


def test_shipping_after_failed_reservation_keeps_other_hold(db, place_order, product):
    first = place_order(quantity=5)
    second = place_order(quantity=3)
    service = OrderService(db)
    service.update_status(first.id, "processing")
    product.stock_quantity = 6
    db.commit()
    service.update_status(second.id, "processing")

    service.update_status(second.id, "shipped")

    stocked = db.get(Product, product.id)
    assert stocked.stock_quantity == 3
    assert stocked.reserved_quantity == 5
