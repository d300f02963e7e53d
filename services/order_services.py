# services/order_services.py

import json
from collections import Counter
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from models.order_model import Order, OrderItem, quantize_money, utcnow
from models.product_model import Product
from models.user_model import User
from schemas.order_schema import OrderCreate, OrderItemIn, OrderRead
from services.notification_services import NotificationService, mark_notified
from services.order_state_machine import OrderStateMachine, check_status
from utils.app_config import FREE_SHIPPING_THRESHOLD, FLAT_SHIPPING_RATE
from utils.caching_utils import get_or_set_cache, invalidate_cache
from utils.exceptions import AppError, ConcurrentModification, NotFound, ValidationError
from utils.logger import logger


PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
SORTABLE_FIELDS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total": Order.total,
    "status": Order.status,
}
EDITABLE_ITEM_STATUSES = ("pending", "processing")


def calculate_shipping(subtotal: Decimal) -> Decimal:
    if subtotal > Decimal(FREE_SHIPPING_THRESHOLD):
        return Decimal("0.00")
    return quantize_money(FLAT_SHIPPING_RATE)


def period_start(period: str) -> datetime:
    days = PERIOD_DAYS.get(period, 30)
    return datetime.now(timezone.utc) - timedelta(days=days)


def invalidate_order_caches(user_id: Optional[int] = None) -> None:
    invalidate_cache(
        keys=[f"user_orders:{user_id}"] if user_id is not None else [],
        patterns=["orders:analytics:*", "orders:refunds:*"],
    )


def commit_order(db: Session, order: Order) -> Order:
    """Commit the unit of work holding ``order`` and any products it touched."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"Concurrent modification detected on order {order.id}")
        raise ConcurrentModification()
    db.refresh(order)
    invalidate_order_caches(order.user_id)
    return order


def serialize_order(order: Order, customer_view: bool = False) -> dict:
    data = OrderRead.model_validate(order).model_dump(mode="json")
    if customer_view:
        data["order_notes"] = [n for n in data["order_notes"] if n["is_visible"]]
        data.pop("inventory_reserved", None)
        data.pop("inventory_updated", None)
    return data


class OrderService:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.state_machine = OrderStateMachine(db)
        self.inventory = self.state_machine.inventory
        self.notifier = notifier or NotificationService()

    # ------------------------------------------------------------------
    # LOOKUPS
    # ------------------------------------------------------------------
    def get_order(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def get_order_for_user(self, order_id: int, user_id: int) -> Order:
        order = self.get_order(order_id)
        if order.user_id != user_id:
            raise NotFound("Order not found")
        return order

    def _active_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product or product.status != "active":
            raise ValidationError(f"Product {product_id} is not available")
        return product

    # ------------------------------------------------------------------
    # CHECKOUT
    # ------------------------------------------------------------------
    def create_order(self, user_id: int, data: OrderCreate) -> Order:
        items = []
        for line in data.items:
            product = self._active_product(line.product_id)
            if (
                product.track_inventory
                and not product.allow_backorder
                and product.available_quantity() < line.quantity
            ):
                raise ValidationError(f"Insufficient stock for {product.name}")

            items.append(
                OrderItem(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    image=product.image,
                    quantity=line.quantity,
                    selected_color=line.selected_color,
                    selected_size=line.selected_size,
                )
            )

        subtotal = quantize_money(sum(i.item_total for i in items))
        order = Order(
            user_id=user_id,
            items=items,
            subtotal=subtotal,
            shipping=calculate_shipping(subtotal),
            shipping_address=data.shipping_address.model_dump(exclude_none=True),
        )
        order.recalculate_totals()
        entry = order.add_timeline_entry(
            "Order Placed",
            performed_by="customer",
            details=f"Order placed with {len(items)} item(s)",
            new_value="pending",
        )
        self.db.add(order)
        self.db.flush()
        commit_order(self.db, order)
        logger.info(f"Order {order.id} created for user {user_id}, total={order.total}")

        sent = self.notifier.send_order_confirmation(order)
        mark_notified(self.db, entry, sent)
        return order

    def list_user_orders(self, user_id: int) -> List[dict]:
        def fetch_from_db():
            orders = (
                self.db.query(Order)
                .filter(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .all()
            )
            return [serialize_order(o, customer_view=True) for o in orders]

        return get_or_set_cache(
            key=f"user_orders:{user_id}",
            ttl=180,
            fetch_fn=fetch_from_db,
        )

    def cancel_my_order(self, order_id: int, user_id: int) -> Order:
        order = self.get_order_for_user(order_id, user_id)
        if order.status != "pending":
            raise ValidationError("Only pending orders can be cancelled")

        order, _ = self.update_status(
            order_id,
            "cancelled",
            notes="Cancelled by customer",
            actor="customer",
            add_note=False,
        )
        return order

    # ------------------------------------------------------------------
    # STATUS TRANSITIONS
    # ------------------------------------------------------------------
    def update_status(
        self,
        order_id: int,
        new_status: str,
        notes: Optional[str] = None,
        shipping_info: Optional[dict] = None,
        actor: str = "admin",
        action: str = "Status Updated",
        add_note: bool = True,
    ) -> Tuple[Order, bool]:
        check_status(new_status)
        order = self.get_order(order_id)
        old_status = order.status

        changed = self.state_machine.transition(
            order,
            new_status,
            actor=actor,
            notes=notes,
            shipping_info=shipping_info,
        )
        if not changed:
            return order, False

        entry = order.add_timeline_entry(
            action,
            performed_by=actor,
            details=notes or f"Status changed from {old_status} to {new_status}",
            old_value=old_status,
            new_value=new_status,
        )
        if notes and add_note:
            order.add_note(notes, added_by=actor, note_type="internal", is_visible=False)

        commit_order(self.db, order)

        sent = self.notifier.send_status_change(order, old_status, new_status, notes)
        mark_notified(self.db, entry, sent)
        return order, True

    def bulk_update_status(
        self,
        order_ids: List[int],
        new_status: str,
        notes: Optional[str] = None,
        actor: str = "admin",
    ) -> dict:
        check_status(new_status)

        updated, unchanged, failed = [], [], []
        for order_id in dict.fromkeys(order_ids):
            try:
                _, changed = self.update_status(
                    order_id,
                    new_status,
                    notes=notes,
                    actor=actor,
                    action="Bulk Status Update",
                )
            except AppError as e:
                self.db.rollback()
                failed.append({"order_id": order_id, "message": e.message})
                continue
            (updated if changed else unchanged).append(order_id)

        logger.info(
            f"Bulk status -> {new_status}: updated={len(updated)} "
            f"unchanged={len(unchanged)} failed={len(failed)}"
        )
        return {
            "updated_count": len(updated),
            "updated": updated,
            "unchanged": unchanged,
            "failed": failed,
        }

    # ------------------------------------------------------------------
    # ADMIN EDITS
    # ------------------------------------------------------------------
    def add_note(
        self,
        order_id: int,
        note: str,
        note_type: str = "internal",
        is_visible: bool = False,
        actor: str = "admin",
    ) -> Order:
        note = (note or "").strip()
        if not note:
            raise ValidationError("Note content is required")

        order = self.get_order(order_id)
        order.add_note(note, added_by=actor, note_type=note_type, is_visible=is_visible)
        order.add_timeline_entry(
            "Note Added",
            performed_by=actor,
            details=f"{note_type} note added: {note[:50]}{'...' if len(note) > 50 else ''}",
        )
        return commit_order(self.db, order)

    def update_items(self, order_id: int, items: List[OrderItemIn], actor: str = "admin") -> Order:
        order = self.get_order(order_id)
        if order.status not in EDITABLE_ITEM_STATUSES:
            raise ValidationError("Cannot modify items for orders that are shipped, delivered or cancelled")

        captured: Dict[int, OrderItem] = {i.product_id: i for i in order.items}
        held: Dict[int, int] = Counter()
        for item in order.items:
            held[item.product_id] += item.reserved_quantity or 0

        new_items = []
        for line in items:
            existing = captured.get(line.product_id)
            if existing is not None:
                name, price, image = existing.name, existing.price, existing.image
            else:
                product = self._active_product(line.product_id)
                name, price, image = product.name, product.price, product.image

            new_items.append(
                OrderItem(
                    product_id=line.product_id,
                    name=name,
                    price=price,
                    image=image,
                    quantity=line.quantity,
                    selected_color=line.selected_color,
                    selected_size=line.selected_size,
                )
            )

        old_total = order.total
        order.items = new_items
        order.recalculate_totals()
        order.shipping = calculate_shipping(order.subtotal)
        order.recalculate_totals()

        self.inventory.adjust_reservation(order, held)

        order.add_timeline_entry(
            "Items Modified",
            performed_by=actor,
            details=f"Order items updated. New total: {order.total:.2f}",
            old_value=f"{old_total:.2f}",
            new_value=f"{order.total:.2f}",
        )
        return commit_order(self.db, order)

    def update_shipping_info(self, order_id: int, shipping_info: dict, actor: str = "admin") -> Order:
        order = self.get_order(order_id)
        old_info = dict(order.shipping_info)

        order.merge_shipping_info(shipping_info)
        entry = order.add_timeline_entry(
            "Shipping Info Updated",
            performed_by=actor,
            details="Shipping information updated",
            old_value=json.dumps(old_info, default=str),
            new_value=json.dumps(order.shipping_info, default=str),
        )
        commit_order(self.db, order)

        if shipping_info.get("tracking_number") and order.status == "shipped":
            sent = self.notifier.send_shipping_notification(order)
            mark_notified(self.db, entry, sent)
        return order

    def create_reorder(self, order_id: int, user_id: Optional[int] = None, actor: str = "admin") -> Order:
        original = self.get_order(order_id)
        if user_id is not None and self.db.get(User, user_id) is None:
            raise NotFound("User not found")

        reorder = Order(
            user_id=user_id or original.user_id,
            items=[
                OrderItem(
                    product_id=i.product_id,
                    name=i.name,
                    price=i.price,
                    image=i.image,
                    quantity=i.quantity,
                    selected_color=i.selected_color,
                    selected_size=i.selected_size,
                )
                for i in original.items
            ],
            subtotal=original.subtotal,
            shipping=original.shipping,
            shipping_address=dict(original.shipping_address or {}),
            is_reorder=True,
            original_order_id=original.id,
        )
        reorder.recalculate_totals()
        reorder.add_timeline_entry(
            "Order Created",
            performed_by=actor,
            details=f"Reorder created from order #{original.reference}",
            new_value="pending",
        )
        self.db.add(reorder)
        self.db.flush()
        commit_order(self.db, reorder)
        logger.info(f"Reorder {reorder.id} created from order {original.id}")
        return reorder

    # ------------------------------------------------------------------
    # ADMIN LISTING
    # ------------------------------------------------------------------
    def list_orders(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict:
        query = self.db.query(Order)

        if status:
            query = query.filter(Order.status == status)
        if payment_status:
            query = query.filter(Order.payment_status == payment_status)
        if date_from:
            query = query.filter(Order.created_at >= datetime.combine(date_from.date(), time.min))
        if date_to:
            query = query.filter(Order.created_at <= datetime.combine(date_to.date(), time.max))

        if search and search.strip():
            term = search.strip().lstrip("#")
            pattern = f"%{term}%"
            conditions = [User.name.ilike(pattern), User.email.ilike(pattern)]
            if term.isdigit():
                conditions.append(Order.id == int(term))
            query = query.join(User, Order.user_id == User.id).filter(or_(*conditions))

        column = SORTABLE_FIELDS.get(sort_by, Order.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        total_orders = query.count()
        orders = (
            query.order_by(ordering, Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        total_pages = (total_orders + limit - 1) // limit if total_orders else 0

        return {
            "orders": [serialize_order(o) for o in orders],
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_orders": total_orders,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    # ------------------------------------------------------------------
    # REPORTING (CACHED)
    # ------------------------------------------------------------------
    def get_order_analytics(self, period: str = "30d") -> dict:
        period = period if period in PERIOD_DAYS else "30d"

        def fetch_from_db():
            start = period_start(period)

            total_orders, total_revenue = self.db.query(
                func.count(Order.id), func.coalesce(func.sum(Order.total), 0)
            ).one()

            period_rows = (
                self.db.query(Order.created_at, Order.total, Order.status, Order.payment_status)
                .filter(Order.created_at >= start)
                .all()
            )
            period_revenue = sum(Decimal(str(r.total)) for r in period_rows)
            period_count = len(period_rows)

            today = datetime.now(timezone.utc).date()
            trend = {today - timedelta(days=i): {"orders": 0, "revenue": Decimal("0")} for i in range(6, -1, -1)}
            for row in period_rows:
                bucket = trend.get(row.created_at.date())
                if bucket is not None:
                    bucket["orders"] += 1
                    bucket["revenue"] += Decimal(str(row.total))

            total_revenue = Decimal(str(total_revenue))
            return {
                "totals": {
                    "total_orders": total_orders,
                    "total_revenue": float(total_revenue),
                    "average_order_value": float(total_revenue / total_orders) if total_orders else 0.0,
                },
                "period": {
                    "period": period,
                    "period_orders": period_count,
                    "period_revenue": float(period_revenue),
                    "period_average_order_value": float(period_revenue / period_count) if period_count else 0.0,
                },
                "status_distribution": dict(Counter(r.status for r in period_rows)),
                "payment_distribution": dict(Counter(r.payment_status for r in period_rows)),
                "daily_trends": [
                    {"date": day.isoformat(), "orders": v["orders"], "revenue": float(v["revenue"])}
                    for day, v in trend.items()
                ],
            }

        return get_or_set_cache(
            key=f"orders:analytics:{period}",
            ttl=120,
            fetch_fn=fetch_from_db,
        )

    def get_refund_stats(self, period: str = "30d") -> dict:
        period = period if period in PERIOD_DAYS else "30d"

        def fetch_from_db():
            refunded = (
                self.db.query(Order.refund_amount, Order.refund_reason)
                .filter(
                    Order.payment_status == "refunded",
                    Order.refunded_at >= period_start(period),
                )
                .all()
            )
            total_amount = sum(Decimal(str(r.refund_amount or 0)) for r in refunded)
            count = len(refunded)
            return {
                "total_refunds": count,
                "total_refund_amount": float(total_amount),
                "average_refund": float(total_amount / count) if count else 0.0,
                "reason_counts": dict(Counter(r.refund_reason or "Not specified" for r in refunded)),
                "period": period,
            }

        return get_or_set_cache(
            key=f"orders:refunds:{period}",
            ttl=120,
            fetch_fn=fetch_from_db,
        )
