# services/inventory_services.py

from collections import defaultdict
from typing import Callable, Dict, List

from sqlalchemy.orm import Session

from models.order_model import (
    Order,
    OrderItem,
    EFFECT_INVENTORY_RESERVED,
    EFFECT_STOCK_COMMITTED,
    EFFECT_INVENTORY_RELEASED,
)
from models.product_model import Product, InsufficientInventory
from utils.logger import logger


class InventoryService:
    """
    Keeps product stock in step with an order's lifecycle.

    reserve -> commit_stock (on shipping) or release (on cancellation).
    Each effect is applied at most once per order, checked against the
    order's side-effect ledger. Product rows are only mutated here; the
    caller commits them together with the order.

    Each line item remembers how many units it actually holds, so a line
    whose reservation failed gives nothing back later. Per-item failures
    are logged and skipped so the status change can still go through.
    """

    def __init__(self, db: Session):
        self.db = db

    def _apply(self, order: Order, action: str, fn: Callable[[Product, OrderItem], None]) -> int:
        applied = 0
        for item in order.items:
            try:
                product = self.db.get(Product, item.product_id)
                if product is None:
                    logger.warning(
                        f"Inventory {action} skipped: product {item.product_id} "
                        f"on order {order.id} no longer exists"
                    )
                    continue
                fn(product, item)
                applied += 1
                logger.info(
                    f"Inventory {action}: order={order.id} product_id={item.product_id} "
                    f"quantity={item.quantity}"
                )
            except (InsufficientInventory, ValueError) as e:
                logger.warning(
                    f"Inventory {action} failed for order={order.id} "
                    f"product_id={item.product_id}: {e}"
                )
        return applied

    @staticmethod
    def _reserve_item(product: Product, item: OrderItem) -> None:
        product.reserve_inventory(item.quantity)
        item.reserved_quantity = item.quantity

    @staticmethod
    def _commit_item(product: Product, item: OrderItem) -> None:
        product.update_stock(item.quantity, reserved=item.reserved_quantity or 0)
        item.reserved_quantity = 0

    @staticmethod
    def _release_item(product: Product, item: OrderItem) -> None:
        if item.reserved_quantity:
            product.release_inventory(item.reserved_quantity)
        item.reserved_quantity = 0

    # 🔹 Reserve stock when an order starts processing
    def reserve(self, order: Order) -> bool:
        if order.has_side_effect(EFFECT_INVENTORY_RESERVED):
            logger.info(f"Inventory already reserved for order {order.id}")
            return False

        self._apply(order, "reserve", self._reserve_item)
        order.record_side_effect(EFFECT_INVENTORY_RESERVED)
        order.inventory_reserved = True
        return True

    # 🔹 Deduct stock permanently once the order ships
    def commit_stock(self, order: Order) -> bool:
        if order.has_side_effect(EFFECT_STOCK_COMMITTED):
            logger.info(f"Stock already committed for order {order.id}")
            return False

        self._apply(order, "commit", self._commit_item)
        order.record_side_effect(EFFECT_STOCK_COMMITTED)
        order.inventory_updated = True
        return True

    # 🔹 Give back a reservation that never turned into a shipment
    def release(self, order: Order) -> bool:
        if not order.has_side_effect(EFFECT_INVENTORY_RESERVED):
            return False
        if order.has_side_effect(EFFECT_STOCK_COMMITTED):
            return False
        if order.has_side_effect(EFFECT_INVENTORY_RELEASED):
            return False

        self._apply(order, "release", self._release_item)
        order.record_side_effect(EFFECT_INVENTORY_RELEASED)
        return True

    # 🔹 Re-balance a live reservation after line items were replaced
    def adjust_reservation(self, order: Order, held: Dict[int, int]) -> None:
        """`held` maps product id to the units the previous lines had reserved."""
        if not order.has_side_effect(EFFECT_INVENTORY_RESERVED):
            return
        if order.has_side_effect(EFFECT_STOCK_COMMITTED) or order.has_side_effect(EFFECT_INVENTORY_RELEASED):
            return

        lines: Dict[int, List[OrderItem]] = defaultdict(list)
        for item in order.items:
            lines[item.product_id].append(item)

        for product_id in set(held) | set(lines):
            wanted = sum(i.quantity for i in lines.get(product_id, []))
            holding = held.get(product_id, 0)
            delta = wanted - holding

            product = self.db.get(Product, product_id)
            if product is None:
                logger.warning(f"Reservation adjust skipped: product {product_id} not found")
                delta = 0
            try:
                if delta > 0:
                    product.reserve_inventory(delta)
                    holding = wanted
                elif delta < 0:
                    product.release_inventory(-delta)
                    holding = wanted
                if delta:
                    logger.info(
                        f"Reservation adjusted: order={order.id} product_id={product_id} delta={delta}"
                    )
            except InsufficientInventory as e:
                logger.warning(
                    f"Reservation adjust failed for order={order.id} product_id={product_id}: {e}"
                )

            for item in lines.get(product_id, []):
                item.reserved_quantity = min(item.quantity, holding)
                holding -= item.reserved_quantity
