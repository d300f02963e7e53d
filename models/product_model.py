# models/product_model.py

from sqlalchemy import Column, Integer, String, Numeric, Boolean

from database import Base


class InsufficientInventory(Exception):
    pass


class Product(Base):
    """
    Catalog product as seen by the order flow.

    The stock helpers only mutate the instance; persisting is left to the
    caller's unit of work so an order and its products commit together.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active / inactive / deleted

    in_stock = Column(Boolean, nullable=False, default=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    track_inventory = Column(Boolean, nullable=False, default=True)
    allow_backorder = Column(Boolean, nullable=False, default=False)

    def available_quantity(self) -> int:
        return max(0, (self.stock_quantity or 0) - (self.reserved_quantity or 0))

    def reserve_inventory(self, quantity: int) -> bool:
        if not self.track_inventory:
            return True

        available = self.available_quantity()
        if available < quantity and not self.allow_backorder:
            raise InsufficientInventory(
                f"Insufficient inventory. Available: {available}, Requested: {quantity}"
            )

        self.reserved_quantity = (self.reserved_quantity or 0) + quantity
        return True

    def release_inventory(self, quantity: int) -> bool:
        if not self.track_inventory:
            return True

        self.reserved_quantity = max(0, (self.reserved_quantity or 0) - quantity)
        return True

    def update_stock(self, quantity: int, reserved: int = 0) -> bool:
        """Decrement physical stock once goods leave the warehouse.

        `reserved` is the part of `quantity` this order had held back.
        """
        if not self.track_inventory:
            return True

        self.stock_quantity = max(0, (self.stock_quantity or 0) - quantity)
        if reserved:
            self.reserved_quantity = max(0, (self.reserved_quantity or 0) - reserved)
        self.in_stock = self.available_quantity() > 0 or bool(self.allow_backorder)
        return True
