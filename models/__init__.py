# Import every model so Base.metadata knows all tables.
from models.user_model import User
from models.product_model import Product
from models.order_model import (
    Order,
    OrderItem,
    OrderTimelineEntry,
    OrderNote,
    OrderSideEffect,
)
from models.payment_model import Payment
from models.payment_settings_model import PaymentSettings
