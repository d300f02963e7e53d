# utils/app_config.py

import os

from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_KEY_PREFIX = os.getenv("REDIS_KEY_PREFIX", "storefront:")

# ----- JWT -----
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_TO_A_LONG_RANDOM_SECRET")
JWT_ALGORITHM = "HS256"

# ----- Email -----
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USERNAME = os.getenv("EMAIL_USERNAME", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_USE_TLS = os.getenv("EMAIL_USE_TLS", "true").lower() in ("1", "true", "yes")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Storefront <noreply@storefront.local>")
SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@storefront.local")

# ----- Shipping rules -----
FREE_SHIPPING_THRESHOLD = os.getenv("FREE_SHIPPING_THRESHOLD", "50")
FLAT_SHIPPING_RATE = os.getenv("FLAT_SHIPPING_RATE", "10")


def is_development() -> bool:
    return APP_ENV == "development"
