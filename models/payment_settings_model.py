# models/payment_settings_model.py

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.orm import Session

from database import Base


DEFAULT_MERCHANT_NAME = "Storefront"
DEFAULT_UPI_INSTRUCTIONS = (
    "Scan the QR code using any UPI app (Google Pay, PhonePe, Paytm, etc.) "
    "to make payment."
)


class PaymentSettings(Base):
    __tablename__ = "payment_settings"

    id = Column(Integer, primary_key=True, index=True)
    payment_mode = Column(String(20), nullable=False, default="razorpay")

    upi_qr_code_image = Column(Text, nullable=False, default="")
    upi_id = Column(String(100), nullable=False, default="")
    upi_merchant_name = Column(String(120), nullable=False, default=DEFAULT_MERCHANT_NAME)
    upi_instructions = Column(Text, nullable=False, default=DEFAULT_UPI_INSTRUCTIONS)

    razorpay_configured = Column(Boolean, nullable=False, default=False)
    updated_by = Column(String(100), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def upi_settings(self) -> dict:
        return {
            "qr_code_image": self.upi_qr_code_image,
            "upi_id": self.upi_id,
            "merchant_name": self.upi_merchant_name,
            "instructions": self.upi_instructions,
        }

    @classmethod
    def get_settings(cls, db: Session) -> "PaymentSettings":
        """Return the singleton row, creating it with defaults on first use."""
        settings = db.query(cls).order_by(cls.id).first()
        if settings is None:
            settings = cls(
                payment_mode="razorpay",
                upi_qr_code_image="",
                upi_id="",
                upi_merchant_name=DEFAULT_MERCHANT_NAME,
                upi_instructions=DEFAULT_UPI_INSTRUCTIONS,
                razorpay_configured=False,
            )
            db.add(settings)
            db.commit()
            db.refresh(settings)
        return settings
