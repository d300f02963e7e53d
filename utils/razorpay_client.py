# utils/razorpay_client.py

import razorpay
from razorpay.errors import SignatureVerificationError

from utils.payment_config import RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET

razorpay_client = razorpay.Client(auth=(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET))


def is_configured() -> bool:
    return bool(RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET)


def verify_signature(gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    """HMAC-SHA256 of ``order_id|payment_id`` keyed with the API secret."""
    try:
        razorpay_client.utility.verify_payment_signature(
            {
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": gateway_payment_id,
                "razorpay_signature": signature,
            }
        )
    except SignatureVerificationError:
        return False
    return True
