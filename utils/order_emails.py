# utils/order_emails.py
#
# HTML bodies for transactional order emails. Each builder returns
# (subject, html, text).

from html import escape
from typing import Optional, Tuple

from utils.app_config import SUPPORT_EMAIL
from utils.payment_config import PAYMENT_CURRENCY

Email = Tuple[str, str, str]

_CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

STATUS_MESSAGES = {
    "pending": "Your order has been received and is awaiting processing.",
    "processing": "Your order is being prepared.",
    "shipped": "Your order is on its way.",
    "delivered": "Your order has been delivered.",
    "cancelled": "Your order has been cancelled.",
}


def money(amount) -> str:
    symbol = _CURRENCY_SYMBOLS.get(PAYMENT_CURRENCY, PAYMENT_CURRENCY + " ")
    return f"{symbol}{float(amount or 0):,.2f}"


def _layout(title: str, body: str, colour: str = "#111827") -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background: #ffffff;">
  <div style="background: {colour}; padding: 32px 20px; text-align: center;">
    <h1 style="color: white; margin: 0; font-size: 24px;">{escape(title)}</h1>
  </div>
  <div style="padding: 30px; color: #374151; font-size: 15px;">
    {body}
  </div>
  <div style="background: #f9fafb; padding: 20px; text-align: center; border-top: 1px solid #e5e7eb;">
    <p style="margin: 0; color: #6b7280; font-size: 13px;">Need help? Contact us at {escape(SUPPORT_EMAIL)}</p>
  </div>
</div>
"""


def _greeting(user) -> str:
    return f"<p>Hi {escape(getattr(user, 'name', '') or 'there')},</p>"


def _items_table(order) -> str:
    rows = "".join(
        f"""<tr>
      <td style="padding: 10px; border-bottom: 1px solid #e5e7eb;">{escape(item.name)}</td>
      <td style="padding: 10px; border-bottom: 1px solid #e5e7eb; text-align: center;">{item.quantity}</td>
      <td style="padding: 10px; border-bottom: 1px solid #e5e7eb; text-align: right;">{money(item.item_total)}</td>
    </tr>"""
        for item in order.items
    )
    return f"""
<table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
  <thead>
    <tr style="background: #f3f4f6;">
      <th style="padding: 10px; text-align: left;">Item</th>
      <th style="padding: 10px; text-align: center;">Qty</th>
      <th style="padding: 10px; text-align: right;">Total</th>
    </tr>
  </thead>
  <tbody>{rows}</tbody>
  <tfoot>
    <tr><td colspan="2" style="padding: 10px;">Subtotal</td><td style="padding: 10px; text-align: right;">{money(order.subtotal)}</td></tr>
    <tr><td colspan="2" style="padding: 10px;">Shipping</td><td style="padding: 10px; text-align: right;">{money(order.shipping)}</td></tr>
    <tr style="background: #111827; color: white;">
      <td colspan="2" style="padding: 10px; font-weight: bold;">Grand Total</td>
      <td style="padding: 10px; text-align: right; font-weight: bold;">{money(order.total)}</td>
    </tr>
  </tfoot>
</table>
"""


def order_confirmation(user, order) -> Email:
    subject = f"Order Confirmation - Order #{order.reference}"
    body = (
        _greeting(user)
        + f"<p>Thank you for your order #{order.reference}. We'll let you know when it ships.</p>"
        + _items_table(order)
    )
    return subject, _layout("Thank you for your order!", body), f"Order #{order.reference} received"


def status_update(user, order, old_status: str, new_status: str) -> Email:
    subject = f"Order Update - Order #{order.reference}"
    body = (
        _greeting(user)
        + f"<p>The status of order #{order.reference} changed from "
        f"<strong>{escape(old_status)}</strong> to <strong>{escape(new_status)}</strong>.</p>"
        + f"<p>{escape(STATUS_MESSAGES.get(new_status, ''))}</p>"
    )
    return subject, _layout("Order Status Updated", body), f"Order #{order.reference} is now {new_status}"


def shipping_notification(user, order) -> Email:
    subject = f"Your Order Has Shipped - Order #{order.reference}"
    tracking = ""
    if order.tracking_number:
        tracking += f"<p><strong>Tracking Number:</strong> {escape(order.tracking_number)}</p>"
    if order.carrier:
        tracking += f"<p><strong>Carrier:</strong> {escape(order.carrier)}</p>"
    if order.tracking_url:
        tracking += f'<p><a href="{escape(order.tracking_url)}">Track your package</a></p>'
    if order.estimated_delivery:
        tracking += f"<p><strong>Estimated Delivery:</strong> {order.estimated_delivery:%d %b %Y}</p>"
    body = _greeting(user) + f"<p>Good news! Order #{order.reference} has shipped.</p>" + tracking
    return subject, _layout("Your order is on its way", body, "#2563eb"), f"Order #{order.reference} shipped"


def cancellation(user, order, reason: Optional[str] = None) -> Email:
    subject = f"Order Cancelled - Order #{order.reference}"
    body = _greeting(user) + f"<p>Order #{order.reference} has been cancelled.</p>"
    if reason:
        body += f"<p><strong>Reason:</strong> {escape(reason)}</p>"
    if order.payment_status == "paid":
        body += "<p>A refund for your payment will be processed shortly.</p>"
    return subject, _layout("Order Cancelled", body, "#ef4444"), f"Order #{order.reference} cancelled"


def delivery_confirmation(user, order) -> Email:
    subject = f"Order Delivered - Order #{order.reference}"
    body = _greeting(user) + f"<p>Order #{order.reference} has been delivered. Enjoy your purchase!</p>"
    return subject, _layout("Delivered!", body, "#10b981"), f"Order #{order.reference} delivered"


def payment_confirmed(user, order) -> Email:
    subject = f"Payment Confirmed - Order #{order.reference}"
    body = (
        _greeting(user)
        + "<p>Your payment has been successfully processed.</p>"
        + f"<p><strong>Transaction ID:</strong> {escape(order.transaction_id or order.payment_id or '-')}</p>"
        + f"<p><strong>Amount:</strong> {money(order.total)}</p>"
        + f"<p><strong>Payment Method:</strong> {escape(order.payment_method)}</p>"
        + "<p>Your order is now being processed and will be shipped soon.</p>"
    )
    return subject, _layout("Payment Successful!", body, "#28a745"), f"Payment confirmed for Order #{order.reference}"


def upi_payment_verified(user, order) -> Email:
    subject = f"Order Confirmed - #{order.reference}"
    body = (
        _greeting(user)
        + "<p>Great news! Your UPI payment has been verified and your order is now being processed.</p>"
        + f"<p><strong>Transaction ID:</strong> {escape(order.upi_transaction_id or '-')}</p>"
        + f"<p><strong>Amount Paid:</strong> {money(order.total)}</p>"
        + _items_table(order)
        + "<p>We'll send you another email when your order ships.</p>"
    )
    return subject, _layout("✓ Payment Verified!", body, "#059669"), f"Payment verified for Order #{order.reference}"


def upi_payment_rejected(user, order, reason: Optional[str]) -> Email:
    subject = f"Payment Verification Failed - Order #{order.reference}"
    body = (
        _greeting(user)
        + f"<p>Unfortunately, we couldn't verify your UPI payment for order #{order.reference}.</p>"
        + f"<p><strong>Reason:</strong> {escape(reason or 'Transaction ID could not be verified')}</p>"
        + "<p>Please submit the correct transaction details or contact our support team.</p>"
    )
    return subject, _layout("Payment Verification Failed", body, "#dc2626"), f"Payment rejected for Order #{order.reference}"


def refund_processed(user, order) -> Email:
    subject = f"Refund Processed - Order #{order.reference}"
    body = (
        _greeting(user)
        + "<p>Your refund has been successfully processed.</p>"
        + f"<p><strong>Refund Amount:</strong> {money(order.refund_amount)}</p>"
        + f"<p><strong>Refund Reference:</strong> {escape(order.refund_reference or '-')}</p>"
        + f"<p><strong>Refund Method:</strong> {escape((order.refund_method or '').replace('_', ' '))}</p>"
    )
    if order.refund_reason:
        body += f"<p><strong>Reason:</strong> {escape(order.refund_reason)}</p>"
    body += "<p>The refund will be credited within 5-10 business days.</p>"
    return subject, _layout("Refund Processed", body, "#28a745"), f"Refund processed for Order #{order.reference}"
