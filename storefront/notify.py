# storefront/notify.py
import asyncio
import html
import logging
import re
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional
from urllib.parse import quote

from .config import settings
from .core import OrderIn
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\d{8,15}$")
_URI_SAFE = "!~*'()"


def _money(value: float) -> str:
    return f"{value:.2f}"


def _stamp(now: Optional[datetime]) -> str:
    return (now or datetime.now()).strftime("%d/%m/%Y %H:%M:%S")


# ---------------------------
# WhatsApp
# ---------------------------
def compose_order_message(order: OrderIn, store_name: str, now: Optional[datetime] = None) -> str:
    b = order.buyer
    lines = [
        f"🛒 *NEW ORDER - {store_name.upper()}*",
        "",
        "👤 *CUSTOMER:*",
        f"• Name: {b.name}",
        f"• Email: {b.email}",
        f"• Phone: {b.phone}",
        f"• Address: {b.address}",
        f"• City: {b.city}",
        f"• Postal code: {b.zip}",
        "",
        "📦 *ITEMS:*",
    ]
    for i, item in enumerate(order.cart_items, start=1):
        lines += [
            f"{i}. {item.name}" + (f" ({item.size})" if item.size else ""),
            f"   • Quantity: {item.quantity}",
            f"   • Unit price: ${_money(item.price)}",
            f"   • Subtotal: ${_money(item.price * item.quantity)}",
            "",
        ]
    lines += [
        f"💰 *TOTAL: ${_money(order.total)}*",
        "",
        f"⏰ Date: {_stamp(now)}",
        f"🌐 Ordered from: {store_name}",
    ]
    return "\n".join(lines)


def normalize_phone(raw: Optional[str]) -> str:
    if not raw:
        raise ExternalServiceError("WhatsApp service not configured")
    digits = re.sub(r"[\s\-+()]", "", raw)
    if not _PHONE_RE.match(digits):
        logger.error("WHATSAPP_NUMBER is malformed: %r", raw)
        raise ExternalServiceError("WhatsApp service not configured")
    return digits


def whatsapp_link(order: OrderIn, now: Optional[datetime] = None) -> str:
    phone = normalize_phone(settings.whatsapp_number)
    text = compose_order_message(order, settings.store_name, now)
    # same safe set as JavaScript's encodeURIComponent
    return f"https://wa.me/{phone}?text={quote(text, safe=_URI_SAFE)}"


# ---------------------------
# Email
# ---------------------------
def render_receipt_html(order: OrderIn, store_name: str, now: Optional[datetime] = None) -> str:
    e = html.escape
    b = order.buyer
    rows = "".join(
        f"""
        <tr style="border-bottom: 1px solid #eee;">
          <td style="padding: 15px; text-align: left;"><strong>{e(item.name)}</strong><br>
            <small style="color: #666;">{e(item.size)}</small></td>
          <td style="padding: 15px; text-align: center;">{item.quantity}</td>
          <td style="padding: 15px; text-align: right;">${_money(item.price)}</td>
          <td style="padding: 15px; text-align: right; font-weight: bold;">${_money(item.price * item.quantity)}</td>
        </tr>"""
        for item in order.cart_items
    )
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Order confirmation - {e(store_name)}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #667eea; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="color: white; margin: 0;">{e(store_name)}</h1>
    <p style="color: white; margin: 10px 0 0 0;">Thank you for your purchase!</p>
  </div>
  <div style="background: white; padding: 30px; border: 1px solid #ddd; border-top: none;">
    <p>Hello <strong>{e(b.name)}</strong>,</p>
    <p>We have received your order. Here is a summary:</p>
    <table style="width: 100%; border-collapse: collapse;">
      <thead>
        <tr style="background: #f0f0f0;">
          <th style="padding: 12px; text-align: left;">Product</th>
          <th style="padding: 12px; text-align: center;">Quantity</th>
          <th style="padding: 12px; text-align: right;">Unit price</th>
          <th style="padding: 12px; text-align: right;">Subtotal</th>
        </tr>
      </thead>
      <tbody>{rows}
      </tbody>
    </table>
    <h3 style="text-align: right;">Total: ${_money(order.total)}</h3>
    <div style="background: #e8f4f8; padding: 20px; border-radius: 8px;">
      <h3 style="margin-top: 0;">Shipping details</h3>
      <p><strong>Address:</strong> {e(b.address)}</p>
      <p><strong>City:</strong> {e(b.city)}</p>
      <p><strong>Postal code:</strong> {e(b.zip)}</p>
      <p><strong>Phone:</strong> {e(b.phone)}</p>
    </div>
    <p style="color: #666; text-align: center; font-size: 14px;">Order date: {_stamp(now)}</p>
  </div>
</body>
</html>
"""


class Mailer:
    def __init__(self, user: str, password: str, host: str = "smtp.gmail.com", port: int = 587,
                 timeout: float = 10.0):
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self.timeout = timeout

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            s.ehlo()
            s.starttls()
            s.login(self.user, self.password)
            s.send_message(msg)

    async def send(self, to: str, subject: str, html_body: str, text_body: str = "") -> None:
        msg = EmailMessage()
        try:
            msg["Subject"] = subject
            msg["From"] = self.user
            msg["To"] = to
        except ValueError as e:
            logger.error("Rejected email headers for %r: %s", to, e)
            raise ExternalServiceError("Error sending email") from e
        msg.set_content(text_body or "Your order confirmation is attached as HTML.")
        msg.add_alternative(html_body, subtype="html")
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email to %s failed: %s", to, e)
            raise ExternalServiceError("Error sending email") from e


def get_mailer() -> Optional[Mailer]:
    if not settings.has_email:
        return None
    return Mailer(settings.email_user, settings.email_pass, settings.smtp_host, settings.smtp_port,
                  timeout=settings.outbound_timeout_sec)
