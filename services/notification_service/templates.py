import os
from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, Optional, Tuple

BRAND_NAME = os.getenv("BRAND_NAME", "TimRodina.online")

STATUS_SUBJECTS = {
    "online": "Hosting is online - your sites are working",
    "offline": "Hosting is offline - temporary outage",
    "maintenance": "Hosting maintenance in progress",
}

_STYLES = """
<style>
  .container { max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; }
  .header { background: #667eea; color: white; padding: 30px; text-align: center; }
  .content { background: #f8f9fa; padding: 30px; }
  .box { background: white; padding: 20px; border-radius: 8px; margin: 15px 0; border-left: 4px solid #667eea; }
  .badge { display: inline-block; padding: 6px 14px; border-radius: 20px; font-weight: bold; }
  .online { background: #d4edda; color: #155724; }
  .offline { background: #f8d7da; color: #721c24; }
  .maintenance { background: #fff3cd; color: #856404; }
  .footer { background: #343a40; color: white; padding: 20px; text-align: center; }
</style>
"""


def _page(title: str, header: str, body: str, footer: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset='utf-8'>"
        f"<title>{escape(title)}</title>{_STYLES}</head><body>"
        "<div class='container'>"
        f"<div class='header'><h1>{header}</h1></div>"
        f"<div class='content'>{body}</div>"
        f"<div class='footer'><p><strong>{escape(BRAND_NAME)}</strong><br><small>{footer}</small></p></div>"
        "</div></body></html>"
    )


def _months(n: int) -> str:
    return f"{n} month" if n == 1 else f"{n} months"


def new_order_alert(order: Dict[str, Any], now: Optional[datetime] = None) -> Tuple[str, str]:
    """Operator email for a new order. `order` uses the notify-new-order field names."""
    now = now or datetime.now(timezone.utc)
    number = escape(str(order["orderNumber"]))
    name = escape(str(order["fullName"]))
    email = escape(str(order["email"]))
    plan = escape(str(order["plan"]).upper())
    wordpress = "Yes (+&euro;1/month)" if order.get("wordpress") else "No"
    total = escape(str(order["totalAmount"]))

    subject = f"New order #{order['orderNumber']} - {order['fullName']}"
    body = (
        "<div class='box'><h2>Customer</h2>"
        f"<p><strong>Name:</strong> {name}<br>"
        f"<strong>E-mail:</strong> <a href='mailto:{email}'>{email}</a></p></div>"
        "<div class='box'><h2>Order</h2>"
        f"<p><strong>Plan:</strong> <span class='badge'>{plan}</span><br>"
        f"<strong>WordPress:</strong> {wordpress}<br>"
        f"<strong>Duration:</strong> {_months(int(order['duration']))}<br>"
        f"<strong>Total:</strong> &euro;{total}</p></div>"
        f"<div class='box'><h2>Placed at</h2><p>{now:%Y-%m-%d %H:%M} UTC</p></div>"
        "<div class='box'><strong>Next steps:</strong><br>"
        "1. Check the customer's e-mail<br>"
        "2. Confirm the payment in the admin panel<br>"
        "3. Set up the hosting account<br>"
        "4. Send the customer their access details</div>"
    )
    html = _page(f"New order - {order['orderNumber']}", f"New order {number}", body, "Automatic new order notification")
    return subject, html


def status_email(status: str, reason: Optional[str] = None, now: Optional[datetime] = None) -> Tuple[str, str]:
    now = now or datetime.now(timezone.utc)
    if status not in STATUS_SUBJECTS:
        raise ValueError(f"Unknown hosting status: {status}")

    subject = STATUS_SUBJECTS[status]

    if status == "online":
        body = (
            "<span class='badge online'>ONLINE</span>"
            "<h2>Your sites are working normally</h2>"
            "<p>Hosting is fully operational and you can keep using your sites as usual.</p>"
            f"<div class='box'><strong>Status:</strong> all services operational<br>"
            f"<strong>Last update:</strong> {now:%Y-%m-%d %H:%M} UTC</div>"
        )
        return subject, _page("Hosting is online", "Hosting is online", body, "Questions? Just reply to this e-mail.")

    if status == "offline":
        body = (
            "<span class='badge offline'>OFFLINE</span>"
            "<h2>Your sites are currently unavailable</h2>"
            "<p>We are sorry, hosting is down for the following reason:</p>"
            f"<div class='box'><strong>Reason:</strong> {escape(reason or 'Technical problems')}</div>"
            "<p>We are working on it and will let you know as soon as service is restored.</p>"
            "<div class='box'><strong>What this means:</strong><br>"
            "&bull; your sites are temporarily unreachable<br>"
            "&bull; e-mail may be affected too<br>"
            "&bull; all data is safe</div>"
        )
        return subject, _page("Hosting is offline", "Hosting is offline", body, "Thank you for your patience.")

    body = (
        "<span class='badge maintenance'>MAINTENANCE</span>"
        "<h2>Maintenance in progress</h2>"
        "<p>We are running maintenance and updates on the hosting.</p>"
        "<div class='box'><strong>What to expect:</strong><br>"
        "&bull; sites should keep working<br>"
        "&bull; admin panels may be slow or unavailable<br>"
        "&bull; changes made now might not be saved correctly</div>"
        "<p>We recommend postponing important edits until maintenance is finished.</p>"
    )
    return subject, _page("Hosting maintenance", "Hosting maintenance", body, "We are improving our services for you.")
