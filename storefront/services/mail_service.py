# storefront/services/mail_service.py
import smtplib
from email.message import EmailMessage

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _format_address(address: dict) -> str:
    parts = [address.get("city"), address.get("street"), address.get("building")]
    if address.get("apartment"):
        parts.append(f"apt. {address['apartment']}")
    parts.append(address.get("postal_code"))
    return ", ".join(p for p in parts if p)


def build_order_confirmation(order: OrderModel, user: UserModel) -> EmailMessage:
    lines = [
        f"Hello {user.first_name},",
        "",
        f"Thank you for your order {order.order_number}.",
        "",
    ]
    for item in order.items:
        variant = " / ".join(v for v in (item.get("size"), item.get("color")) if v)
        label = f"{item['name']} ({variant})" if variant else item["name"]
        lines.append(f"  {label} x{item['quantity']}: {item['total']}")
    lines += [
        "",
        f"Subtotal: {order.subtotal}",
    ]
    if order.discount:
        lines.append(f"Discount: -{order.discount}")
    lines += [
        f"Shipping: {order.shipping}",
        f"Total: {order.total}",
        "",
        f"Delivery to: {_format_address(order.shipping_address)}",
    ]

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = user.email
    message["Subject"] = f"Order {order.order_number} received"
    message.set_content("\n".join(lines))
    return message


def build_status_update(order: OrderModel, user: UserModel, comment: str | None = None) -> EmailMessage:
    lines = [
        f"Hello {user.first_name},",
        "",
        f"Your order {order.order_number} is now {order.status}.",
    ]
    if comment:
        lines += ["", comment]

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = user.email
    message["Subject"] = f"Order {order.order_number} status update"
    message.set_content("\n".join(lines))
    return message


def send_email(message: EmailMessage) -> bool:
    """Deliver over SMTP. Without SMTP_HOST configured the message is only logged."""
    if not settings.SMTP_HOST:
        logger.info(f"[MAIL] SMTP not configured, skipping '{message['Subject']}' -> {message['To']}")
        return False

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_PORT != 25:
            smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(message)

    logger.info(f"[MAIL] sent '{message['Subject']}' -> {message['To']}")
    return True
