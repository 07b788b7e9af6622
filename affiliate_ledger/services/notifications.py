"""
Conversion notifications to store admins.

Best-effort: a failed send is logged and never changes the settlement outcome.
"""
import logging
from typing import Optional

from ..core.config import settings
from ..core.email_sender import get_email_sender
from ..models.order import Order

logger = logging.getLogger(__name__)


def build_conversion_summary(order: Optional[Order], result) -> str:
    order_ref = (order.order_number if order and order.order_number else None) or result.order_id
    lines = [f"Order {order_ref} has been processed."]
    if order is not None:
        if order.customer_email:
            lines.append(f"Customer: {order.customer_email}")
        if order.source:
            lines.append(f"Channel: {order.source.upper()}")

    if result.commission_amount and result.commission_amount > 0:
        lines.append(
            f"Affiliate {result.affiliate_id} credited {result.commission_amount} "
            f"(attribution: {result.attribution_method})"
        )
    elif result.affiliate_id:
        lines.append(f"Affiliate {result.affiliate_id} referred this order, no commission was due")
    return "\n".join(lines)


def notify_order_conversion(order: Optional[Order], result) -> int:
    """Email the configured admins about a settled order. Returns the number of emails sent."""
    if not settings.NOTIFY_ON_CONVERSION:
        return 0
    recipients = settings.admin_emails
    if not recipients:
        logger.debug("ADMIN_EMAILS not set, skipping conversion notification")
        return 0

    subject = f"Order {result.order_id} processed"
    if result.commission_amount and result.commission_amount > 0:
        subject += " with affiliate commission"
    body = build_conversion_summary(order, result)

    sender = get_email_sender()
    sent = 0
    for to_email in recipients:
        try:
            if sender.send_email(to_email, subject, body):
                sent += 1
        except Exception as e:
            logger.error(f"Failed to send conversion notification to {to_email}: {e}")
    return sent
