"""
Payment webhook order recovery.

A successful payment can reach us before (or instead of) the checkout's own
order write. For pre-verified `payment_intent.succeeded` events coming from
the B2C shop, make sure an order exists for the payment intent, then settle
it through the regular conversion path. Redelivered events reuse the
existing order and the ledger's idempotency makes re-settlement a no-op.
"""
import logging
import random
import string
import time
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.order import Order
from .errors import InvalidRequest
from .order_conversion import run_order_conversion
from .order_normalizer import parse_amount

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
SHOP_SOURCE = "b2c_shop"
RECOVERED_SOURCE = "b2c_webhook"


def _metadata_amount(metadata: Mapping[str, Any], key: str) -> Optional[Decimal]:
    value = metadata.get(key)
    amount = parse_amount(value)
    if amount is None and value not in (None, ""):
        logger.warning(f"Ignoring unusable amount in metadata {key}={value!r}")
    return amount


def generate_order_number() -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{str(int(time.time() * 1000))[-6:]}-{suffix}"


class PaymentRecoveryService:

    @staticmethod
    def recover_order(db: Session, event: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Ensure an order exists for a succeeded payment and settle it.

        Returns a dict with `status` one of skipped / existing / created,
        the order id and the settlement result when one ran.

        Raises:
            InvalidRequest: the event lacks a payment intent id or customer email
        """
        event_type = event.get("type")
        payment_intent = (event.get("data") or {}).get("object") or {}
        metadata = payment_intent.get("metadata") or {}

        if event_type != PAYMENT_SUCCEEDED:
            logger.info(f"Ignoring webhook event type {event_type}")
            return {"status": "skipped", "reason": "unhandled_event"}

        if metadata.get("source") != SHOP_SOURCE:
            logger.info(f"Skipping non-B2C payment intent {payment_intent.get('id')}")
            return {"status": "skipped", "reason": "not_b2c"}

        payment_intent_id = payment_intent.get("id")
        if not payment_intent_id:
            raise InvalidRequest("Payment event has no payment intent id")

        order = db.query(Order).filter(Order.payment_intent_id == payment_intent_id).first()
        status = "existing"

        if order:
            logger.info(f"Order {order.id} already exists for payment intent {payment_intent_id}")
        else:
            if not metadata.get("customerEmail"):
                raise InvalidRequest("Insufficient metadata: customerEmail is required")
            order, created = PaymentRecoveryService._create_order(db, payment_intent_id, metadata, event.get("id"))
            if created:
                status = "created"

        settlement = run_order_conversion(db, order.id)
        return {
            "status": status,
            "order_id": order.id,
            "settlement": settlement,
        }

    @staticmethod
    def _create_order(
        db: Session,
        payment_intent_id: str,
        metadata: Mapping[str, Any],
        event_id: Optional[str],
    ) -> Tuple[Order, bool]:
        affiliate_code = (metadata.get("affiliateCode") or "").strip() or None
        affiliate = None
        if affiliate_code:
            affiliate = {
                "code": affiliate_code,
                "clickId": metadata.get("affiliateClickId") or "",
                "discountPercentage": str(_metadata_amount(metadata, "discountPercentage") or 0),
            }

        order = Order(
            order_number=generate_order_number(),
            status="confirmed",
            source=RECOVERED_SOURCE,
            subtotal=_metadata_amount(metadata, "subtotal"),
            total=_metadata_amount(metadata, "total"),
            shipping=_metadata_amount(metadata, "shipping"),
            discount_amount=_metadata_amount(metadata, "discountAmount"),
            discount_code=(metadata.get("discountCode") or "").strip() or None,
            affiliate=affiliate,
            payment_intent_id=payment_intent_id,
            customer_email=metadata.get("customerEmail"),
        )
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent delivery of the same event created it first
            db.rollback()
            existing = db.query(Order).filter(Order.payment_intent_id == payment_intent_id).first()
            if existing is None:
                raise
            return existing, False

        db.refresh(order)
        logger.info(
            f"Order {order.id} ({order.order_number}) created from payment webhook {event_id}, "
            f"payment intent {payment_intent_id}, affiliate: {affiliate_code or 'none'}"
        )
        return order, True
