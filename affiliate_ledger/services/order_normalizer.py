"""
Order normalization.

Orders reach the ledger in several shapes: checkout writes flat fields
(affiliateCode, affiliateClickId), payment recovery writes a nested
`affiliate` object ({"code", "clickId"}), and the commissionable amount may
be in subtotal, total or totalAmount. normalize_order() maps any accepted
shape, either an Order row or a raw mapping with camelCase or snake_case
keys, onto one CanonicalOrder. Nothing downstream looks at the raw fields.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from ..models.order import Order

# Commissionable base, in priority order
AMOUNT_FIELDS = (
    ("subtotal", "subtotal"),
    ("total", "total"),
    ("total_amount", "totalAmount"),
)

# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


@dataclass(frozen=True)
class CanonicalOrder:
    order_id: Optional[str]
    amount: Decimal
    affiliate_code: Optional[str] = None
    click_id: Optional[str] = None
    discount_code: Optional[str] = None
    payment_intent_id: Optional[str] = None
    conversion_processed: bool = False

    @property
    def has_affiliate_reference(self) -> bool:
        return bool(self.click_id or self.affiliate_code or self.discount_code)


def _get(data: Mapping[str, Any], snake: str, camel: str) -> Any:
    value = data.get(snake)
    if value is None:
        value = data.get(camel)
    return value


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a money amount, or None when it is missing or unusable.

    NaN, infinities and anything that does not fit a Numeric(12, 2) column
    are rejected so they never reach the commission calculation.
    """
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return None
    return amount


def order_to_mapping(order: Order) -> dict:
    return {
        "id": order.id,
        "subtotal": order.subtotal,
        "total": order.total,
        "total_amount": order.total_amount,
        "affiliate_code": order.affiliate_code,
        "affiliate_click_id": order.affiliate_click_id,
        "discount_code": order.discount_code,
        "affiliate": order.affiliate,
        "payment_intent_id": order.payment_intent_id,
        "conversion_processed": order.conversion_processed,
    }


def resolve_amount(data: Mapping[str, Any]) -> Decimal:
    """First present amount of subtotal, total, totalAmount; 0 when none is."""
    for snake, camel in AMOUNT_FIELDS:
        amount = parse_amount(_get(data, snake, camel))
        if amount is not None:
            return amount
    return Decimal("0")


def normalize_order(order: Union[Order, Mapping[str, Any]]) -> CanonicalOrder:
    data = order_to_mapping(order) if isinstance(order, Order) else order

    nested = data.get("affiliate") or {}
    if not isinstance(nested, Mapping):
        nested = {}

    affiliate_code = _clean(_get(data, "affiliate_code", "affiliateCode")) or _clean(nested.get("code"))
    click_id = (
        _clean(_get(data, "affiliate_click_id", "affiliateClickId"))
        or _clean(nested.get("clickId"))
        or _clean(nested.get("click_id"))
    )
    discount_code = _clean(_get(data, "discount_code", "discountCode"))
    if discount_code and discount_code == affiliate_code:
        # Same code used as referral and discount: it's a cookie/code attribution
        discount_code = None

    return CanonicalOrder(
        order_id=_clean(_get(data, "id", "orderId")),
        amount=resolve_amount(data),
        affiliate_code=affiliate_code,
        click_id=click_id,
        discount_code=discount_code,
        payment_intent_id=_clean(_get(data, "payment_intent_id", "paymentIntentId")),
        conversion_processed=bool(_get(data, "conversion_processed", "conversionProcessed")),
    )
