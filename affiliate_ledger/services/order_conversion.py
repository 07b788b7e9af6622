"""
Order Conversion - the single entry point that settles an order's affiliate commission.

    received -> attributed | no_attribution
             -> commission_computed
             -> settled | zero_commission_settled
             -> done

Terminal states are done, not_found and already_settled. There is no retry
state: a caller that gets a failure re-invokes process() and the ledger's
claim on the order makes that safe.

Every adapter (HTTP endpoint, callable-style endpoint, payment webhook) goes
through run_order_conversion(); none of them carry settlement logic.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..models.order import AttributionMethod, Order
from ..utils.log import log_ledger_event
from .attribution import AttributionResolver
from .commission import compute_commission
from .commission_ledger import CommissionLedger
from .errors import AlreadySettled, InvalidRequest, UpstreamUnavailable
from .notifications import notify_order_conversion
from .order_normalizer import normalize_order

logger = logging.getLogger(__name__)


class ConversionState(str, Enum):
    RECEIVED = "received"
    ATTRIBUTED = "attributed"
    NO_ATTRIBUTION = "no_attribution"
    COMMISSION_COMPUTED = "commission_computed"
    SETTLED = "settled"
    ZERO_COMMISSION_SETTLED = "zero_commission_settled"
    DONE = "done"
    NOT_FOUND = "not_found"
    ALREADY_SETTLED = "already_settled"


@dataclass
class SettlementResult:
    success: bool
    state: ConversionState
    message: str
    order_id: Optional[str] = None
    commission_amount: Optional[Decimal] = None
    affiliate_id: Optional[str] = None
    attribution_method: Optional[str] = None
    click_reconciled: Optional[bool] = None
    history: List[ConversionState] = field(default_factory=list)

    @property
    def ledger_written(self) -> bool:
        """True when this call (not an earlier one) marked the order processed"""
        return (
            self.state == ConversionState.DONE
            and (
                ConversionState.SETTLED in self.history
                or ConversionState.ZERO_COMMISSION_SETTLED in self.history
            )
        )


class OrderConversionService:
    """Composes attribution, commission calculation and the ledger for one order"""

    @staticmethod
    def process(db: Session, order_id: str) -> SettlementResult:
        """
        Settle the affiliate commission for an order.

        Returns a SettlementResult for every business outcome (including
        not_found and already_settled). TransactionConflict and
        UpstreamUnavailable propagate to the caller.
        """
        order_id = (order_id or "").strip() if isinstance(order_id, str) else order_id
        if not order_id:
            raise InvalidRequest("The request must include an orderId.")

        history = [ConversionState.RECEIVED]

        try:
            order = db.query(Order).filter(Order.id == order_id).first()
        except OperationalError as e:
            db.rollback()
            raise UpstreamUnavailable(f"Database unavailable while loading order {order_id}") from e

        if not order:
            logger.warning(f"Order {order_id} not found")
            history.append(ConversionState.NOT_FOUND)
            return SettlementResult(
                success=False,
                state=ConversionState.NOT_FOUND,
                message=f"Order {order_id} not found",
                order_id=order_id,
                history=history,
            )

        canonical = normalize_order(order)

        if canonical.conversion_processed:
            return OrderConversionService._already_settled_result(
                AlreadySettled(
                    order_id,
                    commission_amount=order.affiliate_commission,
                    affiliate_id=order.affiliate_id,
                    attribution_method=order.attribution_method,
                ),
                history,
            )

        attribution = AttributionResolver.resolve(db, canonical)
        if attribution is None:
            history.extend([ConversionState.NO_ATTRIBUTION, ConversionState.DONE])
            if canonical.has_affiliate_reference:
                message = f"Order {order_id} processed (invalid affiliate)"
            else:
                message = f"Order {order_id} processed (no affiliate)"
            log_ledger_event(logger, "no_attribution", order_id, None, True)
            return SettlementResult(
                success=True,
                state=ConversionState.DONE,
                message=message,
                order_id=order_id,
                history=history,
            )

        affiliate = attribution.affiliate
        history.append(ConversionState.ATTRIBUTED)

        # Rate is read now, not at click time
        commission_amount = compute_commission(canonical.amount, affiliate.commission_rate)
        history.append(ConversionState.COMMISSION_COMPUTED)
        logger.info(
            f"Commission calculation for order {order_id}: "
            f"{canonical.amount} * {affiliate.commission_rate}% = {commission_amount}"
        )

        try:
            if commission_amount <= 0:
                entry = CommissionLedger.settle_zero(db, order_id, affiliate.id, attribution.method)
                history.extend([ConversionState.ZERO_COMMISSION_SETTLED, ConversionState.DONE])
                return SettlementResult(
                    success=True,
                    state=ConversionState.DONE,
                    message=f"Order {order_id} processed, but no commission (amount: {commission_amount})",
                    order_id=order_id,
                    commission_amount=entry.commission_amount,
                    affiliate_id=entry.affiliate_id,
                    attribution_method=entry.attribution_method,
                    history=history,
                )

            entry = CommissionLedger.settle(
                db,
                order_id,
                affiliate.id,
                commission_amount,
                attribution.method,
                click_id=attribution.click_id,
                # Only a referral-code order came through some click of that code
                affiliate_code=(
                    attribution.affiliate_code if attribution.method == AttributionMethod.COOKIE else None
                ),
            )
        except AlreadySettled as e:
            # Lost the claim to a concurrent settlement of the same order
            return OrderConversionService._already_settled_result(e, history)

        history.extend([ConversionState.SETTLED, ConversionState.DONE])
        return SettlementResult(
            success=True,
            state=ConversionState.DONE,
            message=f"Processed order {order_id}",
            order_id=order_id,
            commission_amount=entry.commission_amount,
            affiliate_id=entry.affiliate_id,
            attribution_method=entry.attribution_method,
            click_reconciled=entry.click_reconciled,
            history=history,
        )

    @staticmethod
    def _already_settled_result(e: AlreadySettled, history: List[ConversionState]) -> SettlementResult:
        history.append(ConversionState.ALREADY_SETTLED)
        logger.info(f"Order {e.order_id} already processed, returning prior result")
        return SettlementResult(
            success=True,
            state=ConversionState.ALREADY_SETTLED,
            message=f"Order {e.order_id} already processed",
            order_id=e.order_id,
            commission_amount=e.commission_amount,
            affiliate_id=e.affiliate_id,
            attribution_method=e.attribution_method,
            history=history,
        )


def run_order_conversion(db: Session, order_id: str) -> SettlementResult:
    """
    Settle an order and send the conversion notification.

    Shared by every settlement adapter. Notification runs only when this call
    wrote the ledger and never changes the result.
    """
    result = OrderConversionService.process(db, order_id)

    if result.ledger_written:
        order = db.query(Order).filter(Order.id == result.order_id).first()
        notify_order_conversion(order, result)

    return result
