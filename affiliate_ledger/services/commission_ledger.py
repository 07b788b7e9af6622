"""
Commission Ledger - exactly-once commission credit per order.

settle() runs one transaction that:
  1. Claims the order: UPDATE orders ... WHERE id = :id AND conversion_processed = false.
     Zero rows means a previous settlement won; nothing else is touched.
  2. Credits the affiliate: a single UPDATE that bumps conversions,
     total_earnings and balance together on the row-locked active affiliate.

Both statements commit together or not at all, so a webhook retry racing a
client call can never credit the same order twice, and no reader can see
conversions move without earnings/balance moving with it.

Click reconciliation runs after the commit and is best-effort: it is
reporting enrichment, not ledger truth.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.affiliate import Affiliate, AffiliateStatus
from ..models.affiliate_click import AffiliateClick
from ..models.order import Order, AttributionMethod
from ..utils.log import log_ledger_event
from .errors import (
    AffiliateLedgerError,
    AlreadySettled,
    OrderNotFound,
    ReconciliationFailure,
    TransactionConflict,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

_CONNECTION_ERROR_MARKERS = (
    "could not connect",
    "connection refused",
    "server closed the connection",
    "unable to open database",
    "timeout expired",
)


@dataclass(frozen=True)
class LedgerEntry:
    order_id: str
    affiliate_id: str
    commission_amount: Decimal
    attribution_method: Optional[str]
    settled_at: datetime
    click_id: Optional[str] = None
    click_reconciled: Optional[bool] = None


def _method_value(method) -> Optional[str]:
    if method is None:
        return None
    return method.value if isinstance(method, AttributionMethod) else str(method)


def _translate_db_error(e: SQLAlchemyError, order_id: str):
    """Map a driver error to UpstreamUnavailable (store unreachable) or TransactionConflict."""
    message = str(e).lower()
    if getattr(e, "connection_invalidated", False) or any(m in message for m in _CONNECTION_ERROR_MARKERS):
        return UpstreamUnavailable(f"Database unavailable while settling order {order_id}")
    return TransactionConflict(f"Settlement transaction failed for order {order_id}: {e.__class__.__name__}")


class CommissionLedger:
    """Applies commissions to affiliate stats with exactly-once semantics per order"""

    @staticmethod
    def settle(
        db: Session,
        order_id: str,
        affiliate_id: str,
        commission_amount: Decimal,
        attribution_method: Optional[AttributionMethod] = None,
        *,
        click_id: Optional[str] = None,
        affiliate_code: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Credit commission_amount to the affiliate for this order, once.

        Raises:
            AlreadySettled: the order was settled before (carries the prior outcome)
            TransactionConflict: the atomic update lost a race or the transaction failed
            UpstreamUnavailable: the database could not be reached
        """
        now = datetime.utcnow()
        method = _method_value(attribution_method)

        try:
            claimed = CommissionLedger._claim_order(db, order_id, affiliate_id, commission_amount, method, now)
            if claimed == 0:
                db.rollback()
                raise CommissionLedger._already_settled(db, order_id)

            # Lock the affiliate row for the read-modify-write (no-op on SQLite)
            db.query(Affiliate.id).filter(Affiliate.id == affiliate_id).with_for_update().first()

            result = db.execute(
                update(Affiliate)
                .where(
                    Affiliate.id == affiliate_id,
                    Affiliate.status == AffiliateStatus.ACTIVE.value,
                )
                .values(
                    conversions=Affiliate.conversions + 1,
                    total_earnings=Affiliate.total_earnings + commission_amount,
                    balance=Affiliate.balance + commission_amount,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Affiliate vanished or was suspended mid-flight; release the claim too
                db.rollback()
                raise TransactionConflict(
                    f"Affiliate {affiliate_id} not active during settlement of order {order_id}"
                )

            db.commit()
        except (AlreadySettled, TransactionConflict, OrderNotFound):
            raise
        except (DBAPIError, SQLAlchemyError) as e:
            db.rollback()
            log_ledger_event(logger, "settle", order_id, affiliate_id, False, {"error": str(e)})
            raise _translate_db_error(e, order_id) from e

        log_ledger_event(logger, "settle", order_id, affiliate_id, True, {
            "commission": commission_amount,
            "method": method,
        })

        click_reconciled: Optional[bool] = None
        if click_id or affiliate_code:
            try:
                matched = CommissionLedger.reconcile_click(
                    db, order_id, commission_amount, click_id=click_id, affiliate_code=affiliate_code, now=now
                )
                click_reconciled = matched is not None
            except ReconciliationFailure as e:
                click_reconciled = False
                logger.error(f"Click reconciliation failed for order {order_id} (commission kept): {e}")

        return LedgerEntry(
            order_id=order_id,
            affiliate_id=affiliate_id,
            commission_amount=commission_amount,
            attribution_method=method,
            settled_at=now,
            click_id=click_id,
            click_reconciled=click_reconciled,
        )

    @staticmethod
    def settle_zero(
        db: Session,
        order_id: str,
        affiliate_id: str,
        attribution_method: Optional[AttributionMethod] = None,
    ) -> LedgerEntry:
        """
        Mark the order processed with a zero commission. Stats are not touched.

        Raises:
            AlreadySettled, TransactionConflict, UpstreamUnavailable
        """
        now = datetime.utcnow()
        method = _method_value(attribution_method)
        try:
            claimed = CommissionLedger._claim_order(db, order_id, affiliate_id, ZERO, method, now)
            if claimed == 0:
                db.rollback()
                raise CommissionLedger._already_settled(db, order_id)
            db.commit()
        except (AlreadySettled, OrderNotFound):
            raise
        except (DBAPIError, SQLAlchemyError) as e:
            db.rollback()
            raise _translate_db_error(e, order_id) from e

        log_ledger_event(logger, "settle_zero", order_id, affiliate_id, True, {"method": method})
        return LedgerEntry(
            order_id=order_id,
            affiliate_id=affiliate_id,
            commission_amount=ZERO,
            attribution_method=method,
            settled_at=now,
        )

    @staticmethod
    def reconcile_click(
        db: Session,
        order_id: str,
        commission_amount: Decimal,
        *,
        click_id: Optional[str] = None,
        affiliate_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Mark the click that produced this order as converted.

        With a click id that click is used; with only a code, the most recent
        unconverted click for the code inside the lookback window is assumed.
        Concurrent code-only orders can pick each other's click; that is a
        data-quality issue, never a billing one.

        Returns the converted click id, or None when nothing matched.
        Raises ReconciliationFailure on database errors.
        """
        now = now or datetime.utcnow()
        try:
            target_id = click_id
            if not target_id and affiliate_code:
                cutoff = now - timedelta(days=settings.CLICK_RECONCILIATION_LOOKBACK_DAYS)
                row = db.query(AffiliateClick.id).filter(
                    AffiliateClick.affiliate_code == affiliate_code,
                    AffiliateClick.converted.is_(False),
                    AffiliateClick.clicked_at >= cutoff,
                ).order_by(AffiliateClick.clicked_at.desc()).first()
                target_id = row.id if row else None

            if not target_id:
                logger.info(f"No unconverted clicks found for affiliate code {affiliate_code}")
                return None

            result = db.execute(
                update(AffiliateClick)
                .where(
                    AffiliateClick.id == target_id,
                    AffiliateClick.converted.is_(False),
                )
                .values(
                    converted=True,
                    order_id=order_id,
                    commission_amount=commission_amount,
                    converted_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ReconciliationFailure(f"Could not mark click for order {order_id}: {e}") from e

        if result.rowcount != 1:
            logger.info(f"Click {target_id} already converted, leaving it as is")
            return None

        logger.info(f"Click {target_id} marked as converted for order {order_id}")
        return target_id

    @staticmethod
    def _claim_order(
        db: Session,
        order_id: str,
        affiliate_id: str,
        commission_amount: Decimal,
        method: Optional[str],
        now: datetime,
    ) -> int:
        result = db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.conversion_processed.is_(False),
            )
            .values(
                affiliate_commission=commission_amount,
                affiliate_id=affiliate_id,
                conversion_processed=True,
                conversion_processed_at=now,
                attribution_method=method,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def _already_settled(db: Session, order_id: str) -> AffiliateLedgerError:
        order = db.query(Order).filter(Order.id == order_id).first()
        if order is None:
            return OrderNotFound(order_id)
        log_ledger_event(logger, "already_settled", order_id, order.affiliate_id, True)
        return AlreadySettled(
            order_id,
            commission_amount=order.affiliate_commission,
            affiliate_id=order.affiliate_id,
            attribution_method=order.attribution_method,
        )
