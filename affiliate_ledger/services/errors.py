"""
Affiliate ledger error taxonomy.

Routers map these to HTTP statuses in exception_handlers.py; the
orchestrator converts the settlement-path ones into SettlementResult values.
"""
from decimal import Decimal
from typing import Optional


class AffiliateLedgerError(Exception):
    """Base class for affiliate ledger errors"""
    pass


class InvalidRequest(AffiliateLedgerError):
    """Missing or malformed input (empty affiliate code, missing order id)"""
    pass


class NotFound(AffiliateLedgerError):
    pass


class OrderNotFound(NotFound):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class AffiliateNotFound(NotFound):
    def __init__(self, code: str):
        super().__init__(f"No active affiliate found for code: {code}")
        self.code = code


class AlreadySettled(AffiliateLedgerError):
    """The order already has a successful settlement; carries the prior outcome."""

    def __init__(
        self,
        order_id: str,
        commission_amount: Optional[Decimal] = None,
        affiliate_id: Optional[str] = None,
        attribution_method: Optional[str] = None,
    ):
        super().__init__(f"Order {order_id} already settled")
        self.order_id = order_id
        self.commission_amount = commission_amount
        self.affiliate_id = affiliate_id
        self.attribution_method = attribution_method


class TransactionConflict(AffiliateLedgerError):
    """The atomic affiliate-stats update lost a race or its transaction failed"""
    pass


class ReconciliationFailure(AffiliateLedgerError):
    """Click matching failed after the ledger commit. Never rolled back."""
    pass


class UpstreamUnavailable(AffiliateLedgerError):
    """The database could not be reached"""
    pass
