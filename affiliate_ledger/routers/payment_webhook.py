"""
Payment Webhook Router

Events arrive already verified by the edge. Recovery and settlement run
in-process through the same conversion path as the HTTP endpoints.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.orders import SettlementResponse
from ..schemas.webhooks import PaymentWebhookEvent, WebhookAck
from ..services.payment_recovery import PaymentRecoveryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


@router.post("/payments", response_model=WebhookAck, response_model_exclude_none=True)
def handle_payment_webhook(
    event: PaymentWebhookEvent,
    db: Session = Depends(get_db),
):
    """Handle a payment event and settle the recovered order"""
    logger.info(f"Payment webhook received: type={event.type} id={event.id}")
    outcome = PaymentRecoveryService.recover_order(db, event.model_dump())

    settlement = outcome.get("settlement")
    return WebhookAck(
        received=True,
        status=outcome["status"],
        reason=outcome.get("reason"),
        order_id=outcome.get("order_id"),
        settlement=SettlementResponse.from_result(settlement) if settlement else None,
    )
