"""
Schemas for the pre-verified payment webhook
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from .orders import SettlementResponse


class PaymentWebhookEvent(BaseModel):
    id: Optional[str] = None
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    received: bool = True
    status: str
    reason: Optional[str] = None
    order_id: Optional[str] = Field(None, alias="orderId")
    settlement: Optional[SettlementResponse] = None

    class Config:
        populate_by_name = True
