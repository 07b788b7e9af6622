"""
Schemas for order conversion (commission settlement)
"""
from pydantic import BaseModel, Field
from typing import Optional


class ConversionRequest(BaseModel):
    """Callable-style settlement request: {"orderId": "..."}"""
    order_id: Optional[str] = Field(None, alias="orderId")

    class Config:
        populate_by_name = True


class SettlementResponse(BaseModel):
    success: bool
    state: str
    message: str
    order_id: Optional[str] = Field(None, alias="orderId")
    commission_amount: Optional[float] = Field(None, alias="commissionAmount")
    affiliate_id: Optional[str] = Field(None, alias="affiliateId")
    attribution_method: Optional[str] = Field(None, alias="attributionMethod")
    click_reconciled: Optional[bool] = Field(None, alias="clickReconciled")

    class Config:
        populate_by_name = True

    @classmethod
    def from_result(cls, result) -> "SettlementResponse":
        return cls(
            success=result.success,
            state=result.state.value,
            message=result.message,
            order_id=result.order_id,
            commission_amount=float(result.commission_amount) if result.commission_amount is not None else None,
            affiliate_id=result.affiliate_id,
            attribution_method=result.attribution_method,
            click_reconciled=result.click_reconciled,
        )
