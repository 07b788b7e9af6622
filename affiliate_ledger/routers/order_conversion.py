"""
Order Conversion Router - commission settlement signals

Both endpoints are thin adapters over run_order_conversion().
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.orders import ConversionRequest, SettlementResponse
from ..services.errors import InvalidRequest
from ..services.order_conversion import ConversionState, SettlementResult, run_order_conversion
from .dependencies import order_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/orders", tags=["orders"])


def _settlement_response(result: SettlementResult) -> JSONResponse:
    body = SettlementResponse.from_result(result).model_dump(by_alias=True, exclude_none=True)
    status_code = 404 if result.state == ConversionState.NOT_FOUND else 200
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/conversion",
    response_model=SettlementResponse,
    dependencies=[Depends(order_rate_limit)],
)
def process_order_conversion_callable(
    req: ConversionRequest,
    db: Session = Depends(get_db),
):
    """Settle an order given {"orderId": ...}"""
    if not req.order_id:
        raise InvalidRequest("The function must be called with an \"orderId\" argument.")
    return _settlement_response(run_order_conversion(db, req.order_id))


@router.post(
    "/{order_id}/conversion",
    response_model=SettlementResponse,
    dependencies=[Depends(order_rate_limit)],
)
def process_order_conversion(
    order_id: str,
    db: Session = Depends(get_db),
):
    """Settle the affiliate commission for an order"""
    logger.info(f"Processing order conversion for order {order_id}")
    return _settlement_response(run_order_conversion(db, order_id))
