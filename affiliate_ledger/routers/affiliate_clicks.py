"""
Affiliate Clicks Router - referral-link visit logging
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.affiliates import ClickRequest, ClickResponse
from ..services.click_recorder import ClickRecorder
from .dependencies import click_rate_limit, get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/affiliates", tags=["affiliates"])


@router.post(
    "/clicks",
    response_model=ClickResponse,
    status_code=201,
    dependencies=[Depends(click_rate_limit)],
)
def log_affiliate_click(
    req: ClickRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Record a click on an affiliate referral link"""
    code = (req.affiliate_code or "").strip()
    click_id = ClickRecorder.record(
        db,
        code,
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        landing_page=req.landing_page or request.headers.get("referer"),
    )
    return ClickResponse(
        success=True,
        click_id=click_id,
        message=f"Click logged for affiliate {code}",
    )
