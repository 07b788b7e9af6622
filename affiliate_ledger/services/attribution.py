"""
Attribution Resolver - decides which affiliate, if any, produced an order.

Precedence (first match wins):
  1. server   - the order carries a click id and that click exists
  2. cookie   - the order carries an affiliate code
  3. discount - the order carries a promotion discount code mapped to an affiliate

A match on an inactive affiliate means no attribution; it is not an error.
Resolution only reads, so it is safe to repeat.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..models.affiliate import Affiliate
from ..models.affiliate_click import AffiliateClick
from ..models.order import AttributionMethod
from .affiliate_directory import AffiliateDirectory
from .order_normalizer import CanonicalOrder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attribution:
    affiliate: Affiliate
    method: AttributionMethod
    click_id: Optional[str] = None

    @property
    def affiliate_code(self) -> str:
        return self.affiliate.affiliate_code


class AttributionResolver:

    @staticmethod
    def resolve(db: Session, order: CanonicalOrder) -> Optional[Attribution]:
        if order.click_id:
            click = db.query(AffiliateClick).filter(AffiliateClick.id == order.click_id).first()
            if click:
                affiliate = AffiliateDirectory.find_active_by_id(db, click.affiliate_id)
                if not affiliate:
                    logger.info(f"Click {click.id} belongs to inactive affiliate {click.affiliate_id}, no attribution")
                    return None
                return Attribution(affiliate=affiliate, method=AttributionMethod.SERVER, click_id=click.id)
            logger.warning(f"Order {order.order_id} references unknown click {order.click_id}, falling back to code")

        if order.affiliate_code:
            affiliate = AffiliateDirectory.find_active_by_code(db, order.affiliate_code)
            if not affiliate:
                logger.info(f"No active affiliate found for code: {order.affiliate_code}")
                return None
            return Attribution(affiliate=affiliate, method=AttributionMethod.COOKIE)

        if order.discount_code:
            affiliate = AffiliateDirectory.find_active_by_discount_code(db, order.discount_code)
            if affiliate:
                return Attribution(affiliate=affiliate, method=AttributionMethod.DISCOUNT)
            # Ordinary (non-affiliate) discount codes are the common case
            return None

        return None
