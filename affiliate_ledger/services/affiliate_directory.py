"""
Affiliate Directory - lookup and administration of affiliates.

Lookups used by click recording and attribution only ever return active
affiliates: a referral link can stay live after its affiliate has been
suspended, and orders through it must earn nothing.
"""
import logging
import random
import re
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.affiliate import Affiliate, AffiliateStatus
from .errors import InvalidRequest

logger = logging.getLogger(__name__)

CODE_PREFIX_MAX_LEN = 8
MAX_CODE_ATTEMPTS = 20


class AffiliateDirectory:
    """Read access to affiliates by public code, id or promotion code"""

    @staticmethod
    def find_active_by_code(db: Session, code: Optional[str]) -> Optional[Affiliate]:
        if not code:
            return None
        return db.query(Affiliate).filter(
            Affiliate.affiliate_code == code,
            Affiliate.status == AffiliateStatus.ACTIVE.value,
        ).first()

    @staticmethod
    def find_active_by_id(db: Session, affiliate_id: Optional[str]) -> Optional[Affiliate]:
        if not affiliate_id:
            return None
        return db.query(Affiliate).filter(
            Affiliate.id == affiliate_id,
            Affiliate.status == AffiliateStatus.ACTIVE.value,
        ).first()

    @staticmethod
    def find_active_by_discount_code(db: Session, discount_code: Optional[str]) -> Optional[Affiliate]:
        if not discount_code:
            return None
        return db.query(Affiliate).filter(
            Affiliate.discount_code == discount_code,
            Affiliate.status == AffiliateStatus.ACTIVE.value,
        ).first()

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @staticmethod
    def generate_affiliate_code(db: Session, name: str) -> str:
        """
        Generate a unique public code: first-name letters + 3 digits.
        Example: "Erik Svensson" -> ERIK-482
        """
        first = (name or "").split(" ")[0].upper()
        prefix = re.sub(r"[^A-Z]", "", first)[:CODE_PREFIX_MAX_LEN] or "AFF"

        for _ in range(MAX_CODE_ATTEMPTS):
            code = f"{prefix}-{random.randint(100, 999)}"
            exists = db.query(Affiliate.id).filter(Affiliate.affiliate_code == code).first()
            if not exists:
                return code
        raise InvalidRequest(f"Could not generate a unique affiliate code for prefix {prefix}")

    @staticmethod
    def create_affiliate(
        db: Session,
        name: str,
        email: Optional[str] = None,
        *,
        affiliate_code: Optional[str] = None,
        discount_code: Optional[str] = None,
        commission_rate: Optional[Decimal] = None,
        checkout_discount: Optional[Decimal] = None,
        status: AffiliateStatus = AffiliateStatus.ACTIVE,
    ) -> Affiliate:
        """Create an affiliate with zeroed stats"""
        if not name:
            raise InvalidRequest("Affiliate name is required")

        affiliate = Affiliate(
            name=name,
            email=email,
            affiliate_code=affiliate_code or AffiliateDirectory.generate_affiliate_code(db, name),
            discount_code=discount_code,
            status=status.value,
            commission_rate=commission_rate if commission_rate is not None else settings.DEFAULT_COMMISSION_RATE,
            checkout_discount=checkout_discount if checkout_discount is not None else settings.DEFAULT_CHECKOUT_DISCOUNT,
            clicks=0,
            conversions=0,
            total_earnings=Decimal("0"),
            balance=Decimal("0"),
        )
        db.add(affiliate)
        db.commit()
        db.refresh(affiliate)
        logger.info(f"Created affiliate {affiliate.id} with code {affiliate.affiliate_code}")
        return affiliate

    @staticmethod
    def set_status(db: Session, affiliate_id: str, status: AffiliateStatus) -> Optional[Affiliate]:
        """Activate, suspend or park an affiliate. Stats are left untouched."""
        affiliate = db.query(Affiliate).filter(Affiliate.id == affiliate_id).first()
        if not affiliate:
            return None
        affiliate.status = status.value
        db.commit()
        db.refresh(affiliate)
        logger.info(f"Affiliate {affiliate_id} status set to {status.value}")
        return affiliate
