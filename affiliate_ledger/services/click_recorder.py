"""
Click Recorder - persists referral-link visits.

The click row is the durable event; the affiliate's clicks counter is a
vanity metric bumped in a second statement, so a crash between the two can
only undercount clicks.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..models.affiliate import Affiliate
from ..models.affiliate_click import AffiliateClick
from .affiliate_directory import AffiliateDirectory
from .errors import AffiliateNotFound, InvalidRequest, UpstreamUnavailable

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# affiliate_clicks.ip_address is String(64)
MAX_IP_LENGTH = 64


class ClickRecorder:
    """Records affiliate clicks for active affiliates"""

    @staticmethod
    def record(
        db: Session,
        code: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        landing_page: Optional[str] = None,
    ) -> str:
        """
        Record a click for an active affiliate and return the click id.

        Raises:
            InvalidRequest: code is empty
            AffiliateNotFound: no active affiliate has this code
            UpstreamUnavailable: the database could not be reached
        """
        code = (code or "").strip()
        if not code:
            raise InvalidRequest("The request must include an affiliateCode.")

        try:
            affiliate = AffiliateDirectory.find_active_by_code(db, code)
            if not affiliate:
                raise AffiliateNotFound(code)

            click = AffiliateClick(
                affiliate_code=code,
                affiliate_id=affiliate.id,
                ip_address=(ip or UNKNOWN)[:MAX_IP_LENGTH],
                user_agent=user_agent or UNKNOWN,
                landing_page=landing_page or UNKNOWN,
                converted=False,
            )
            db.add(click)
            db.commit()
            click_id = click.id
        except OperationalError as e:
            db.rollback()
            logger.error(f"Database unavailable while logging click for {code}: {e}")
            raise UpstreamUnavailable(str(e)) from e

        try:
            db.execute(
                update(Affiliate)
                .where(Affiliate.id == affiliate.id)
                .values(clicks=Affiliate.clicks + 1)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except OperationalError as e:
            # Click is already stored; the counter is allowed to drift
            db.rollback()
            logger.warning(f"Failed to bump click counter for affiliate {affiliate.id}: {e}")

        logger.info(f"Click logged for affiliate {code}, clickId: {click_id}")
        return click_id
