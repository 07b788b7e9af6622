"""
AffiliateClick model - one row per referral-link visit.

The row is immutable apart from the single click -> converted transition,
which records the order and the commission it produced.
"""
from datetime import datetime
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey, Text, Index
from sqlalchemy.orm import relationship

from ..db import Base


def generate_uuid():
    return str(uuid.uuid4())


class AffiliateClick(Base):
    __tablename__ = "affiliate_clicks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    affiliate_code = Column(String(32), nullable=False)
    affiliate_id = Column(String(36), ForeignKey("affiliates.id"), nullable=False, index=True)
    clicked_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    ip_address = Column(String(64), nullable=False, default="unknown")
    user_agent = Column(Text, nullable=False, default="unknown")
    landing_page = Column(Text, nullable=False, default="unknown")

    # Set once, on conversion
    converted = Column(Boolean, nullable=False, default=False)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    commission_amount = Column(Numeric(12, 2), nullable=True)
    converted_at = Column(DateTime, nullable=True)

    affiliate = relationship("Affiliate", foreign_keys=[affiliate_id])

    __table_args__ = (
        # Heuristic reconciliation: most recent unconverted click for a code
        Index("ix_affiliate_clicks_code_converted_clicked", "affiliate_code", "converted", "clicked_at"),
    )
