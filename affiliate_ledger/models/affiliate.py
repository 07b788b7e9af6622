"""Affiliate model with aggregate commission stats"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint, Index

from ..db import Base


def generate_uuid():
    return str(uuid.uuid4())


class AffiliateStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class AffiliateStats:
    clicks: int
    conversions: int
    total_earnings: Decimal
    balance: Decimal


class Affiliate(Base):
    """
    An affiliate earning referral commission.

    The stats columns (clicks, conversions, total_earnings, balance) are the
    durable record of what has been paid out. conversions, total_earnings and
    balance are only ever changed together, in one UPDATE statement.
    """
    __tablename__ = "affiliates"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # Public referral code, e.g. ERIK-482
    affiliate_code = Column(String(32), nullable=False, unique=True, index=True)
    # Promotional discount code mapped to this affiliate (discount attribution)
    discount_code = Column(String(64), nullable=True, unique=True)

    status = Column(String(20), nullable=False, default=AffiliateStatus.PENDING.value)
    commission_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("15"))  # percent
    checkout_discount = Column(Numeric(5, 2), nullable=False, default=Decimal("10"))  # percent

    # Stats
    clicks = Column(Integer, nullable=False, default=0)
    conversions = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("clicks >= 0", name="ck_affiliate_clicks_non_negative"),
        CheckConstraint("conversions >= 0", name="ck_affiliate_conversions_non_negative"),
        Index("ix_affiliates_code_status", "affiliate_code", "status"),
    )

    @property
    def stats(self) -> AffiliateStats:
        return AffiliateStats(
            clicks=self.clicks or 0,
            conversions=self.conversions or 0,
            total_earnings=Decimal(self.total_earnings or 0),
            balance=Decimal(self.balance or 0),
        )
