"""
Order model.

Orders are created by checkout and by payment-webhook recovery. Their shape
is not uniform: the amount may live in subtotal, total or total_amount, and
the affiliate reference may be flat (affiliate_code / affiliate_click_id) or
nested in the `affiliate` JSON blob ({"code", "clickId", ...}). Use
services.order_normalizer to read them.

Only the conversion columns at the bottom are written by the ledger.
"""
from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Numeric, JSON, Index

from ..db import Base


def generate_uuid():
    return str(uuid.uuid4())


class AttributionMethod(str, Enum):
    SERVER = "server"      # click id captured server-side at click time
    COOKIE = "cookie"      # referral cookie read at checkout
    DISCOUNT = "discount"  # affiliate promotion discount code


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_number = Column(String(64), nullable=True, index=True)
    status = Column(String(32), nullable=False, default="pending")
    source = Column(String(16), nullable=False, default="b2c")  # b2b, b2c

    # Amounts (any of the three may carry the commissionable base)
    subtotal = Column(Numeric(12, 2), nullable=True)
    total = Column(Numeric(12, 2), nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=True)
    shipping = Column(Numeric(12, 2), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=True)

    # Affiliate reference supplied by checkout
    affiliate_code = Column(String(32), nullable=True, index=True)
    affiliate_click_id = Column(String(36), nullable=True)
    discount_code = Column(String(64), nullable=True)
    affiliate = Column(JSON, nullable=True)

    # Upstream payment reference (unique per payment)
    payment_intent_id = Column(String(255), nullable=True, unique=True)
    customer_email = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    # Written by the commission ledger
    affiliate_commission = Column(Numeric(12, 2), nullable=True)
    affiliate_id = Column(String(36), nullable=True, index=True)
    conversion_processed = Column(Boolean, nullable=False, default=False)
    conversion_processed_at = Column(DateTime, nullable=True)
    attribution_method = Column(String(16), nullable=True)

    __table_args__ = (
        Index("ix_orders_affiliate_code_processed", "affiliate_code", "conversion_processed"),
    )
