"""
Models package
"""
from .affiliate import Affiliate, AffiliateStats, AffiliateStatus
from .affiliate_click import AffiliateClick
from .order import Order, AttributionMethod

__all__ = [
    "Affiliate",
    "AffiliateStats",
    "AffiliateStatus",
    "AffiliateClick",
    "Order",
    "AttributionMethod",
]
