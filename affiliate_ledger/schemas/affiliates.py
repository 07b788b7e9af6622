"""
Schemas for affiliate click logging
"""
from pydantic import BaseModel, Field
from typing import Optional


class ClickRequest(BaseModel):
    """Click-logging request from storefront page-view instrumentation"""
    affiliate_code: Optional[str] = Field(None, alias="affiliateCode")
    landing_page: Optional[str] = Field(None, alias="landingPage")

    class Config:
        populate_by_name = True


class ClickResponse(BaseModel):
    success: bool = True
    click_id: str = Field(..., alias="clickId")
    message: str

    class Config:
        populate_by_name = True
