# crafthub/schemas.py
"""Request bodies accepted by the API.

Routes validate incoming JSON against these models before anything reaches
the service layer.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class _Body(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# ---- auth -------------------------------------------------------------------

class RegisterIn(_Body):
    username: str = Field(..., min_length=3, max_length=80)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

class VerifyEmailIn(_Body):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)

class ResendCodeIn(_Body):
    email: EmailStr

class LoginIn(_Body):
    email: EmailStr
    password: str = Field(..., min_length=1)


# ---- cart -------------------------------------------------------------------

class CartItemIn(_Body):
    template_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field("", max_length=255)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)

class ClaimFreeIn(_Body):
    template_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field("", max_length=255)


# ---- checkout ---------------------------------------------------------------

class CreateOrderIn(_Body):
    coupon_code: Optional[str] = Field(None, max_length=64)

    @field_validator("coupon_code")
    @classmethod
    def _blank_is_none(cls, v):
        return v or None

class CaptureOrderIn(_Body):
    order_id: str = Field(..., min_length=1, max_length=64)


# ---- coupons ----------------------------------------------------------------

class CouponCodeIn(_Body):
    code: str = Field(..., min_length=1, max_length=64)

class CouponCreateIn(_Body):
    code: str = Field(..., min_length=1, max_length=64)
    discount_percent: int = Field(..., ge=1, le=100)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None


# ---- reviews ----------------------------------------------------------------

class ReviewIn(_Body):
    template_id: str = Field(..., min_length=1, max_length=64)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)

class BulkStatsIn(_Body):
    template_ids: List[str] = Field(..., max_length=200)


# ---- chat -------------------------------------------------------------------

class ChatMessageIn(_Body):
    message: str = Field(..., min_length=1, max_length=2000)
    session_id: Optional[str] = Field(None, max_length=64)

class ChatClearIn(_Body):
    session_id: str = Field(..., min_length=1, max_length=64)
