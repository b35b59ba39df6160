# crafthub/services/coupon_service.py
from datetime import datetime

from flask import current_app
from sqlalchemy import or_, update

from ..errors import (
    CouponInvalidError,
    CouponNotFoundError,
    DuplicateCouponError,
    ValidationError,
)
from ..extensions import db
from ..model import Coupon
from ..utils.dates import to_naive_utc, utcnow


def normalize_code(code: str | None) -> str:
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("coupon code is required")
    return code


def is_valid(coupon: Coupon, now: datetime) -> bool:
    """Pure check of the coupon's own state at ``now``."""
    if not coupon.is_active:
        return False
    if coupon.expires_at and now > coupon.expires_at:
        return False
    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        return False
    return True


def find_by_code(code: str) -> Coupon | None:
    return Coupon.query.filter_by(code=normalize_code(code)).first()


def validate(code: str, now: datetime | None = None) -> Coupon:
    coupon = find_by_code(code)
    if not coupon:
        raise CouponNotFoundError("coupon not found", valid=False)
    if not is_valid(coupon, now or utcnow()):
        raise CouponInvalidError("coupon expired, inactive or exhausted", valid=False)
    return coupon


def redeem(coupon_id: int, now: datetime | None = None) -> bool:
    """Conditionally increment ``current_uses`` by one.

    The validity rules are repeated in the WHERE clause so concurrent
    redemptions can never push ``current_uses`` past ``max_uses``. Does not
    commit; returns False when no row qualified.
    """
    now = now or utcnow()
    stmt = (
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            Coupon.is_active.is_(True),
            or_(Coupon.expires_at.is_(None), Coupon.expires_at >= now),
            or_(Coupon.max_uses.is_(None), Coupon.current_uses < Coupon.max_uses),
        )
        .values(current_uses=Coupon.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def apply(code: str, now: datetime | None = None) -> Coupon:
    now = now or utcnow()
    coupon = validate(code, now)
    if not redeem(coupon.id, now):
        db.session.rollback()
        raise CouponInvalidError("coupon expired, inactive or exhausted", valid=False)
    db.session.commit()
    db.session.refresh(coupon)
    current_app.logger.info("coupon %s applied (%s/%s uses)", coupon.code, coupon.current_uses, coupon.max_uses)
    return coupon


# ---- admin ------------------------------------------------------------------

def list_coupons():
    return Coupon.query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def create_coupon(code: str, discount_percent: int, max_uses: int | None = None,
                  expires_at: datetime | None = None, created_by: int | None = None) -> Coupon:
    code = normalize_code(code)
    if not 1 <= int(discount_percent) <= 100:
        raise ValidationError("discount_percent must be between 1 and 100")
    if max_uses is not None and max_uses < 1:
        raise ValidationError("max_uses must be >= 1")
    if Coupon.query.filter_by(code=code).first():
        raise DuplicateCouponError("coupon code already exists")

    c = Coupon(
        code=code,
        discount_percent=int(discount_percent),
        max_uses=max_uses,
        current_uses=0,
        expires_at=to_naive_utc(expires_at),
        is_active=True,
        created_by=created_by,
    )
    db.session.add(c)
    db.session.commit()
    current_app.logger.info("coupon %s created (%s%%)", c.code, c.discount_percent)
    return c


def _get_or_404(coupon_id: int) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise CouponNotFoundError("coupon not found")
    return c


def toggle_active(coupon_id: int) -> Coupon:
    c = _get_or_404(coupon_id)
    c.is_active = not c.is_active
    db.session.commit()
    return c


def delete_coupon(coupon_id: int) -> None:
    c = _get_or_404(coupon_id)
    db.session.delete(c)
    db.session.commit()
