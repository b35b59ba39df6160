# crafthub/coupon/routes.py
from __future__ import annotations

from . import bp
from ..schemas import CouponCodeIn, CouponCreateIn
from ..services import coupon_service
from ..utils.api import ok, parse_body
from ..utils.decorators import current_user, login_required, role_required


# ---- any authenticated user ------------------------------------------------

@bp.post("/validate")
@login_required
def validate_coupon():
    body = parse_body(CouponCodeIn)
    c = coupon_service.validate(body.code)
    return ok(f"{c.discount_percent}% discount applied!", {
        "valid": True,
        "code": c.code,
        "discount_percent": c.discount_percent,
    })


@bp.post("/apply")
@login_required
def apply_coupon():
    body = parse_body(CouponCodeIn)
    c = coupon_service.apply(body.code)
    return ok("coupon applied", {"success": True, "discount_percent": c.discount_percent})


# ---- admin -------------------------------------------------------------------

@bp.get("")
@role_required("admin")
def list_coupons():
    items = coupon_service.list_coupons()
    return ok("coupons", {"coupons": [c.as_api() for c in items]})


@bp.post("")
@role_required("admin")
def create_coupon():
    body = parse_body(CouponCreateIn)
    c = coupon_service.create_coupon(
        body.code,
        body.discount_percent,
        max_uses=body.max_uses,
        expires_at=body.expires_at,
        created_by=current_user().id,
    )
    return ok("coupon created", {"coupon": c.as_api()}, status=201)


@bp.patch("/<int:coupon_id>/toggle")
@role_required("admin")
def toggle_coupon(coupon_id: int):
    c = coupon_service.toggle_active(coupon_id)
    return ok("coupon updated", {"coupon": c.as_api()})


@bp.delete("/<int:coupon_id>")
@role_required("admin")
def delete_coupon(coupon_id: int):
    coupon_service.delete_coupon(coupon_id)
    return ok("coupon deleted")
