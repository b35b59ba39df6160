# crafthub/checkout/routes.py
from . import bp
from ..schemas import CaptureOrderIn, CreateOrderIn
from ..services import checkout_service
from ..utils.api import ok, parse_body
from ..utils.decorators import current_user, login_required


@bp.post("")
@login_required
def checkout():
    """Cart -> purchases without a payment (free carts, or no gateway configured)."""
    result = checkout_service.checkout_without_payment(current_user())
    return ok("purchase completed", result)


@bp.post("/paypal/orders")
@login_required
def create_paypal_order():
    """
    Body: { "coupon_code": str | null }
    """
    body = parse_body(CreateOrderIn)
    result = checkout_service.create_order(current_user(), body.coupon_code)
    return ok("order created", result, status=201)


@bp.post("/paypal/capture")
@login_required
def capture_paypal_order():
    """
    Body: { "order_id": str }
    Safe to retry with the same order id.
    """
    body = parse_body(CaptureOrderIn)
    result = checkout_service.capture_order(current_user(), body.order_id)
    return ok("payment completed", result)
