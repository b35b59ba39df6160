# crafthub/services/checkout_service.py
"""Cart -> payment -> purchase records.

A PayPal checkout is two requests: ``create_order`` prices the cart and opens
a gateway order, ``capture_order`` settles it. Purchase records are written
only after the gateway reports COMPLETED, and always in the same transaction
that removes the paid rows from the cart.
"""
from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import (
    AuthorizationError,
    CartChangedError,
    CheckoutOrderNotFoundError,
    EmptyCartError,
    PaymentGatewayUnavailableError,
    PaymentIncompleteError,
    PaymentRequiredError,
    StateConflictError,
)
from ..extensions import db
from ..model import CheckoutOrder, Purchase, Template, User
from ..model.checkout import ORDER_CAPTURED, ORDER_CAPTURING, ORDER_CREATED
from ..utils.dates import utcnow
from ..utils.money import D, percent_of, round_money
from . import coupon_service
from .account_service import cart_subtotal
from .paypal import STATUS_COMPLETED, LineItem, get_gateway

MAX_DISCOUNT_PERCENT = 99           # never discount to a zero-value order
MIN_ORDER_TOTAL = Decimal("0.01")


def compute_order_total(subtotal, discount_percent: int = 0) -> Decimal:
    subtotal = round_money(subtotal)
    pct = max(0, min(int(discount_percent or 0), MAX_DISCOUNT_PERCENT))
    discount = percent_of(subtotal, pct)
    return max(round_money(subtotal - discount), MIN_ORDER_TOTAL)


def _commit_purchases(user: User, items, external_order_id: str | None = None):
    """Append purchase records for ``items`` and drop their cart rows. Caller commits.

    ``items`` only need ``template_id``, ``title`` and ``price``; cart rows for
    other templates stay in the cart.
    """
    owned = {p.template_id for p in user.purchases}
    now = utcnow()
    purchased = []
    for it in items:
        if it.template_id in owned:
            continue
        p = Purchase(
            user_id=user.id,
            template_id=it.template_id,
            title=it.title,
            price=round_money(it.price),
            purchase_date=now,
            external_order_id=external_order_id,
        )
        db.session.add(p)
        owned.add(it.template_id)
        purchased.append(p)
    settled = {it.template_id for it in items}
    for row in list(user.cart_items):
        if row.template_id in settled:
            user.cart_items.remove(row)
    return purchased


def _paid_items(user: User, order: CheckoutOrder) -> list:
    """What the order was priced on: cart rows for the snapshot ids, else the catalog entry."""
    in_cart = {i.template_id: i for i in user.cart_items}
    items = []
    for template_id in order.cart_snapshot or []:
        row = in_cart.get(template_id)
        if row is not None:
            items.append(LineItem(template_id=template_id, title=row.title, price=D(row.price)))
            continue
        tpl = db.session.get(Template, template_id)
        if tpl is None:
            current_app.logger.warning(
                "paid order %s: template %s left the cart and the catalog; not recorded",
                order.gateway_order_id, template_id)
            continue
        items.append(LineItem(template_id=tpl.id, title=tpl.title, price=D(tpl.price)))
    extra = sorted(set(in_cart) - set(order.cart_snapshot or []))
    if extra:
        current_app.logger.warning(
            "paid order %s: cart rows %s were added after pricing and stay in the cart",
            order.gateway_order_id, ", ".join(extra))
    return items


# ---- PayPal flow ----------------------------------------------------------------

def create_order(user: User, coupon_code: str | None = None) -> dict:
    items = list(user.cart_items)
    if not items:
        raise EmptyCartError("cart is empty")

    gateway = get_gateway()
    if not gateway.configured:
        raise PaymentGatewayUnavailableError("payment gateway is not configured")

    discount_percent = 0
    coupon = None
    if coupon_code:
        # validated now, redeemed only when the payment is captured
        coupon = coupon_service.validate(coupon_code)
        discount_percent = coupon.discount_percent

    subtotal = cart_subtotal(items)
    total = compute_order_total(subtotal, discount_percent)

    line_items = [LineItem(template_id=i.template_id, title=i.title, price=D(i.price)) for i in items]
    gw_order = gateway.create_order(line_items, total, reference_id=str(user.id))

    order = CheckoutOrder(
        gateway_order_id=gw_order.order_id,
        user_id=user.id,
        status=ORDER_CREATED,
        subtotal=subtotal,
        discount_percent=min(discount_percent, MAX_DISCOUNT_PERCENT),
        total=total,
        coupon_code=coupon.code if coupon else None,
        cart_snapshot=[i.template_id for i in items],
    )
    db.session.add(order)
    db.session.commit()
    current_app.logger.info("checkout order %s created for user %s total=%s", gw_order.order_id, user.id, total)

    return {
        "order_id": gw_order.order_id,
        "status": gw_order.status,
        "subtotal": float(subtotal),
        "discount_percent": order.discount_percent,
        "total": float(total),
    }


def _captured_result(order: CheckoutOrder) -> dict:
    purchased = (
        Purchase.query
        .filter_by(user_id=order.user_id, external_order_id=order.gateway_order_id)
        .order_by(Purchase.id.asc())
        .all()
    )
    return {
        "order_id": order.gateway_order_id,
        "purchased_items": [p.as_api() for p in purchased],
        "total": float(D(order.total)),
        "payer_email": order.payer_email,
        "coupon_redeemed": order.coupon_redeemed,
    }


def _set_status(order_id: int, expected: str, new: str) -> bool:
    stmt = (
        update(CheckoutOrder)
        .where(CheckoutOrder.id == order_id, CheckoutOrder.status == expected)
        .values(status=new)
        .execution_options(synchronize_session=False)
    )
    changed = db.session.execute(stmt).rowcount == 1
    db.session.commit()
    return changed


def _settle(order: CheckoutOrder, user: User, capture) -> None:
    """Record a COMPLETED payment in one transaction: purchases, cart rows, coupon, order state."""
    try:
        _commit_purchases(user, _paid_items(user, order), external_order_id=order.gateway_order_id)
        if order.coupon_code:
            coupon = coupon_service.find_by_code(order.coupon_code)
            order.coupon_redeemed = bool(coupon) and coupon_service.redeem(coupon.id)
            if not order.coupon_redeemed:
                current_app.logger.warning(
                    "coupon %s could not be redeemed for paid order %s", order.coupon_code, order.gateway_order_id)
        order.status = ORDER_CAPTURED
        order.captured_at = utcnow()
        order.payer_email = capture.payer_email
        order.amount_captured = capture.amount_captured
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "paid order %s could not be recorded; needs reconciliation", order.gateway_order_id)
        raise


def _get_order(gateway_order_id: str) -> CheckoutOrder:
    order = CheckoutOrder.query.filter_by(gateway_order_id=gateway_order_id).first()
    if not order:
        raise CheckoutOrderNotFoundError("checkout order not found")
    return order


def capture_order(user: User, gateway_order_id: str) -> dict:
    order = _get_order(gateway_order_id)
    if order.user_id != user.id:
        raise AuthorizationError("checkout order belongs to another account")

    if order.status == ORDER_CAPTURED:
        return _captured_result(order)

    items = list(user.cart_items)
    if [i.template_id for i in items] != list(order.cart_snapshot or []):
        raise CartChangedError("cart changed since the order was created; create a new order")

    if not _set_status(order.id, ORDER_CREATED, ORDER_CAPTURING):
        raise StateConflictError("capture already in progress for this order")

    try:
        capture = get_gateway().capture_order(gateway_order_id)
    except Exception:
        _set_status(order.id, ORDER_CAPTURING, ORDER_CREATED)
        raise

    if capture.status != STATUS_COMPLETED:
        _set_status(order.id, ORDER_CAPTURING, ORDER_CREATED)
        current_app.logger.warning("capture of %s returned status %s", gateway_order_id, capture.status)
        raise PaymentIncompleteError(capture.status)

    # only the snapshot items were charged; rows added meanwhile stay in the cart
    _settle(order, user, capture)
    current_app.logger.info("checkout order %s captured for user %s", gateway_order_id, user.id)
    return _captured_result(order)


def reconcile_order(gateway_order_id: str) -> CheckoutOrder:
    """Bring a local order in line with the gateway.

    Used for orders left in ``capturing`` (or ``created``) when the capture
    response or the local commit was lost. A COMPLETED gateway order is
    recorded as a capture; anything else releases the order for a new
    capture attempt.
    """
    order = _get_order(gateway_order_id)
    if order.status == ORDER_CAPTURED:
        return order

    remote = get_gateway().get_order(gateway_order_id)
    if remote.status != STATUS_COMPLETED:
        _set_status(order.id, ORDER_CAPTURING, ORDER_CREATED)
        current_app.logger.info("order %s is %s at the gateway; released", gateway_order_id, remote.status)
        return order

    user = db.session.get(User, order.user_id)
    _settle(order, user, remote)
    current_app.logger.info("order %s reconciled as captured for user %s", gateway_order_id, user.id)
    return order


# ---- no-payment path ----------------------------------------------------------

def checkout_without_payment(user: User) -> dict:
    items = list(user.cart_items)
    if not items:
        raise EmptyCartError("cart is empty")

    subtotal = cart_subtotal(items)
    if subtotal > 0 and get_gateway().configured:
        raise PaymentRequiredError("cart requires payment")

    purchased = _commit_purchases(user, items)
    db.session.commit()

    return {
        "purchased_items": [p.as_api() for p in purchased],
        "total": float(subtotal),
        "purchased_count": len(user.purchases),
    }
