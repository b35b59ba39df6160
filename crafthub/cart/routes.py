# crafthub/cart/routes.py
from . import bp
from ..schemas import CartItemIn, ClaimFreeIn
from ..services import account_service
from ..utils.api import ok, parse_body
from ..utils.decorators import current_user, login_required
from ..utils.money import D


def _cart_payload(items):
    return {
        "cart": [i.as_api() for i in items],
        "subtotal": float(account_service.cart_subtotal(items)),
    }


@bp.get("")
@login_required
def get_cart():
    return ok("cart", _cart_payload(account_service.get_cart(current_user())))


@bp.post("")
@login_required
def add_item():
    """
    Body: { "template_id": str, "title": str, "price": number }
    Catalog title/price win over the body when the template is known.
    """
    body = parse_body(CartItemIn)
    user = current_user()
    account_service.add_to_cart(user, body.template_id, body.title, D(body.price))
    return ok("item added", _cart_payload(account_service.get_cart(user)), status=201)


@bp.delete("/<template_id>")
@login_required
def remove_item(template_id: str):
    items = account_service.remove_from_cart(current_user(), template_id)
    return ok("item removed", _cart_payload(items))


@bp.get("/purchases")
@login_required
def purchases():
    items = account_service.get_purchases(current_user())
    return ok("purchases", {"purchases": [p.as_api() for p in items]})


@bp.post("/claim-free")
@login_required
def claim_free():
    body = parse_body(ClaimFreeIn)
    user = current_user()
    p = account_service.claim_free_template(user, body.template_id, body.title)
    return ok("template claimed", {
        "purchase": p.as_api(),
        "purchased_count": len(user.purchases),
    })
