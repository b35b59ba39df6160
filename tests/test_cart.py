from decimal import Decimal

import pytest

from conftest import add_cart, add_purchase, auth_header, make_template, make_user
from crafthub.errors import AlreadyPurchasedError, PaymentRequiredError, StateConflictError
from crafthub.extensions import db
from crafthub.services import account_service


def test_add_to_cart_uses_catalog_price(ctx):
    make_template("t1", "Portfolio", price="19.99")
    user = make_user()

    item = account_service.add_to_cart(user, "t1", "whatever", Decimal("0.01"))

    assert item.title == "Portfolio"
    assert item.price == Decimal("19.99")


def test_add_to_cart_unknown_template_keeps_given_price(ctx):
    user = make_user()
    item = account_service.add_to_cart(user, "ext-1", "", Decimal("5.005"))
    assert item.title == "ext-1"
    assert item.price == Decimal("5.01")


def test_add_same_template_twice(ctx):
    user = make_user()
    account_service.add_to_cart(user, "t1", "A", Decimal("1"))
    with pytest.raises(StateConflictError):
        account_service.add_to_cart(user, "t1", "A", Decimal("1"))


def test_add_owned_template(ctx):
    user = make_user()
    add_purchase(user, "t1")
    with pytest.raises(AlreadyPurchasedError):
        account_service.add_to_cart(user, "t1", "A", Decimal("1"))


def test_remove_from_cart(ctx):
    user = make_user()
    add_cart(user, ("t1", 10), ("t2", 20))
    remaining = account_service.remove_from_cart(user, "t1")
    assert [i.template_id for i in remaining] == ["t2"]
    # removing something absent is a no-op
    assert len(account_service.remove_from_cart(user, "zzz")) == 1


def test_cart_subtotal(ctx):
    user = make_user()
    add_cart(user, ("t1", "10.10"), ("t2", "0.20"))
    assert account_service.cart_subtotal(user.cart_items) == Decimal("10.30")
    assert account_service.cart_subtotal([]) == Decimal("0.00")


def test_claim_free_template(ctx):
    make_template("free", "Starter", price="0")
    user = make_user()
    add_cart(user, ("free", 0))

    p = account_service.claim_free_template(user, "free")

    assert p.title == "Starter"
    assert p.price == Decimal("0.00")
    db.session.expire_all()
    assert user.cart_items == []
    assert user.has_purchased("free")


def test_claim_paid_template_refused(ctx):
    make_template("paid", "Pro", price="9.00")
    user = make_user()
    with pytest.raises(PaymentRequiredError):
        account_service.claim_free_template(user, "paid")
    assert user.purchases == []


def test_claim_twice_refused(ctx):
    user = make_user()
    account_service.claim_free_template(user, "gift", "Gift")
    db.session.expire_all()
    with pytest.raises(AlreadyPurchasedError):
        account_service.claim_free_template(user, "gift", "Gift")


# ---- http ---------------------------------------------------------------------

def test_cart_routes(ctx, client):
    make_template("t1", "Landing", price="12.00")
    user = make_user()
    headers = auth_header(user)

    r = client.post("/api/cart", json={"template_id": "t1", "title": "x", "price": 1}, headers=headers)
    assert r.status_code == 201
    assert r.get_json()["data"]["subtotal"] == 12.0

    r = client.post("/api/cart", json={"template_id": "t2", "title": "Blog", "price": 3.5}, headers=headers)
    assert [i["template_id"] for i in r.get_json()["data"]["cart"]] == ["t1", "t2"]

    r = client.post("/api/cart", json={"template_id": "t1"}, headers=headers)
    assert r.status_code == 409

    r = client.delete("/api/cart/t2", headers=headers)
    assert r.get_json()["data"]["subtotal"] == 12.0

    r = client.get("/api/cart", headers=headers)
    assert len(r.get_json()["data"]["cart"]) == 1


def test_cart_rejects_negative_price(ctx, client):
    r = client.post("/api/cart", json={"template_id": "t1", "price": -1}, headers=auth_header(make_user()))
    assert r.status_code == 422


def test_claim_free_route_and_purchases(ctx, client):
    user = make_user()
    headers = auth_header(user)

    r = client.post("/api/cart/claim-free", json={"template_id": "gift", "title": "Gift"}, headers=headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["purchased_count"] == 1

    r = client.get("/api/cart/purchases", headers=headers)
    assert [p["template_id"] for p in r.get_json()["data"]["purchases"]] == ["gift"]


def test_free_checkout_route(ctx, client, gateway):
    user = make_user()
    add_cart(user, ("f1", 0))
    r = client.post("/api/checkout", headers=auth_header(user))
    assert r.status_code == 200
    assert r.get_json()["data"]["purchased_count"] == 1
    assert gateway.created == []
