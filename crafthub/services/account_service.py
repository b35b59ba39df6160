# crafthub/services/account_service.py
import secrets
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import (
    AccountNotFoundError,
    AccountNotVerifiedError,
    AlreadyPurchasedError,
    AuthenticationError,
    DuplicateAccountError,
    InvalidVerificationCodeError,
    PaymentRequiredError,
    StateConflictError,
)
from ..extensions import db
from ..model import CartItem, Purchase, Template, User
from ..utils.dates import utcnow
from ..utils.money import D, round_money, sum_money


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_by_email(email: str) -> User | None:
    return User.query.filter_by(email=normalize_email(email)).first()


# ---- verification codes -----------------------------------------------------

def _issue_verification_code(user: User) -> str:
    code = f"{secrets.randbelow(900000) + 100000}"  # 6 digits
    ttl = current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 15)
    user.verification_code = code
    user.verification_code_expires = utcnow() + timedelta(minutes=ttl)
    return code


def _notify_code(user: User, code: str):
    notifier = current_app.extensions.get("verification_notifier")
    if notifier:
        notifier(user.email, code, user.username)
    current_app.logger.info("verification code issued for %s", user.email)
    current_app.logger.debug("verification code for %s: %s", user.email, code)


# ---- registration / login ---------------------------------------------------

def register(username: str, email: str, password: str) -> User:
    """Create an unverified account, or refresh a pending one."""
    email = normalize_email(email)
    username = (username or "").strip()

    taken = User.query.filter(func.lower(User.username) == username.lower()).first()
    user = find_by_email(email)

    if user and user.is_verified:
        raise DuplicateAccountError("user already exists")
    if taken and taken is not user:
        raise DuplicateAccountError("username already taken")

    if user is None:
        user = User(username=username, email=email, role="user", is_verified=False)
        db.session.add(user)
    else:
        user.username = username

    user.password_hash = generate_password_hash(password)
    code = _issue_verification_code(user)
    db.session.commit()
    _notify_code(user, code)
    return user


def verify_email(email: str, code: str) -> User:
    user = find_by_email(email)
    if not user:
        raise AccountNotFoundError("user not found")
    if user.is_verified:
        raise InvalidVerificationCodeError("email already verified")
    if not user.verification_code or not secrets.compare_digest(user.verification_code, code or ""):
        raise InvalidVerificationCodeError("incorrect verification code")
    if not user.verification_code_expires or user.verification_code_expires < utcnow():
        raise InvalidVerificationCodeError("verification code expired, request a new one")

    user.is_verified = True
    user.verification_code = None
    user.verification_code_expires = None
    db.session.commit()
    return user


def resend_code(email: str) -> User:
    user = find_by_email(email)
    if not user:
        raise AccountNotFoundError("user not found")
    if user.is_verified:
        raise InvalidVerificationCodeError("email already verified")
    code = _issue_verification_code(user)
    db.session.commit()
    _notify_code(user, code)
    return user


def authenticate(email: str, password: str) -> User:
    user = find_by_email(email)
    if not user or not check_password_hash(user.password_hash, password or ""):
        raise AuthenticationError("invalid email or password")
    if not user.is_verified:
        raise AccountNotVerifiedError("email not verified", requires_verification=True, email=user.email)
    return user


# ---- cart ---------------------------------------------------------------------

def get_cart(user: User):
    return list(user.cart_items)


def cart_subtotal(items) -> Decimal:
    return sum_money(i.price for i in items)


def add_to_cart(user: User, template_id: str, title: str = "", price=Decimal("0")) -> CartItem:
    if any(i.template_id == template_id for i in user.cart_items):
        raise StateConflictError("template already in cart")
    if user.has_purchased(template_id):
        raise AlreadyPurchasedError("template already purchased")

    # catalog entry, when present, is authoritative for title and price
    tpl = db.session.get(Template, template_id)
    if tpl:
        title, price = tpl.title, tpl.price

    item = CartItem(template_id=template_id, title=title or template_id, price=round_money(price))
    user.cart_items.append(item)
    db.session.commit()
    return item


def remove_from_cart(user: User, template_id: str):
    for item in list(user.cart_items):
        if item.template_id == template_id:
            user.cart_items.remove(item)
    db.session.commit()
    return list(user.cart_items)


# ---- purchases ----------------------------------------------------------------

def get_purchases(user: User):
    return list(user.purchases)


def claim_free_template(user: User, template_id: str, title: str = "") -> Purchase:
    if user.has_purchased(template_id):
        raise AlreadyPurchasedError("template already owned")
    tpl = db.session.get(Template, template_id)
    if tpl:
        if D(tpl.price) > 0:
            raise PaymentRequiredError("template is not free")
        title = tpl.title

    p = Purchase(
        user_id=user.id,
        template_id=template_id,
        title=title or template_id,
        price=Decimal("0.00"),
        purchase_date=utcnow(),
    )
    db.session.add(p)
    # a free claim also settles a cart line for the same template
    for item in list(user.cart_items):
        if item.template_id == template_id:
            user.cart_items.remove(item)
    db.session.commit()
    return p
