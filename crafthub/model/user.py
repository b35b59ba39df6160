# --- crafthub/model/user.py ---
from sqlalchemy.sql import func

from ..extensions import db
from ..utils.dates import isoformat
from ..utils.money import D


class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(16), nullable=False, default="user", index=True)  # roles: user, admin

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    verification_code = db.Column(db.String(6), nullable=True)
    verification_code_expires = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    cart_items = db.relationship(
        "CartItem",
        backref="user",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()",
    )
    purchases = db.relationship(
        "Purchase",
        backref="user",
        lazy="selectin",
        order_by="Purchase.id.asc()",
    )

    def has_purchased(self, template_id: str) -> bool:
        return any(p.template_id == template_id for p in self.purchases)

    def as_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_verified": self.is_verified,
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"
    __table_args__ = (
        db.UniqueConstraint("user_id", "template_id", name="uq_cart_item_user_template"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    template_id = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(255), nullable=False, default="")
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    added_at = db.Column(db.DateTime, server_default=func.now())

    def as_api(self):
        return {
            "template_id": self.template_id,
            "title": self.title,
            "price": float(D(self.price)),
            "added_at": isoformat(self.added_at),
        }


class Purchase(db.Model):
    """Immutable record of one acquired template."""
    __tablename__ = "purchase"
    __table_args__ = (
        db.UniqueConstraint("user_id", "template_id", name="uq_purchase_user_template"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    template_id = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(255), nullable=False, default="")
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    purchase_date = db.Column(db.DateTime, nullable=False)
    external_order_id = db.Column(db.String(64), nullable=True, index=True)  # gateway order id

    def as_api(self):
        return {
            "template_id": self.template_id,
            "title": self.title,
            "price": float(D(self.price)),
            "purchase_date": isoformat(self.purchase_date),
            "external_order_id": self.external_order_id,
        }
