# crafthub/model/checkout.py
from ..extensions import db
from ..utils.dates import isoformat, utcnow
from ..utils.money import D

ORDER_CREATED = "created"
ORDER_CAPTURING = "capturing"
ORDER_CAPTURED = "captured"


class CheckoutOrder(db.Model):
    """Local record of one payment-gateway order, keyed by the gateway's id."""
    __tablename__ = "checkout_order"

    id = db.Column(db.Integer, primary_key=True)
    gateway_order_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=ORDER_CREATED, index=True)

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount_percent = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    coupon_code = db.Column(db.String(64), nullable=True)
    coupon_redeemed = db.Column(db.Boolean, nullable=False, default=False)

    cart_snapshot = db.Column(db.JSON, nullable=False, default=list)  # template ids at create time

    payer_email = db.Column(db.String(255), nullable=True)
    amount_captured = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    captured_at = db.Column(db.DateTime, nullable=True)

    def as_api(self):
        return {
            "order_id": self.gateway_order_id,
            "status": self.status,
            "subtotal": float(D(self.subtotal)),
            "discount_percent": self.discount_percent,
            "total": float(D(self.total)),
            "coupon_code": self.coupon_code,
            "coupon_redeemed": self.coupon_redeemed,
            "created_at": isoformat(self.created_at),
            "captured_at": isoformat(self.captured_at),
        }
