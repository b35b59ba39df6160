# --- crafthub/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func
from ..utils.dates import isoformat

class Coupon(db.Model):
    __tablename__ = "coupon"
    __table_args__ = (
        db.CheckConstraint("discount_percent >= 1 AND discount_percent <= 100", name="ck_coupon_percent"),
        db.CheckConstraint("max_uses IS NULL OR current_uses <= max_uses", name="ck_coupon_uses"),
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored uppercased

    discount_percent = db.Column(db.Integer, nullable=False)
    max_uses = db.Column(db.Integer, nullable=True)        # None = unlimited
    current_uses = db.Column(db.Integer, nullable=False, default=0)
    expires_at = db.Column(db.DateTime, nullable=True)     # naive UTC, None = never
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "discount_percent": self.discount_percent,
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
            "expires_at": isoformat(self.expires_at),
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }
