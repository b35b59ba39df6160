# crafthub/model/review.py
from ..extensions import db
from ..utils.dates import isoformat, utcnow


class Review(db.Model):
    __tablename__ = "review"
    __table_args__ = (
        # one review per user per template, enforced by the database
        db.UniqueConstraint("template_id", "user_id", name="uq_review_template_user"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating"),
        db.Index("ix_review_template_created", "template_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    username = db.Column(db.String(80), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.String(500), nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def as_api(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "user_id": self.user_id,
            "username": self.username,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
