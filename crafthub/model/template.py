# crafthub/model/template.py
from ..extensions import db
from sqlalchemy.sql import func
from ..utils.money import D

class Template(db.Model):
    """Local mirror of the template catalog."""
    __tablename__ = "template"

    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": float(D(self.price)),
        }
