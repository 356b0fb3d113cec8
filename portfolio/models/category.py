import uuid
from datetime import datetime
from portfolio import db


class Category(db.Model):
    """Portfolio category (Wedding, Portrait, ...). Pre-provisioned, read-only for the dashboard."""
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    photos = db.relationship('Photo', back_populates='category', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Category {self.name}>'
