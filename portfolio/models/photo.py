import uuid
from datetime import datetime
from portfolio import db


class Photo(db.Model):
    """Portfolio photo. The image itself lives in object storage under storage_path."""
    __tablename__ = 'photos'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(200), nullable=True)
    storage_path = db.Column(db.String(500), unique=True, nullable=False)
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = db.relationship('Category', back_populates='photos')

    def to_dict(self, include_category=False):
        """Plain dict used by the media store cache. category_name is resolved at read time."""
        data = {
            'id': self.id,
            'title': self.title,
            'storage_path': self.storage_path,
            'category_id': self.category_id,
            'user_id': self.user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_category:
            data['category'] = {'name': self.category.name} if self.category else None
        return data

    def __repr__(self):
        return f'<Photo {self.id} path={self.storage_path}>'
