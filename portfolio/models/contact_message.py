from datetime import datetime
from portfolio import db


class ContactMessage(db.Model):
    """Track every contact form submission and whether it was emailed."""
    __tablename__ = 'contact_messages'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    session_type = db.Column(db.String(50), nullable=True)  # wedding, portrait, event, ...
    message = db.Column(db.Text, nullable=False)

    # Brevo tracking
    brevo_message_id = db.Column(db.String(100), nullable=True)

    # Status tracking
    status = db.Column(db.String(20), default='pending')  # pending, sent, failed, dry_run
    error_message = db.Column(db.Text, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ContactMessage from {self.email} status={self.status}>'
