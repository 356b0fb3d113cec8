# Import all models here so they're registered with SQLAlchemy
from portfolio.models.user import User
from portfolio.models.category import Category
from portfolio.models.photo import Photo
from portfolio.models.contact_message import ContactMessage

__all__ = ['User', 'Category', 'Photo', 'ContactMessage']
