"""
Media store - the application's cache of photos and categories.

One store is built per Flask app (see create_app) and shared by every
request. Reads are served from memory; mutations go to the database and
object storage first and only touch the cache once they succeed.

Subscribers are zero-argument callables. Every mutating call broadcasts
once, synchronously, in registration order.
"""

import threading
import time
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from portfolio import db
from portfolio.errors import AuthenticationError, CategoryNotFoundError, StorageError
from portfolio.models import Category, Photo

PLACEHOLDER_URL = '/static/placeholder.svg'
UNKNOWN_CATEGORY = 'Unknown'


def current_millis():
    return int(time.time() * 1000)


def file_extension(filename):
    """Extension of an uploaded file name, lowercased, without the dot."""
    filename = filename or ''
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    return ext or 'bin'


def clean_title(title):
    """Blank titles are stored as NULL, never as an empty string."""
    if title is None:
        return None
    title = str(title).strip()
    return title or None


class MediaStore:
    """Cache of photos and categories with change notification."""

    def __init__(self, storage, get_user, photos_bucket='photos', clock=None):
        self.storage = storage
        self.get_user = get_user
        self.photos_bucket = photos_bucket
        self.clock = clock or current_millis
        self._photos = []
        self._categories = []
        self._subscribers = []
        self._category_subscribers = []
        self._photos_loaded = False
        self._categories_loaded = False
        self._last_stamp = 0
        self._lock = threading.RLock()

    # ============== SUBSCRIPTIONS ==============

    def subscribe(self, callback):
        """Register a photo-change callback. Returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                self._subscribers = [sub for sub in self._subscribers if sub != callback]
        return unsubscribe

    def subscribe_to_categories(self, callback):
        """Register a category-change callback. Returns a function that unregisters it."""
        with self._lock:
            self._category_subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                self._category_subscribers = [sub for sub in self._category_subscribers if sub != callback]
        return unsubscribe

    def _notify_subscribers(self):
        with self._lock:
            callbacks = list(self._subscribers)
        for callback in callbacks:
            callback()

    def _notify_category_subscribers(self):
        with self._lock:
            callbacks = list(self._category_subscribers)
        for callback in callbacks:
            callback()

    # ============== READS ==============

    def get_photos(self):
        """Cached photos, newest first, each with category_name resolved from the category cache."""
        with self._lock:
            names = {category['id']: category['name'] for category in self._categories}
            return [
                dict(photo, category_name=names.get(photo['category_id']) or UNKNOWN_CATEGORY)
                for photo in self._photos
            ]

    def get_categories(self):
        with self._lock:
            return [dict(category) for category in self._categories]

    def get_photo(self, photo_id):
        for photo in self.get_photos():
            if photo['id'] == photo_id:
                return photo
        return None

    def get_public_photo_url(self, storage_path):
        if not storage_path:
            return PLACEHOLDER_URL
        return self.storage.get_public_url(self.photos_bucket, storage_path) or PLACEHOLDER_URL

    def next_stamp(self):
        """Epoch milliseconds for a new storage path, strictly increasing across threads."""
        with self._lock:
            self._last_stamp = max(self.clock(), self._last_stamp + 1)
            return self._last_stamp

    def _find_category(self, category_id):
        with self._lock:
            return next((c for c in self._categories if c['id'] == category_id), None)

    def _find_photo(self, photo_id):
        with self._lock:
            return next((p for p in self._photos if p['id'] == photo_id), None)

    # ============== FETCHES ==============

    def ensure_loaded(self):
        """Fetch whichever collection has never been loaded successfully."""
        if not self._categories_loaded:
            self.fetch_categories()
        if not self._photos_loaded:
            self.fetch_photos()

    def fetch_categories(self):
        """Reload all categories (name ascending). A failed load leaves the list empty."""
        try:
            categories = [c.to_dict() for c in Category.query.order_by(Category.name.asc()).all()]
            loaded = True
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error fetching categories: {e}")
            categories = []
            loaded = False

        with self._lock:
            self._categories = categories
            self._categories_loaded = loaded
        self._notify_category_subscribers()

    def fetch_photos(self):
        """Reload all photos (newest first), joining their category when possible."""
        try:
            rows = Photo.query.options(joinedload(Photo.category)).order_by(Photo.created_at.desc()).all()
            photos = [p.to_dict(include_category=True) for p in rows]
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning(f"Joined photo fetch failed, retrying without categories: {e}")
            try:
                photos = [p.to_dict() for p in Photo.query.order_by(Photo.created_at.desc()).all()]
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.error(f"Error fetching photos: {e}")
                return

        with self._lock:
            self._photos = photos
            self._photos_loaded = True
        self._notify_subscribers()

    # ============== MUTATIONS ==============

    def add_photo(self, category_id, file, title=None, on_progress=None):
        """
        Upload a photo and record its metadata.

        The object is stored first; if the metadata insert then fails the
        object is removed again and the database error is re-raised.

        Args:
            category_id: Id of a cached category
            file: Werkzeug FileStorage (needs .filename and a readable stream)
            title: Optional display title
            on_progress: Optional callable receiving upload percentage

        Returns:
            The new photo dict (also prepended to the cache)

        Raises:
            AuthenticationError, CategoryNotFoundError, StorageError, SQLAlchemyError
        """
        user = self.get_user()
        if not user:
            current_app.logger.error("Error getting user: no authenticated owner")
            raise AuthenticationError("User not authenticated.")

        category = self._find_category(category_id)
        if category is None:
            current_app.logger.error(f"Cannot add photo, unknown category {category_id}")
            raise CategoryNotFoundError(category_id)

        storage_path = f"{category['name']}/{self.next_stamp()}.{file_extension(file.filename)}"

        try:
            self.storage.upload(self.photos_bucket, storage_path, file, on_progress=on_progress)
        except StorageError as e:
            current_app.logger.error(f"Error uploading file: {e}")
            raise

        photo = Photo(
            title=clean_title(title),
            storage_path=storage_path,
            category_id=category_id,
            user_id=user.id
        )
        try:
            db.session.add(photo)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error inserting photo metadata: {e}")
            try:
                self.storage.remove(self.photos_bucket, [storage_path])
            except StorageError as cleanup_error:
                current_app.logger.error(f"Failed to remove orphaned upload {storage_path}: {cleanup_error}")
            raise

        data = photo.to_dict()
        with self._lock:
            self._photos.insert(0, data)
        self._notify_subscribers()
        return data

    def delete_photo(self, photo_id):
        """
        Delete a photo's object and metadata row.

        A storage failure is logged and ignored (an orphaned object is
        acceptable, an orphaned row is not).

        Returns:
            True if the row was deleted, False otherwise
        """
        photo = self._find_photo(photo_id)
        if photo is None:
            current_app.logger.warning(f"Photo with ID {photo_id} not found.")
            return False

        try:
            self.storage.remove(self.photos_bucket, [photo['storage_path']])
        except StorageError as e:
            current_app.logger.error(f"Error deleting file from storage: {e}")

        try:
            Photo.query.filter_by(id=photo_id).delete()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error deleting photo metadata: {e}")
            return False

        with self._lock:
            self._photos = [p for p in self._photos if p['id'] != photo_id]
        self._notify_subscribers()
        return True

    def update_photo_title(self, photo_id, title):
        if self._find_photo(photo_id) is None:
            current_app.logger.warning(f"Photo with ID {photo_id} not found.")
            return False
        return self._update_photo(photo_id, {'title': clean_title(title)})

    def update_photo_category(self, photo_id, category_id):
        if self._find_photo(photo_id) is None:
            current_app.logger.warning(f"Photo with ID {photo_id} not found.")
            return False
        if self._find_category(category_id) is None:
            current_app.logger.warning(f"Category with ID {category_id} not found.")
            return False
        return self._update_photo(photo_id, {'category_id': category_id})

    def _update_photo(self, photo_id, changes):
        """Partial update of one row, then patch the cached entry in place."""
        now = datetime.utcnow()
        try:
            updated = Photo.query.filter_by(id=photo_id).update(dict(changes, updated_at=now))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating photo {photo_id}: {e}")
            return False

        if not updated:
            current_app.logger.warning(f"Photo {photo_id} no longer exists in the database.")
            return False

        with self._lock:
            for photo in self._photos:
                if photo['id'] == photo_id:
                    photo.update(changes)
                    photo['updated_at'] = now.isoformat()
                    photo.pop('category', None)
                    break
        self._notify_subscribers()
        return True
