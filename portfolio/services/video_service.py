"""
Videos live only in object storage, one folder per category:

    videos/<normalized-category>/<epoch-ms>.<ext>

There is no table for them; the bucket is listed every time.
"""

import re
import threading

from flask import current_app

from portfolio.errors import CategoryNotFoundError, StorageError
from portfolio.services.media_store import current_millis, file_extension


def normalize_category_folder(name):
    """'Wedding Films' -> 'wedding-films'"""
    return re.sub(r'\s+', '-', (name or '').strip().lower())


def folder_display_name(folder):
    """'wedding-films' -> 'Wedding Films'"""
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), folder.replace('-', ' '))


class VideoLibrary:
    """Upload, list and delete videos. Categories come from the media store."""

    def __init__(self, storage, store, videos_bucket='videos', clock=None):
        self.storage = storage
        self.store = store
        self.videos_bucket = videos_bucket
        self.clock = clock or current_millis
        self._last_stamp = 0
        self._lock = threading.Lock()

    def next_stamp(self):
        with self._lock:
            self._last_stamp = max(self.clock(), self._last_stamp + 1)
            return self._last_stamp

    def list_videos(self):
        """
        List every video in every category folder.

        Returns:
            list of dicts with 'id', 'name' (folder/file), 'public_url',
            'created_at' and 'category_name'
        """
        try:
            folders = self.storage.list(self.videos_bucket, '')
        except StorageError as e:
            current_app.logger.error(f"Error listing folders: {e}")
            return []

        videos = []
        for folder in folders:
            if not folder.get('is_folder') or not folder['name'] or folder['name'].startswith('.'):
                continue
            try:
                files = self.storage.list(self.videos_bucket, folder['name'])
            except StorageError as e:
                current_app.logger.error(f"Error listing videos in {folder['name']}: {e}")
                continue

            for entry in files:
                if entry.get('is_folder') or entry['name'].startswith('.'):
                    continue
                name = f"{folder['name']}/{entry['name']}"
                videos.append({
                    'id': entry['id'] or name,
                    'name': name,
                    'public_url': self.storage.get_public_url(self.videos_bucket, name),
                    'created_at': entry['created_at'],
                    'category_name': folder_display_name(folder['name']),
                })
        return videos

    def upload_video(self, category_id, file, on_progress=None):
        """
        Store a video under its category folder.

        Raises:
            CategoryNotFoundError, StorageError
        """
        category = next((c for c in self.store.get_categories() if c['id'] == category_id), None)
        if category is None:
            raise CategoryNotFoundError(category_id)

        folder = normalize_category_folder(category['name'])
        storage_path = f"{folder}/{self.next_stamp()}.{file_extension(file.filename)}"
        self.storage.upload(self.videos_bucket, storage_path, file, on_progress=on_progress)

        current_app.logger.info(f"Uploaded video {storage_path}")
        return {
            'id': storage_path,
            'name': storage_path,
            'public_url': self.storage.get_public_url(self.videos_bucket, storage_path),
            'created_at': None,
            'category_name': folder_display_name(folder),
        }

    def delete_video(self, name):
        """Delete a video by its 'folder/file' name. Returns False on storage failure."""
        try:
            self.storage.remove(self.videos_bucket, [name])
        except StorageError as e:
            current_app.logger.error(f"Error deleting video {name}: {e}")
            return False
        return True
