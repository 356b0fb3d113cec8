"""
Dashboard batch jobs: multi-file uploads and bulk deletes.

Jobs run on a background thread so the dashboard can poll progress while
they work (or inline when RUN_BATCHES_INLINE is set, as in the tests).

Uploads in a batch run concurrently and finish in any order. Deletes run
one at a time in submission order. In both, one item failing never stops
the others; the tracker records the failure and the job moves on.

Cancelling a batch only clears its tracker. Work already started keeps
going and still updates the media store when it lands.
"""

import io
import threading
import uuid
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor

from flask import g
from werkzeug.datastructures import FileStorage

from portfolio.services.delete_progress import DeleteProgressTracker
from portfolio.services.upload_progress import UploadProgressTracker


class ProgressRegistry:
    """Trackers of recent batches by batch id. Only the newest ``max_batches`` are kept."""

    def __init__(self, max_batches=50):
        self.max_batches = max_batches
        self._lock = threading.Lock()
        self._batches = OrderedDict()

    def _add(self, tracker):
        batch_id = uuid.uuid4().hex
        with self._lock:
            self._batches[batch_id] = tracker
            while len(self._batches) > self.max_batches:
                self._batches.popitem(last=False)
        return batch_id, tracker

    def new_upload(self):
        return self._add(UploadProgressTracker())

    def new_delete(self):
        return self._add(DeleteProgressTracker())

    def get(self, batch_id, kind=None):
        with self._lock:
            tracker = self._batches.get(batch_id)
        if kind is not None and not isinstance(tracker, kind):
            return None
        return tracker


def detach_upload(file_storage):
    """Copy an uploaded file into memory so it outlives the request that received it."""
    data = file_storage.read()
    return FileStorage(
        stream=io.BytesIO(data),
        filename=file_storage.filename,
        content_type=file_storage.content_type,
        content_length=len(data),
    )


def start_batch(app, target, *args):
    """Run a batch job in a daemon thread, or right away when RUN_BATCHES_INLINE is set."""
    if app.config.get('RUN_BATCHES_INLINE'):
        return target(*args)
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return None


def run_upload_batch(app, tracker, category_id, files, item_ids, user_id, kind='photo'):
    """
    Upload every file of a batch concurrently.

    Args:
        app: Flask app (workers push their own app context)
        tracker: UploadProgressTracker already initialized with ``files``
        category_id: Target category for every file
        files: Detached FileStorage objects
        item_ids: Tracker ids, same order as ``files``
        user_id: Owner performing the upload (workers have no session)
        kind: 'photo' or 'video'

    Returns:
        dict with 'succeeded' and 'failed' counts
    """
    upload = app.extensions['upload_service']
    measured = app.config.get('UPLOAD_PROGRESS_MODE') == 'measured'

    if kind == 'photo':
        send = upload.upload_photo if measured else upload.upload_photo_with_simulated_progress
    else:
        send = upload.upload_video if measured else upload.upload_video_with_simulated_progress

    def upload_one(item_id, file):
        with app.app_context():
            g.user_id = user_id
            try:
                send(
                    category_id,
                    file,
                    on_progress=lambda progress: tracker.update_item_progress(item_id, progress),
                    on_complete=lambda: tracker.mark_item_completed(item_id),
                    on_error=lambda error: tracker.mark_item_error(item_id, error),
                )
            except Exception as e:
                app.logger.error(f"Upload of {file.filename} failed: {e}")
                return False
            return True

    workers = max(1, min(app.config.get('UPLOAD_WORKERS', 4), len(files) or 1))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(upload_one, item_ids, files))

    if kind == 'photo':
        with app.app_context():
            app.extensions['media_store'].fetch_photos()

    succeeded = sum(1 for ok in results if ok)
    app.logger.info(f"Upload batch finished: {succeeded} succeeded, {len(results) - succeeded} failed")
    tracker.schedule_reset(app.config.get('PROGRESS_RESET_SECONDS'))
    return {'succeeded': succeeded, 'failed': len(results) - succeeded}


def run_delete_batch(app, tracker, items):
    """
    Delete photos and videos one after another.

    Args:
        app: Flask app
        tracker: DeleteProgressTracker already initialized with ``items``
        items: dicts with 'id' and 'type'; a video's id is its 'folder/file' name

    Returns:
        dict with 'succeeded' and 'failed' counts
    """
    store = app.extensions['media_store']
    videos = app.extensions['video_library']
    succeeded = 0

    with app.app_context():
        for item in items:
            tracker.mark_item_deleting(item['id'])
            if item['type'] == 'photo':
                ok = store.delete_photo(item['id'])
            else:
                ok = videos.delete_video(item['id'])

            if ok:
                tracker.mark_item_completed(item['id'])
                succeeded += 1
            else:
                tracker.mark_item_error(item['id'], f"Failed to delete {item['type']}")

    app.logger.info(f"Delete batch finished: {succeeded} succeeded, {len(items) - succeeded} failed")
    tracker.schedule_reset(app.config.get('PROGRESS_RESET_SECONDS'))
    return {'succeeded': succeeded, 'failed': len(items) - succeeded}
