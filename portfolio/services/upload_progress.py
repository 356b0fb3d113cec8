"""Progress of a multi-file upload batch."""

from portfolio.services.media_store import current_millis
from portfolio.services.progress import BatchTracker, PENDING, COMPLETED, TERMINAL_STATUSES

UPLOADING = 'uploading'


class UploadProgressTracker(BatchTracker):
    """
    Tracks each file of an upload batch and the batch's aggregate progress.

    total_progress is the plain mean of every item's progress (not weighted
    by file size), so it stays low until every file has reported.
    """

    def __init__(self, clock=None):
        self.clock = clock or current_millis
        super().__init__()

    def _clear(self):
        super()._clear()
        self._total_progress = 0.0

    def _recompute(self):
        super()._recompute()
        if self._items:
            self._total_progress = sum(item['progress'] for item in self._items) / len(self._items)
        else:
            self._total_progress = 0.0

    def initialize_upload(self, files):
        """
        Start a batch with one pending item per file.

        Returns:
            Item ids in file order, so callers can route callbacks per file
        """
        stamp = self.clock()
        items = [{
            'id': f"{stamp}-{index}",
            'file_name': getattr(file, 'filename', None) or str(file),
            'progress': 0.0,
            'status': PENDING,
            'error': None,
        } for index, file in enumerate(files)]
        ids = self._start(items)
        with self._lock:
            self._total_progress = 0.0
        return ids

    def update_item_progress(self, item_id, progress):
        """Record progress (0-100) for an item. Progress never goes backwards."""
        with self._lock:
            item = self._get(item_id)
            if item is None or item['status'] in TERMINAL_STATUSES:
                return False
            progress = min(100.0, max(0.0, float(progress)))
            item['status'] = UPLOADING
            item['progress'] = max(item['progress'], progress)
            self._recompute()
            return True

    def mark_item_completed(self, item_id):
        return self._transition(item_id, COMPLETED, progress=100.0)

    def reset_upload(self):
        self.reset()

    @property
    def total_progress(self):
        with self._lock:
            return self._total_progress

    def state(self):
        with self._lock:
            state = self._base_state()
            state['total_progress'] = self._total_progress
            state['is_uploading'] = self._in_flight
            return state
