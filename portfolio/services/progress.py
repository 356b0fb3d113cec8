"""Shared bookkeeping for upload and delete batches."""

import threading

PENDING = 'pending'
COMPLETED = 'completed'
ERROR = 'error'
TERMINAL_STATUSES = (COMPLETED, ERROR)


class BatchTracker:
    """
    Per-batch item state machine.

    Items only move forward: pending -> active -> completed/error. Updates
    for unknown ids or for items that already finished are ignored. Counts
    are recomputed from the whole item list on every transition, so the
    final state does not depend on the order items finish in.

    Safe to update from worker threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_timer = None
        self._clear()

    def _clear(self):
        self._items = []
        self._in_flight = False
        self._completed_count = 0
        self._error_count = 0

    def _start(self, items):
        with self._lock:
            self._cancel_timer()
            self._items = items
            self._in_flight = bool(items)
            self._completed_count = 0
            self._error_count = 0
        return [item['id'] for item in items]

    def _get(self, item_id):
        return next((item for item in self._items if item['id'] == item_id), None)

    def _recompute(self):
        self._completed_count = sum(1 for item in self._items if item['status'] == COMPLETED)
        self._error_count = sum(1 for item in self._items if item['status'] == ERROR)
        self._in_flight = self._completed_count + self._error_count < len(self._items)

    def _transition(self, item_id, status, **changes):
        """Apply a transition unless the item is unknown or already finished."""
        with self._lock:
            item = self._get(item_id)
            if item is None or item['status'] in TERMINAL_STATUSES:
                return False
            item['status'] = status
            item.update(changes)
            self._recompute()
            return True

    def mark_item_completed(self, item_id):
        return self._transition(item_id, COMPLETED)

    def mark_item_error(self, item_id, message):
        return self._transition(item_id, ERROR, error=str(message))

    def reset(self):
        with self._lock:
            self._cancel_timer()
            self._clear()

    def schedule_reset(self, delay):
        """Clear the batch after ``delay`` seconds (the progress panel fades out)."""
        if delay is None or delay < 0:
            return
        with self._lock:
            self._cancel_timer()
            self._reset_timer = threading.Timer(delay, self.reset)
            self._reset_timer.daemon = True
            self._reset_timer.start()

    def _cancel_timer(self):
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

    @property
    def is_empty(self):
        with self._lock:
            return not self._items

    def _base_state(self):
        return {
            'items': [dict(item) for item in self._items],
            'completed_count': self._completed_count,
            'error_count': self._error_count,
            'total_count': len(self._items),
        }
