"""Progress of a (bulk) delete. A single delete is a batch of one."""

from portfolio.services.progress import BatchTracker, PENDING

DELETING = 'deleting'
MEDIA_TYPES = ('photo', 'video')


class DeleteProgressTracker(BatchTracker):
    """Tracks each photo/video of a delete batch. Counts only, no percentage."""

    def initialize_delete(self, items):
        """
        Start a batch.

        Args:
            items: dicts with 'id', 'name' (display name) and 'type' ('photo' or 'video')
                   with unique ids

        Returns:
            Item ids in submission order
        """
        entries = []
        seen = set()
        for item in items:
            if item['type'] not in MEDIA_TYPES:
                raise ValueError(f"Unknown media type: {item['type']}")
            if item['id'] in seen:
                raise ValueError(f"Duplicate item id: {item['id']}")
            seen.add(item['id'])
            entries.append({
                'id': item['id'],
                'name': item['name'],
                'type': item['type'],
                'status': PENDING,
                'error': None,
            })
        return self._start(entries)

    def mark_item_deleting(self, item_id):
        return self._transition(item_id, DELETING)

    def reset_delete(self):
        self.reset()

    def state(self):
        with self._lock:
            state = self._base_state()
            state['is_deleting'] = self._in_flight
            return state
