"""Multi-select state for the dashboard grids. Pure state, no I/O."""


class MultiSelect:
    """
    A set of selected item ids plus a selection-mode flag.

    Ids keep the order they were selected in. Leaving selection mode
    always clears the selection.
    """

    def __init__(self, selected_ids=(), is_selection_mode=False):
        self._selected = dict.fromkeys(selected_ids)
        self.is_selection_mode = bool(is_selection_mode)

    def toggle_selection(self, item_id):
        if item_id in self._selected:
            del self._selected[item_id]
        else:
            self._selected[item_id] = None

    def select_all(self, items):
        """Replace the selection with every item's id (items are dicts with 'id')."""
        self._selected = dict.fromkeys(item['id'] for item in items)

    def select_none(self):
        self._selected = {}

    def is_selected(self, item_id):
        return item_id in self._selected

    def get_selected_ids(self):
        return list(self._selected)

    @property
    def selected_count(self):
        return len(self._selected)

    def enter_selection_mode(self):
        self.is_selection_mode = True

    def exit_selection_mode(self):
        self.is_selection_mode = False
        self._selected = {}

    def to_dict(self):
        return {
            'selected_ids': self.get_selected_ids(),
            'selected_count': self.selected_count,
            'is_selection_mode': self.is_selection_mode,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(data.get('selected_ids', ()), data.get('is_selection_mode', False))
