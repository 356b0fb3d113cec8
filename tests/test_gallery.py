from portfolio.services.gallery import (
    HomeGrid, category_counts, filter_by_category, get_random_photos, top_categories,
)

CATEGORIES = [
    {'id': 'c1', 'name': 'Wedding'},
    {'id': 'c2', 'name': 'Portrait'},
    {'id': 'c3', 'name': 'Event'},
]


def test_random_photos_returns_distinct_subset():
    photos = [{'id': str(i)} for i in range(30)]

    picked = get_random_photos(photos, 20)

    assert len(picked) == 20
    assert len({p['id'] for p in picked}) == 20
    assert all(p in photos for p in picked)
    assert len(photos) == 30


def test_random_photos_small_input_is_copied():
    photos = [{'id': '1'}, {'id': '2'}]
    picked = get_random_photos(photos, 20)

    assert picked == photos
    assert picked is not photos
    assert get_random_photos([]) == []


def test_filter_by_category():
    items = [{'category_name': 'Wedding'}, {'category_name': 'Event'}]
    assert filter_by_category(items, 'All') == items
    assert filter_by_category(items, '') == items
    assert filter_by_category(items, 'Event') == [{'category_name': 'Event'}]


def test_category_counts_for_photos_and_videos():
    photos = [{'category_id': 'c2'}, {'category_id': 'c2'}, {'category_id': 'c1'}]
    videos = [{'category_name': 'Event'}]

    assert [(c['name'], c['count']) for c in category_counts(photos, CATEGORIES)] == [
        ('Portrait', 2), ('Wedding', 1), ('Event', 0),
    ]
    assert [c['name'] for c in top_categories(videos, CATEGORIES, limit=2)] == ['Event', 'Wedding']


class FakeStore:
    def __init__(self, photos):
        self.photos = photos
        self.callbacks = []

    def subscribe(self, callback):
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)

    def get_photos(self):
        return list(self.photos)


def test_home_grid_refreshes_on_change():
    store = FakeStore([])
    grid = HomeGrid(store, count=2)
    assert grid.photos == []

    store.photos = [{'id': '1'}, {'id': '2'}, {'id': '3'}]
    for callback in store.callbacks:
        callback()

    assert len(grid.photos) == 2

    grid.unsubscribe()
    assert store.callbacks == []
