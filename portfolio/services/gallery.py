"""Helpers for the public gallery pages and the dashboard stats."""

import random

ALL_CATEGORIES = 'All'


def get_random_photos(photos, count=20):
    """Up to ``count`` distinct photos in random order (Fisher-Yates on a copy)."""
    if not photos:
        return []
    if len(photos) <= count:
        return list(photos)

    shuffled = list(photos)
    for i in range(len(shuffled) - 1, 0, -1):
        j = random.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:count]


def filter_by_category(items, category_name):
    """Items whose category_name matches. 'All' or empty means no filter."""
    if not category_name or category_name == ALL_CATEGORIES:
        return list(items)
    return [item for item in items if item.get('category_name') == category_name]


def category_counts(items, categories):
    """
    Count items per category, busiest first.

    Args:
        items: photos (matched on category_id) or videos (matched on category_name)
        categories: category dicts with 'id' and 'name'

    Returns:
        list of {'id', 'name', 'count'}; ties keep category order
    """
    counts = []
    for category in categories:
        count = sum(
            1 for item in items
            if item.get('category_id') == category['id']
            or ('category_id' not in item and item.get('category_name') == category['name'])
        )
        counts.append({'id': category['id'], 'name': category['name'], 'count': count})
    return sorted(counts, key=lambda c: c['count'], reverse=True)


def top_categories(items, categories, limit=2):
    return category_counts(items, categories)[:limit]


class HomeGrid:
    """Random selection of photos for the home page, reshuffled whenever the photos change."""

    def __init__(self, store, count=20):
        self.store = store
        self.count = count
        self.photos = []
        self.unsubscribe = store.subscribe(self.refresh)

    def refresh(self):
        self.photos = get_random_photos(self.store.get_photos(), self.count)
