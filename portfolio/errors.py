"""Exceptions raised by the media services.

Routes catch ``MediaError`` and turn it into a flash message or a JSON error
body; anything else is a bug.
"""


class MediaError(Exception):
    """Base class for media management failures."""

    status_code = 400


class AuthenticationError(MediaError):
    """No authenticated owner for an operation that needs one."""

    status_code = 401


class CategoryNotFoundError(MediaError):
    """The referenced category is not in the cached category list."""

    status_code = 404

    def __init__(self, category_id):
        super().__init__(f"Category not found: {category_id}")
        self.category_id = category_id


class StorageError(MediaError):
    """An object storage call failed."""

    status_code = 502

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path
