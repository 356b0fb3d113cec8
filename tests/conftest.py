import io
import itertools
import threading

import pytest
from werkzeug.datastructures import FileStorage

from portfolio import create_app, db
from portfolio.errors import StorageError
from portfolio.models import Category
from portfolio.seed import create_owner, seed_categories

OWNER_EMAIL = 'owner@example.com'
OWNER_PASSWORD = 'correct horse battery staple'


class FakeStorage:
    """In-memory stand-in for the R2 storage service."""

    def __init__(self):
        self.objects = {}
        self.removed = []
        self.fail_uploads = False
        self.fail_removes = set()
        self.fail_lists = set()
        self._lock = threading.Lock()

    def _bucket(self, bucket):
        return self.objects.setdefault(bucket, {})

    def exists(self, bucket, path):
        return path in self._bucket(bucket)

    def upload(self, bucket, path, file_obj, content_type=None, on_progress=None):
        if self.fail_uploads:
            raise StorageError(f"Upload failed for {path}", path)
        stream = getattr(file_obj, 'stream', file_obj)
        with self._lock:
            if self.exists(bucket, path):
                raise StorageError(f"The resource already exists: {path}", path)
            self._bucket(bucket)[path] = stream.read()
        if on_progress:
            on_progress(50)
            on_progress(100)
        return path

    def get_public_url(self, bucket, path):
        if not path:
            return None
        return f"https://{bucket}.cdn.test/{path}"

    def remove(self, bucket, paths):
        failed = [p for p in paths if p in self.fail_removes]
        for path in paths:
            if path not in failed:
                self._bucket(bucket).pop(path, None)
                self.removed.append((bucket, path))
        if failed:
            raise StorageError(f"Could not delete: {', '.join(failed)}", failed[0])
        return paths

    def list(self, bucket, prefix=''):
        if prefix in self.fail_lists:
            raise StorageError(f"List failed for {bucket}/{prefix}")
        prefix = f"{prefix.strip('/')}/" if prefix else ''
        folders = []
        files = []
        for key in sorted(self._bucket(bucket)):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if '/' in rest:
                folder = rest.split('/', 1)[0]
                if folder not in folders:
                    folders.append(folder)
            else:
                files.append(rest)
        return (
            [{'id': None, 'name': f, 'created_at': None, 'is_folder': True} for f in folders]
            + [{'id': prefix + f, 'name': f, 'created_at': '2026-01-01T00:00:00', 'is_folder': False}
               for f in files]
        )


def make_file(filename='photo.jpg', content=b'image-bytes', content_type='image/jpeg'):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def app(tmp_path, storage):
    # A file database: batch workers open their own connections.
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'RUN_BATCHES_INLINE': True,
        'UPLOAD_PROGRESS_MODE': 'measured',
        'PROGRESS_RESET_SECONDS': None,
        'UPLOAD_WORKERS': 1,
        'CONTACT_RECIPIENT_EMAIL': None,
    }, storage=storage)
    # Distinct storage paths for files uploaded within the same millisecond.
    ticks = itertools.count(1718000000000)
    app.extensions['media_store'].clock = lambda: next(ticks)
    app.extensions['video_library'].clock = lambda: next(ticks)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def owner(ctx):
    return create_owner(OWNER_EMAIL, OWNER_PASSWORD)


@pytest.fixture
def categories(ctx):
    seed_categories()
    return {c.name: c.id for c in Category.query.all()}


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client, app):
    with app.app_context():
        seed_categories()
        create_owner(OWNER_EMAIL, OWNER_PASSWORD)
    response = client.post('/auth', data={'email': OWNER_EMAIL, 'password': OWNER_PASSWORD})
    assert response.status_code == 302
    return client
