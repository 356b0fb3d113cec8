import io
from datetime import datetime

import pytest
from botocore.exceptions import ClientError

from portfolio.errors import StorageError
from portfolio.services.storage_service import StorageService


def not_found():
    return ClientError({'Error': {'Code': '404', 'Message': 'Not Found'}}, 'HeadObject')


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.kwargs = None

    def paginate(self, **kwargs):
        self.kwargs = kwargs
        return self.pages


class FakeS3:
    def __init__(self, existing=(), delete_errors=(), pages=()):
        self.existing = set(existing)
        self.delete_errors = list(delete_errors)
        self.paginator = FakePaginator(list(pages))
        self.uploads = []

    def head_object(self, Bucket, Key):
        if Key not in self.existing:
            raise not_found()
        return {}

    def put_object(self, Bucket, Key, Body, **kwargs):
        if kwargs.get('IfNoneMatch') == '*' and Key in self.existing:
            raise ClientError({'Error': {'Code': 'PreconditionFailed', 'Message': 'Precondition failed'}}, 'PutObject')
        data = b''
        chunk = Body.read(2)
        while chunk:
            data += chunk
            chunk = Body.read(2)
        self.existing.add(Key)
        self.uploads.append((Bucket, Key, data, kwargs))

    def delete_objects(self, Bucket, Delete):
        return {'Errors': self.delete_errors}

    def get_paginator(self, name):
        return self.paginator


def test_not_configured_raises():
    service = StorageService()
    with pytest.raises(StorageError, match='not configured'):
        service.upload('photos', 'a.jpg', io.BytesIO(b'x'))


def test_from_config_without_credentials_has_no_client():
    service = StorageService.from_config({'R2_ACCOUNT_ID': 'acct'})
    assert service.s3_client is None
    assert service.endpoint_url == 'https://acct.r2.cloudflarestorage.com'


def test_upload_reports_progress_and_sets_headers():
    client = FakeS3()
    service = StorageService(client)
    seen = []

    service.upload('photos', 'Wedding/1.jpg', io.BytesIO(b'abcd'), content_type='image/jpeg',
                   on_progress=seen.append)

    assert seen[:2] == [50.0, 100.0]
    assert set(seen[2:]) <= {100.0}
    bucket, key, data, extra = client.uploads[0]
    assert (bucket, key, data) == ('photos', 'Wedding/1.jpg', b'abcd')
    assert extra == {'IfNoneMatch': '*', 'CacheControl': 'max-age=3600', 'ContentType': 'image/jpeg'}


def test_upload_never_overwrites():
    service = StorageService(FakeS3(existing={'Wedding/1.jpg'}))
    with pytest.raises(StorageError, match='already exists'):
        service.upload('photos', 'Wedding/1.jpg', io.BytesIO(b'x'))


def test_public_url():
    service = StorageService(endpoint_url='https://r2.test', public_domains={'photos': 'https://cdn.test/'})
    assert service.get_public_url('photos', 'Wedding Day/1.jpg') == 'https://cdn.test/Wedding%20Day/1.jpg'
    assert service.get_public_url('videos', 'a/1.mp4') == 'https://r2.test/videos/a/1.mp4'
    assert service.get_public_url('photos', '') is None


def test_remove_reports_partial_failure():
    service = StorageService(FakeS3(delete_errors=[{'Key': 'b.jpg', 'Message': 'denied'}]))
    with pytest.raises(StorageError) as excinfo:
        service.remove('photos', ['a.jpg', 'b.jpg'])
    assert excinfo.value.path == 'b.jpg'
    assert service.remove('photos', []) == []


def test_list_returns_folders_and_files():
    client = FakeS3(pages=[{
        'CommonPrefixes': [{'Prefix': 'wedding/sub/'}],
        'Contents': [
            {'Key': 'wedding/', 'ETag': '"d"'},
            {'Key': 'wedding/1.mp4', 'ETag': '"abc"', 'LastModified': datetime(2026, 1, 2)},
        ],
    }])
    service = StorageService(client)

    entries = service.list('videos', 'wedding')

    assert client.paginator.kwargs == {'Bucket': 'videos', 'Prefix': 'wedding/', 'Delimiter': '/'}
    assert entries == [
        {'id': None, 'name': 'sub', 'created_at': None, 'is_folder': True},
        {'id': 'abc', 'name': '1.mp4', 'created_at': '2026-01-02T00:00:00', 'is_folder': False},
    ]


class RacingS3(FakeS3):
    """Another writer stores the key between the existence check and the put."""

    def head_object(self, Bucket, Key):
        raise not_found()


def test_upload_rejects_key_written_after_existence_check():
    client = RacingS3(existing={'Wedding/1.jpg'})
    service = StorageService(client)

    with pytest.raises(StorageError, match='already exists'):
        service.upload('photos', 'Wedding/1.jpg', io.BytesIO(b'new'))
    assert client.uploads == []
