import pytest

from portfolio.errors import CategoryNotFoundError
from portfolio.services.video_service import VideoLibrary, folder_display_name, normalize_category_folder

from conftest import make_file


class FakeStore:
    def get_categories(self):
        return [{'id': 'c1', 'name': 'Wedding Films'}]


@pytest.fixture
def library(ctx, storage):
    return VideoLibrary(storage, FakeStore(), clock=lambda: 1718000000000)


def test_folder_names():
    assert normalize_category_folder('  Wedding   Films ') == 'wedding-films'
    assert folder_display_name('wedding-films') == 'Wedding Films'


def test_upload_video_goes_into_category_folder(library, storage):
    video = library.upload_video('c1', make_file('clip.MP4', content_type='video/mp4'))

    assert video['name'] == 'wedding-films/1718000000000.mp4'
    assert video['category_name'] == 'Wedding Films'
    assert 'wedding-films/1718000000000.mp4' in storage.objects['videos']


def test_upload_video_unknown_category(library):
    with pytest.raises(CategoryNotFoundError):
        library.upload_video('missing', make_file('clip.mp4'))


def test_list_videos_skips_hidden_and_broken_folders(library, storage):
    storage.objects['videos'] = {
        'wedding/1.mp4': b'',
        'wedding/.emptyFolderPlaceholder': b'',
        '.hidden/2.mp4': b'',
        'portrait/3.mov': b'',
        'broken/4.mp4': b'',
    }
    storage.fail_lists.add('broken')

    videos = library.list_videos()

    assert sorted(v['name'] for v in videos) == ['portrait/3.mov', 'wedding/1.mp4']
    wedding = next(v for v in videos if v['name'] == 'wedding/1.mp4')
    assert wedding['category_name'] == 'Wedding'
    assert wedding['public_url'] == 'https://videos.cdn.test/wedding/1.mp4'


def test_delete_video(library, storage):
    storage.objects['videos'] = {'wedding/1.mp4': b''}
    assert library.delete_video('wedding/1.mp4') is True
    assert storage.objects['videos'] == {}

    storage.fail_removes.add('wedding/2.mp4')
    assert library.delete_video('wedding/2.mp4') is False


def test_list_videos_ignores_loose_root_files(library, storage):
    storage.objects['videos'] = {'readme.txt': b'', 'event/1.mp4': b''}
    listed = []
    real_list = storage.list

    def recording_list(bucket, prefix=''):
        listed.append(prefix)
        return real_list(bucket, prefix)

    storage.list = recording_list

    videos = library.list_videos()

    assert [v['name'] for v in videos] == ['event/1.mp4']
    assert listed == ['', 'event']


def test_upload_video_same_millisecond_gets_next_stamp(library, storage):
    first = library.upload_video('c1', make_file('a.mp4', content_type='video/mp4'))
    second = library.upload_video('c1', make_file('b.mp4', content_type='video/mp4'))

    assert first['name'] == 'wedding-films/1718000000000.mp4'
    assert second['name'] == 'wedding-films/1718000000001.mp4'
