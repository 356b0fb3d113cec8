import pytest

from portfolio.errors import StorageError
from portfolio.services.upload_service import ProgressSimulator, UploadService


def test_simulator_never_passes_cap():
    seen = []
    simulator = ProgressSimulator(seen.append, increment=(50, 50), cap=90)

    for _ in range(4):
        simulator.tick()

    assert seen == [50, 90]
    assert simulator.progress == 90


def test_simulator_thread_stops():
    seen = []
    with ProgressSimulator(seen.append, interval=0.01, increment=(1, 1)) as simulator:
        pass
    assert simulator._thread is None


class FakeStore:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def add_photo(self, category_id, file, title=None, on_progress=None):
        self.calls.append((category_id, file, title))
        if on_progress:
            on_progress(40)
        if self.error:
            raise self.error
        return {'id': 'p1'}


class Recorder:
    def __init__(self):
        self.progress = []
        self.completed = 0
        self.errors = []

    def callbacks(self):
        return {
            'on_progress': self.progress.append,
            'on_complete': self.complete,
            'on_error': self.errors.append,
        }

    def complete(self):
        self.completed += 1


def test_upload_photo_reports_measured_progress_then_completes():
    recorder = Recorder()
    service = UploadService(FakeStore(), videos=None)

    assert service.upload_photo('c1', 'file', title='T', **recorder.callbacks()) == {'id': 'p1'}
    assert recorder.progress == [40, 100]
    assert recorder.completed == 1
    assert recorder.errors == []


def test_upload_photo_error_calls_on_error_and_reraises():
    recorder = Recorder()
    error = StorageError('boom')
    service = UploadService(FakeStore(error=error), videos=None)

    with pytest.raises(StorageError):
        service.upload_photo_with_simulated_progress('c1', 'file', **recorder.callbacks())

    assert recorder.errors == [error]
    assert recorder.completed == 0
    assert 100 not in recorder.progress


def test_simulated_upload_ends_at_100():
    recorder = Recorder()
    service = UploadService(FakeStore(), videos=None)

    service.upload_photo_with_simulated_progress('c1', 'file', **recorder.callbacks())

    assert recorder.progress[-1] == 100
    assert all(p <= 90 for p in recorder.progress[:-1])
