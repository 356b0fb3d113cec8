"""
Upload photos and videos while reporting progress.

Two kinds of progress are offered:

* measured - percentages come from the bytes boto3 reads from the file.
* simulated - a ProgressSimulator ramps up to 90% on a timer while the
  upload runs, then the caller snaps it to 100. These numbers are
  illustrative only.

The dashboard picks one with the UPLOAD_PROGRESS_MODE setting.
"""

import random
import threading

# Photos are small and finish quickly, videos ramp slower.
PHOTO_SIMULATION = {'interval': 0.2, 'increment': (5, 20)}
VIDEO_SIMULATION = {'interval': 0.3, 'increment': (3, 13)}
SIMULATED_CAP = 90.0


class ProgressSimulator:
    """
    Report fake, steadily increasing progress from a background thread.

    Use as a context manager around the real operation:

        with ProgressSimulator(on_progress, interval=0.2, increment=(5, 20)):
            store.add_photo(...)
    """

    def __init__(self, on_progress=None, interval=0.2, increment=(5, 20), cap=SIMULATED_CAP):
        self.on_progress = on_progress
        self.interval = interval
        self.increment = increment
        self.cap = cap
        self.progress = 0.0
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def tick(self):
        """Advance once. Never passes the cap."""
        if self.progress < self.cap:
            self.progress = min(self.cap, self.progress + random.uniform(*self.increment))
            if self.on_progress:
                self.on_progress(self.progress)

    def _run(self):
        while not self._stop.wait(self.interval):
            self.tick()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


class UploadService:
    """Wraps the media store and video library with progress/complete/error callbacks."""

    def __init__(self, store, videos):
        self.store = store
        self.videos = videos

    def _run(self, operation, on_progress, on_complete, on_error, simulation=None):
        try:
            if simulation is None:
                result = operation(on_progress)
            else:
                with ProgressSimulator(on_progress, **simulation):
                    result = operation(None)
        except Exception as e:
            if on_error:
                on_error(e)
            raise

        if on_progress:
            on_progress(100)
        if on_complete:
            on_complete()
        return result

    def upload_photo(self, category_id, file, on_progress=None, on_complete=None, on_error=None, title=None):
        """Upload a photo with measured progress. Returns the new photo dict."""
        return self._run(
            lambda progress: self.store.add_photo(category_id, file, title=title, on_progress=progress),
            on_progress, on_complete, on_error
        )

    def upload_photo_with_simulated_progress(self, category_id, file, on_progress=None,
                                             on_complete=None, on_error=None, title=None):
        """Upload a photo while reporting simulated progress. Returns the new photo dict."""
        return self._run(
            lambda progress: self.store.add_photo(category_id, file, title=title),
            on_progress, on_complete, on_error, simulation=PHOTO_SIMULATION
        )

    def upload_video(self, category_id, file, on_progress=None, on_complete=None, on_error=None):
        """Upload a video with measured progress. Returns the video dict."""
        return self._run(
            lambda progress: self.videos.upload_video(category_id, file, on_progress=progress),
            on_progress, on_complete, on_error
        )

    def upload_video_with_simulated_progress(self, category_id, file, on_progress=None,
                                             on_complete=None, on_error=None):
        """Upload a video while reporting simulated progress. Returns the video dict."""
        return self._run(
            lambda progress: self.videos.upload_video(category_id, file),
            on_progress, on_complete, on_error, simulation=VIDEO_SIMULATION
        )
