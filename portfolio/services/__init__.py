# Business logic services
from portfolio.services.email_service import email_service
from portfolio.services.media_store import MediaStore
from portfolio.services.storage_service import StorageService
from portfolio.services.video_service import VideoLibrary
from portfolio.services.upload_service import UploadService, ProgressSimulator
from portfolio.services.upload_progress import UploadProgressTracker
from portfolio.services.delete_progress import DeleteProgressTracker
from portfolio.services.selection import MultiSelect

__all__ = [
    'email_service',
    'MediaStore',
    'StorageService',
    'VideoLibrary',
    'UploadService',
    'ProgressSimulator',
    'UploadProgressTracker',
    'DeleteProgressTracker',
    'MultiSelect',
]
