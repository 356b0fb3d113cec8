import logging
import os
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from portfolio.errors import StorageError

PRECONDITION_FAILED = ('PreconditionFailed', '412')


class ProgressReader:
    """File wrapper reporting the percentage of bytes read so far."""

    def __init__(self, stream, total, on_progress):
        self.stream = stream
        self.total = total
        self.on_progress = on_progress

    def read(self, size=-1):
        data = self.stream.read(size)
        position = self.stream.tell()
        self.on_progress(100.0 * position / self.total if self.total else 100.0)
        return data

    def seek(self, offset, whence=os.SEEK_SET):
        return self.stream.seek(offset, whence)

    def tell(self):
        return self.stream.tell()


class StorageService:
    """Object storage on Cloudflare R2 (S3 API).

    Buckets are flat key spaces; "folders" are key prefixes separated by '/'.
    """

    def __init__(self, s3_client=None, endpoint_url=None, public_domains=None, logger=None):
        self.s3_client = s3_client
        self.endpoint_url = endpoint_url
        self.public_domains = public_domains or {}
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config, logger=None):
        """Build the service from Flask config. The client stays None if R2 is not configured."""
        logger = logger or logging.getLogger(__name__)
        account_id = config.get('R2_ACCOUNT_ID')
        access_key = config.get('R2_ACCESS_KEY_ID')
        secret_key = config.get('R2_SECRET_ACCESS_KEY')
        endpoint_url = config.get('R2_ENDPOINT_URL')
        if not endpoint_url and account_id:
            endpoint_url = f'https://{account_id}.r2.cloudflarestorage.com'

        public_domains = {}
        for bucket_key, domain_key in (('R2_PHOTOS_BUCKET', 'R2_PHOTOS_PUBLIC_DOMAIN'),
                                       ('R2_VIDEOS_BUCKET', 'R2_VIDEOS_PUBLIC_DOMAIN')):
            if config.get(bucket_key) and config.get(domain_key):
                public_domains[config[bucket_key]] = config[domain_key]

        s3_client = None
        if all([endpoint_url, access_key, secret_key]):
            try:
                s3_client = boto3.client(
                    's3',
                    endpoint_url=endpoint_url,
                    aws_access_key_id=access_key,
                    aws_secret_access_key=secret_key,
                    region_name='auto'  # R2 requires a region, 'auto' maps to the account's location
                )
            except (BotoCoreError, ValueError) as e:
                logger.error(f"Failed to initialize R2 client: {e}")
        else:
            logger.warning("R2 storage not configured - missing environment variables")

        return cls(s3_client, endpoint_url, public_domains, logger)

    def _require_client(self):
        if not self.s3_client:
            raise StorageError("Storage not configured. Check R2 settings.")
        return self.s3_client

    def exists(self, bucket, path):
        client = self._require_client()
        try:
            client.head_object(Bucket=bucket, Key=path)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise StorageError(f"Error checking {bucket}/{path}: {e}", path) from e

    def upload(self, bucket, path, file_obj, content_type=None, on_progress=None):
        """
        Store a file-like object under ``path``. Existing objects are never overwritten.

        Args:
            bucket: Target bucket name
            path: Object key, e.g. 'Wedding/1718000000000.jpg'
            file_obj: Werkzeug FileStorage or any binary file object
            content_type: Stored Content-Type (defaults to the upload's mimetype)
            on_progress: Optional callable receiving the transferred percentage (0-100)

        Raises:
            StorageError: duplicate path, storage not configured, or the upload failed
        """
        client = self._require_client()

        if self.exists(bucket, path):
            raise StorageError(f"The resource already exists: {path}", path)

        stream = getattr(file_obj, 'stream', file_obj)
        stream.seek(0, os.SEEK_END)
        total = stream.tell()
        stream.seek(0)

        params = {
            'Bucket': bucket,
            'Key': path,
            'Body': ProgressReader(stream, total, on_progress) if on_progress else stream,
            # Conditional write: a concurrent upload to the same key fails instead of replacing it
            'IfNoneMatch': '*',
            'CacheControl': 'max-age=3600',
        }
        content_type = content_type or getattr(file_obj, 'content_type', None)
        if content_type:
            params['ContentType'] = content_type

        try:
            client.put_object(**params)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in PRECONDITION_FAILED:
                raise StorageError(f"The resource already exists: {path}", path) from e
            self.logger.error(f"Error uploading file to R2: {e}")
            raise StorageError(f"Upload failed for {path}: {e}", path) from e
        except BotoCoreError as e:
            self.logger.error(f"Error uploading file to R2: {e}")
            raise StorageError(f"Upload failed for {path}: {e}", path) from e

        return path

    def get_public_url(self, bucket, path):
        """Public URL for an object. Pure string work, no request is made."""
        if not path:
            return None
        key = quote(path)
        domain = self.public_domains.get(bucket)
        if domain:
            return f"{domain.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{bucket}/{key}"
        return None

    def remove(self, bucket, paths):
        """
        Delete objects. Best effort: every path is attempted.

        Raises:
            StorageError: if any path could not be deleted (message lists them)
        """
        client = self._require_client()
        paths = [p for p in paths if p]
        if not paths:
            return []

        try:
            response = client.delete_objects(
                Bucket=bucket,
                Delete={'Objects': [{'Key': p} for p in paths], 'Quiet': True}
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Error deleting files from R2: {e}")
            raise StorageError(f"Delete failed: {e}", paths[0]) from e

        errors = response.get('Errors', [])
        if errors:
            failed = ', '.join(f"{err.get('Key')} ({err.get('Message')})" for err in errors)
            self.logger.error(f"Partial delete failure in {bucket}: {failed}")
            raise StorageError(f"Could not delete: {failed}", errors[0].get('Key'))
        return paths

    def list(self, bucket, prefix=''):
        """
        List the immediate children of a prefix.

        Returns:
            list of dicts with 'id', 'name', 'created_at' and 'is_folder'.
            Folders have no id or created_at.
        """
        client = self._require_client()
        prefix = f"{prefix.strip('/')}/" if prefix else ''
        entries = []

        try:
            paginator = client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter='/'):
                for common in page.get('CommonPrefixes', []):
                    entries.append({
                        'id': None,
                        'name': common['Prefix'][len(prefix):].rstrip('/'),
                        'created_at': None,
                        'is_folder': True,
                    })
                for obj in page.get('Contents', []):
                    name = obj['Key'][len(prefix):]
                    if not name:
                        continue
                    last_modified = obj.get('LastModified')
                    entries.append({
                        'id': obj.get('ETag', '').strip('"') or obj['Key'],
                        'name': name,
                        'created_at': last_modified.isoformat() if last_modified else None,
                        'is_folder': False,
                    })
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Error listing {bucket}/{prefix}: {e}")
            raise StorageError(f"List failed for {bucket}/{prefix}: {e}") from e

        return entries
