import asyncio
import logging
import os
from datetime import datetime, timezone

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.security import safe_join

from ..errors import BlobStoreError

logger = logging.getLogger(__name__)

# S3 DeleteObjects accepts at most 1000 keys per call
S3_DELETE_BATCH = 1000
# put_object with IfNoneMatch="*" against an existing key
S3_EXISTS_CODES = {"PreconditionFailed", "ConditionalRequestConflict"}


class LocalBlobStore:
    """Blob store on the local filesystem (development and single-host deploys)."""

    def __init__(self, root, public_base=None):
        self.root = os.path.abspath(root)
        self.public_base = public_base.rstrip('/') if public_base else None

    def _resolve(self, path):
        full = safe_join(self.root, path)
        if full is None:
            raise BlobStoreError(f"invalid blob path: {path!r}", path=path)
        return full

    def _write(self, path, data):
        full = self._resolve(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        # 'xb': never overwrite an existing blob
        with open(full, 'xb') as f:
            f.write(data)

    async def put(self, path, data, content_type):
        try:
            await asyncio.to_thread(self._write, path, data)
        except FileExistsError as e:
            raise BlobStoreError(f"blob already exists: {path}", path=path) from e
        except OSError as e:
            raise BlobStoreError(f"local write failed for {path}: {e}", path=path) from e
        logger.debug("stored %d bytes (%s) at %s", len(data), content_type, path)
        return path

    def public_url(self, path):
        if self.public_base:
            return f"{self.public_base}/{path}"
        return f"file://{self._resolve(path)}"

    def _remove(self, paths):
        for p in paths:
            try:
                os.remove(self._resolve(p))
            except FileNotFoundError:
                pass

    async def delete(self, paths):
        try:
            await asyncio.to_thread(self._remove, list(paths))
        except OSError as e:
            raise BlobStoreError(f"local delete failed: {e}", paths=list(paths)) from e

    def _walk(self, prefix):
        out = []
        if not os.path.isdir(self.root):
            return out
        for dirpath, _dirs, files in os.walk(self.root):
            for name in files:
                full = os.path.join(dirpath, name)
                rel = os.path.relpath(full, self.root).replace(os.sep, '/')
                if rel.startswith(prefix):
                    mtime = datetime.fromtimestamp(os.path.getmtime(full), tz=timezone.utc)
                    out.append((rel, mtime))
        return out

    async def list(self, prefix=""):
        try:
            return await asyncio.to_thread(self._walk, prefix)
        except OSError as e:
            raise BlobStoreError(f"local listing failed: {e}") from e


class S3BlobStore:
    def __init__(self, client, bucket, endpoint=None, public_base=None):
        self.client = client
        self.bucket = bucket
        self.endpoint = endpoint.rstrip('/') if endpoint else None
        self.public_base = public_base.rstrip('/') if public_base else None

    async def put(self, path, data, content_type):
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket, Key=path, Body=data, ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as e:
            err = e.response.get("Error", {})
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if err.get("Code") in S3_EXISTS_CODES or status == 412:
                raise BlobStoreError(f"blob already exists: {path}", path=path) from e
            raise BlobStoreError(f"S3 upload failed for {path}: {e}", path=path) from e
        except BotoCoreError as e:
            raise BlobStoreError(f"S3 upload failed for {path}: {e}", path=path) from e
        return path

    def public_url(self, path):
        if self.public_base:
            return f"{self.public_base}/{path}"
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket}/{path}"
        return f"https://{self.bucket}.s3.amazonaws.com/{path}"

    def _delete_batches(self, keys):
        for i in range(0, len(keys), S3_DELETE_BATCH):
            chunk = keys[i:i + S3_DELETE_BATCH]
            self.client.delete_objects(
                Bucket=self.bucket,
                Delete={'Objects': [{'Key': k} for k in chunk], 'Quiet': True},
            )

    async def delete(self, paths):
        keys = list(paths)
        if not keys:
            return
        try:
            await asyncio.to_thread(self._delete_batches, keys)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"S3 delete failed: {e}", paths=keys) from e

    def _list_all(self, prefix):
        out = []
        paginator = self.client.get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get('Contents', []):
                out.append((obj['Key'], obj['LastModified']))
        return out

    async def list(self, prefix=""):
        try:
            return await asyncio.to_thread(self._list_all, prefix)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"S3 listing failed: {e}") from e


def _s3_client(config):
    # build boto3 client kwargs flexibly: endpoint_url may be empty in AWS-managed S3
    s3_kwargs = {}
    endpoint = config.get('S3_ENDPOINT')
    if endpoint:
        s3_kwargs['endpoint_url'] = endpoint
    region = config.get('S3_REGION')
    if region:
        s3_kwargs['region_name'] = region
    s3_config = Config(signature_version='s3v4', s3={'addressing_style': 'virtual'})
    return boto3.client(
        's3',
        aws_access_key_id=config.get('S3_ACCESS_KEY'),
        aws_secret_access_key=config.get('S3_SECRET_KEY'),
        config=s3_config,
        **s3_kwargs,
    )


def build_blob_store(config):
    backend = config.get('STORAGE_BACKEND', 'local')
    public_base = config.get('PUBLIC_MEDIA_URL')
    if backend == 's3':
        return S3BlobStore(
            _s3_client(config),
            config.get('S3_BUCKET'),
            endpoint=config.get('S3_ENDPOINT'),
            public_base=public_base,
        )
    if backend != 'local':
        raise ValueError(f"Unsupported STORAGE_BACKEND: {backend}")
    return LocalBlobStore(config.get('LOCAL_STORAGE_DIR', './storage'), public_base=public_base)
