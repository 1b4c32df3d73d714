"""
Object store access used by the manifest client and the cache.

We only need three operations: reading the last-modified time of an object,
reading an object, and writing an object. The `ObjectStore` protocol
describes them and this module provides two implementations:

1. `S3ObjectStore`, wrapping an already-configured boto3 S3 client;

2. `InMemoryObjectStore`, keeping objects in memory, which is useful for
tests and for running the resolver without any cloud account.

Operations are coroutines. The boto3 client is blocking, so we run each
call inside a worker thread using `asyncio.to_thread`. This layer never
retries: the caller decides the retry policy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Final, Protocol, runtime_checkable

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import (
    ObjectAccessDenied,
    ObjectFetchFailed,
    ObjectNotFound,
    ObjectPutFailed,
)

log = logging.getLogger("htsroute/objstore")

_NOT_FOUND_CODES: Final[frozenset[str]] = frozenset({"404", "NoSuchKey", "NotFound"})
_ACCESS_DENIED_CODES: Final[frozenset[str]] = frozenset({"403", "AccessDenied", "Forbidden"})


@runtime_checkable
class ObjectStore(Protocol):
    """
    Minimal asynchronous object store.

    Methods:
        stat: return the last-modified time of an object or None if missing.
        get: return the content of an object.
        put: write the content of an object.
    """

    async def stat(self, bucket: str, key: str) -> datetime | None: ...

    async def get(self, bucket: str, key: str) -> bytes: ...

    async def put(self, bucket: str, key: str, data: bytes) -> None: ...


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    """ObjectStore implementation backed by a boto3 S3 client."""

    def __init__(self, client) -> None:
        """
        Initialize with an S3 client created by the caller.

        Parameters:
            client: a boto3 S3 client (e.g., `boto3.client("s3")`).
        """
        self.client = client

    @classmethod
    def from_settings(
        cls,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        timeout: float = 30.0,
    ) -> S3ObjectStore:
        """
        Create an S3ObjectStore using the default AWS credentials chain.

        Retries are disabled because retrying is a caller's decision.
        """
        session = boto3.session.Session(region_name=region)
        client = session.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=BotoConfig(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )
        return cls(client)

    async def stat(self, bucket: str, key: str) -> datetime | None:
        return await asyncio.to_thread(self._stat, bucket, key)

    async def get(self, bucket: str, key: str) -> bytes:
        return await asyncio.to_thread(self._get, bucket, key)

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        await asyncio.to_thread(self._put, bucket, key, data)

    def _stat(self, bucket: str, key: str) -> datetime | None:
        try:
            resp = self.client.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                return None
            if code in _ACCESS_DENIED_CODES:
                raise ObjectAccessDenied(f"cannot stat s3://{bucket}/{key}: {exc}") from exc
            raise ObjectFetchFailed(f"cannot stat s3://{bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise ObjectFetchFailed(f"cannot stat s3://{bucket}/{key}: {exc}") from exc
        return resp.get("LastModified")

    def _get(self, bucket: str, key: str) -> bytes:
        log.debug("get s3://%s/%s... start", bucket, key)
        try:
            resp = self.client.get_object(Bucket=bucket, Key=key)
            data = resp["Body"].read()
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFound(f"no such object: s3://{bucket}/{key}") from exc
            if code in _ACCESS_DENIED_CODES:
                raise ObjectAccessDenied(f"cannot get s3://{bucket}/{key}: {exc}") from exc
            raise ObjectFetchFailed(f"cannot get s3://{bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise ObjectFetchFailed(f"cannot get s3://{bucket}/{key}: {exc}") from exc
        log.debug("get s3://%s/%s... ok (%d bytes)", bucket, key, len(data))
        return data

    def _put(self, bucket: str, key: str, data: bytes) -> None:
        log.debug("put s3://%s/%s... start", bucket, key)
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as exc:
            raise ObjectPutFailed(f"cannot put s3://{bucket}/{key}: {exc}") from exc
        log.debug("put s3://%s/%s... ok", bucket, key)


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


class InMemoryObjectStore:
    """
    ObjectStore implementation keeping objects in memory.

    The last-modified time of each object comes from the given clock,
    which allows tests to control the passing of time.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.clock = clock
        self.objects: dict[tuple[str, str], tuple[bytes, datetime]] = {}

    def set_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        last_modified: datetime | None = None,
    ) -> None:
        """Synchronously store an object, optionally overriding its timestamp."""
        stamp = last_modified if last_modified is not None else self.clock()
        self.objects[(bucket, key)] = (bytes(data), stamp)

    async def stat(self, bucket: str, key: str) -> datetime | None:
        await asyncio.sleep(0)
        try:
            return self.objects[(bucket, key)][1]
        except KeyError:
            return None

    async def get(self, bucket: str, key: str) -> bytes:
        await asyncio.sleep(0)
        try:
            return self.objects[(bucket, key)][0]
        except KeyError as exc:
            raise ObjectNotFound(f"no such object: s3://{bucket}/{key}") from exc

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        await asyncio.sleep(0)
        self.set_object(bucket, key, data)
