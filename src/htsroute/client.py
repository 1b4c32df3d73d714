"""Module containing the client for the manifest service."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Final
from urllib.parse import quote

import requests

from .errors import (
    DeserializeFailure,
    InvalidRequestURI,
    RemoteRejected,
    TransportFailure,
)
from .manifest import (
    ManifestDocument,
    ManifestLocation,
    ManifestLocationResponse,
    load_location_response,
    load_manifest_document,
)
from .objstore import ObjectStore

log = logging.getLogger("htsroute/client")

ENDPOINT_PATH: Final[str] = "/manifest/htsget"
"""Path of the manifest service endpoint; the release key follows it."""

STORAGE_TYPE: Final[str] = "S3"
"""Value of the `type` query parameter selecting the storage backend."""

SUPPORTED_SCHEMES: Final[tuple[str, ...]] = ("https", "http")

_INVALID_AUTHORITY_CHARS: Final[frozenset[str]] = frozenset("/?#@ \t\r\n")


class ManifestClient:
    """
    Client fetching release manifests.

    Fetching a manifest is a two step process. We first ask the manifest
    service where the manifest lives (`fetch_location`) and then read it
    from the object store (`fetch_manifest`).
    """

    def __init__(
        self,
        authority: str,
        store: ObjectStore,
        *,
        scheme: str = "https",
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the client.

        Parameters:
            authority: host[:port] of the manifest service.
            store: object store containing the manifests.
            scheme: either https (the default) or http for local testing.
            session: optional requests session to use.
            timeout: timeout in seconds for requests to the manifest service.

        Raises:
            ValueError: if the scheme is not supported.
        """
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(f"unsupported scheme: {scheme}")
        self.authority = authority
        self.store = store
        self.scheme = scheme
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def location_url(self, release_key: str) -> str:
        """
        Return the manifest service URL for the given release key.

        Raises:
            InvalidRequestURI: if we cannot build a valid URL.
        """
        if not release_key:
            raise InvalidRequestURI("empty release key")
        if not self.authority or _INVALID_AUTHORITY_CHARS.intersection(self.authority):
            raise InvalidRequestURI(f"invalid manifest service authority: {self.authority!r}")
        url = f"{self.scheme}://{self.authority}{ENDPOINT_PATH}/{quote(release_key, safe='')}"
        try:
            prepared = requests.Request("GET", url, params={"type": STORAGE_TYPE}).prepare()
        except requests.RequestException as exc:
            raise InvalidRequestURI(f"invalid release uri for {release_key!r}: {exc}") from exc
        assert prepared.url is not None
        return prepared.url

    async def fetch_location(self, release_key: str) -> ManifestLocationResponse:
        """
        Ask the manifest service where the manifest of a release lives.

        Raises:
            InvalidRequestURI: if we cannot build the request URL.
            TransportFailure: if the request fails.
            RemoteRejected: if the service returns a non-successful status.
            DeserializeFailure: if the response body is not what we expect.
        """
        url = self.location_url(release_key)
        log.info("fetching %s... start", url)
        try:
            response = await asyncio.to_thread(self.session.get, url, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("fetching %s... failure: %s", url, exc)
            raise TransportFailure(f"cannot fetch {url}: {exc}") from exc

        if not response.ok:
            log.warning("fetching %s... failure: %d", url, response.status_code)
            raise RemoteRejected(response.status_code, response.reason, url)

        try:
            data = response.json()
        except ValueError as exc:
            raise DeserializeFailure(f"invalid JSON from {url}: {exc}") from exc

        location = load_location_response(data)
        log.info("fetching %s... ok", url)
        return location

    async def fetch_manifest(self, location: ManifestLocation) -> ManifestDocument:
        """
        Read and parse the manifest stored at the given location.

        Raises:
            ObjectFetchFailed: if we cannot read the object.
            DeserializeFailure: if the object is not a valid manifest.
        """
        raw = await self.store.get(location.bucket, location.key)
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise DeserializeFailure(
                f"invalid JSON in s3://{location.bucket}/{location.key}: {exc}"
            ) from exc
        return load_manifest_document(data)
