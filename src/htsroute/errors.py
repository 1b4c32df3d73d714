"""Exceptions raised while resolving a release into routing rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .resolver import RoutingRule


class ResolveError(Exception):
    """Base class for all the errors raised by this package."""


class InvalidRequestURI(ResolveError):
    """We cannot build the manifest service URI for a release key."""


class RemoteCallFailed(ResolveError):
    """The call to the manifest service failed."""


class TransportFailure(RemoteCallFailed):
    """Network, DNS or TLS failure while talking to the manifest service."""


class RemoteRejected(RemoteCallFailed):
    """The manifest service replied with a non-successful status."""

    def __init__(self, status_code: int, reason: str, url: str = ""):
        message = f"manifest service returned {status_code} {reason}"
        if url:
            message = f"{message} for {url}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.url = url


class DeserializeFailure(ResolveError):
    """A payload is not JSON or does not have the expected shape."""


class ObjectStoreError(ResolveError):
    """Base class for object store failures."""


class ObjectFetchFailed(ObjectStoreError):
    """Cannot read an object from the object store."""


class ObjectNotFound(ObjectFetchFailed):
    """The requested object does not exist."""


class ObjectAccessDenied(ObjectFetchFailed):
    """We are not authorized to read the requested object."""


class ObjectPutFailed(ObjectStoreError):
    """Cannot write an object to the object store."""


class ManifestError(ResolveError):
    """The manifest is well-formed JSON but cannot be translated."""


class UnsupportedManifestFeature(ManifestError):
    """The manifest uses a feature we do not support (e.g., a non-S3 URI)."""


class InvalidManifest(ManifestError):
    """The manifest contains semantically invalid data (e.g., an empty bucket)."""


class CachePersistFailure(ResolveError):
    """
    Cannot persist the resolved rules into the cache.

    The rules were computed successfully, so we attach them to the
    exception and let the caller decide whether to use them anyway.
    """

    def __init__(self, message: str, rules: list[RoutingRule] | None = None):
        super().__init__(message)
        self.rules = list(rules) if rules is not None else []
