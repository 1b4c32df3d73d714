"""Module implementing the ResolutionEndpoint type."""

from __future__ import annotations

import logging
from typing import Final, Protocol

from .cache import RuleCache
from .errors import CachePersistFailure
from .manifest import ManifestDocument, ManifestLocation, ManifestLocationResponse
from .resolver import RoutingRule
from .translator import translate

log = logging.getLogger("htsroute/endpoint")

DEFAULT_CACHE_NAMESPACE: Final[str] = "htsget-manifest-cache"


class ManifestSource(Protocol):
    """
    Source of release manifests (see `client.ManifestClient`).

    Methods:
        fetch_location: return where the manifest of a release lives.
        fetch_manifest: return the manifest stored at a location.
    """

    async def fetch_location(self, release_key: str) -> ManifestLocationResponse: ...

    async def fetch_manifest(self, location: ManifestLocation) -> ManifestDocument: ...


class ResolutionEndpoint:
    """
    Resolve release keys into routing rules using a cache-aside strategy.

    There is no locking between the cache lookup and the cache update.
    Concurrent resolutions of the same uncached release both fetch the
    manifest and store the result and the last write wins. Because the
    translation is a pure function of the manifest, this costs at most
    a duplicate fetch.
    """

    def __init__(
        self,
        client: ManifestSource,
        cache: RuleCache,
        *,
        cache_namespace: str = DEFAULT_CACHE_NAMESPACE,
    ) -> None:
        """
        Initialize the endpoint.

        Parameters:
            client: source of manifests.
            cache: cache of already resolved releases.
            cache_namespace: prefix of the cache keys.
        """
        self.client = client
        self.cache = cache
        self.cache_namespace = cache_namespace

    def cache_key(self, release_key: str) -> str:
        """Return the cache key for the given release key."""
        return f"{self.cache_namespace}/{release_key}"

    async def resolve(self, release_key: str) -> list[RoutingRule]:
        """
        Return the routing rules for the given release.

        Raises:
            ResolveError: if we cannot fetch or translate the manifest.
            CachePersistFailure: if we resolved the rules but cannot cache
                them. The rules are available as the exception's `rules`.
        """
        # 1. try with the cache first
        cache_key = self.cache_key(release_key)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            log.debug("resolving %s... cache hit", release_key)
            return cached

        # 2. fetch the manifest location and then the manifest
        log.info("resolving %s... start", release_key)
        response = await self.client.fetch_location(release_key)
        document = await self.client.fetch_manifest(response.location)

        # 3. translate the manifest into rules
        rules = translate(document)

        # 4. cache the rules for as long as the service allows
        try:
            await self.cache.put(cache_key, rules, response.max_age)
        except CachePersistFailure as exc:
            raise CachePersistFailure(str(exc), rules=rules) from exc
        except Exception as exc:
            raise CachePersistFailure(f"cannot cache {cache_key}: {exc}", rules=rules) from exc

        log.info("resolving %s... ok (%d rules)", release_key, len(rules))
        return rules
