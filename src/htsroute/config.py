"""
Module loading the resolver configuration.

The configuration is a YAML file like the following:

    version: 0
    manifest_endpoint: elsa.example.org
    cache_location: htsget-cache-bucket
    cache_namespace: htsget-manifest-cache
    scheme: https
    timeout: 30
    s3:
      region: ap-southeast-2
    resolvers:
      - regex: "^public/(?P<key>.*)$"
        substitution_string: "\\\\g<key>"
        bucket: public-data

Only `version`, `manifest_endpoint` and `cache_location` are required. The
`resolvers` are static rules that apply in addition to the rules resolved
from the manifest service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

import dacite
import requests
import yaml

from .cache import ObjectStoreCache
from .client import SUPPORTED_SCHEMES, ManifestClient
from .endpoint import DEFAULT_CACHE_NAMESPACE, ResolutionEndpoint
from .objstore import ObjectStore, S3ObjectStore
from .resolver import RoutingRule

CONFIG_VERSION: Final[int] = 0


class ConfigError(ValueError):
    """The configuration file is missing or invalid."""


@dataclass(frozen=True, kw_only=True)
class S3Settings:
    """Settings for the S3 client; None means using the AWS defaults."""

    region: str | None = None
    endpoint_url: str | None = None


@dataclass(frozen=True, kw_only=True)
class HtsrouteConfig:
    """
    Resolver configuration.

    Attributes:
        version: configuration format version (must be 0).
        manifest_endpoint: host[:port] of the manifest service.
        cache_location: bucket where to cache resolved rules.
        cache_namespace: prefix of the cache keys inside the bucket.
        scheme: scheme to talk with the manifest service.
        timeout: timeout in seconds for remote calls.
        s3: settings for the S3 client.
        resolvers: static rules.
    """

    version: int
    manifest_endpoint: str
    cache_location: str
    cache_namespace: str = DEFAULT_CACHE_NAMESPACE
    scheme: str = "https"
    timeout: float = 30.0
    s3: S3Settings = field(default_factory=S3Settings)
    resolvers: list[RoutingRule] = field(default_factory=list)

    def __post_init__(self):
        if self.version != CONFIG_VERSION:
            raise ValueError(f"unsupported config version: {self.version}")
        if not self.manifest_endpoint:
            raise ValueError("manifest_endpoint must not be empty")
        if not self.cache_location:
            raise ValueError("cache_location must not be empty")
        if self.scheme not in SUPPORTED_SCHEMES:
            raise ValueError(f"unsupported scheme: {self.scheme}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout}")


def parse_config(data: object) -> HtsrouteConfig:
    """
    Build the configuration from already-decoded data.

    Raises:
        ConfigError: if the data is invalid.
    """
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping")
    try:
        return dacite.from_dict(
            HtsrouteConfig,
            data,
            config=dacite.Config(type_hooks={float: float, RoutingRule: RoutingRule.from_dict}),
        )
    except (dacite.DaciteError, TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config: {exc}") from exc


def load_config(path: str | Path) -> HtsrouteConfig:
    """
    Load the configuration from a YAML file.

    Raises:
        ConfigError: if the file is missing or invalid.
    """
    config_path = Path(path)
    try:
        content = config_path.read_text()
    except FileNotFoundError as exc:
        raise ConfigError(f"config not found: {config_path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {config_path}: {exc}") from exc

    return parse_config(data)


def create_endpoint(
    config: HtsrouteConfig,
    *,
    store: ObjectStore | None = None,
    session: requests.Session | None = None,
) -> ResolutionEndpoint:
    """
    Create a ResolutionEndpoint from the configuration.

    The same object store holds both the manifests and the cache. When
    no store is given, we create an S3ObjectStore using the default AWS
    credentials chain.
    """
    if store is None:
        store = S3ObjectStore.from_settings(
            region=config.s3.region,
            endpoint_url=config.s3.endpoint_url,
            timeout=config.timeout,
        )
    client = ManifestClient(
        config.manifest_endpoint,
        store,
        scheme=config.scheme,
        session=session,
        timeout=config.timeout,
    )
    cache = ObjectStoreCache(store, config.cache_location)
    return ResolutionEndpoint(client, cache, cache_namespace=config.cache_namespace)
