"""htsroute library.

This library resolves data-sharing releases into htsget routing rules. It
asks a manifest service where the manifest of a release lives, reads the
manifest from an object store, translates it into rules, and caches the
rules in the object store for as long as the service allows.
"""

from importlib.metadata import PackageNotFoundError, version

from .cache import ObjectStoreCache, RuleCache
from .client import ManifestClient
from .config import HtsrouteConfig, create_endpoint, load_config
from .endpoint import ResolutionEndpoint
from .errors import ResolveError
from .manifest import ManifestDocument, ManifestLocationResponse
from .objstore import InMemoryObjectStore, ObjectStore, S3ObjectStore
from .resolver import Format, Interval, RoutingRule
from .routing import rules_for_request
from .translator import translate

try:
    __version__ = version("htsroute")
except PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

__all__ = [
    "Format",
    "HtsrouteConfig",
    "InMemoryObjectStore",
    "Interval",
    "ManifestClient",
    "ManifestDocument",
    "ManifestLocationResponse",
    "ObjectStore",
    "ObjectStoreCache",
    "ResolutionEndpoint",
    "ResolveError",
    "RoutingRule",
    "RuleCache",
    "S3ObjectStore",
    "create_endpoint",
    "load_config",
    "rules_for_request",
    "translate",
    "__version__",
]
