"""
Documents exchanged with the manifest service.

Resolving a release involves two documents. The manifest service first
replies with a location response pointing to the object holding the
manifest, along with how long we may trust it:

{
  "location": {
    "bucket": "elsa-data-tmp",
    "key": "htsget-manifests/R004"
  },
  "maxAge": 86400
}

The manifest object itself lists the reads and variants files shared by
the release along with the genomic regions each one may expose:

{
  "id": "R004",
  "reads": {
    "30F9F3FED8F711ED8C35DBEF59E9F537": {
      "url": "s3://umccr-10g-data-dev/HG00097/HG00097.bam",
      "restrictions": [{"chromosome": 1, "start": 1, "end": 10}]
    }
  },
  "variants": {}
}

The release key is named `releaseKey` or `id` depending on the service
version. Unknown keys (e.g., `cases`) are ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

import dacite

from .errors import DeserializeFailure
from .resolver import Format

_UINT8_MAX: Final[int] = 2**8 - 1
_UINT32_MAX: Final[int] = 2**32 - 1
_UINT64_MAX: Final[int] = 2**64 - 1


def _camel_case(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(word.capitalize() for word in rest)


_DACITE_CONFIG: Final[dacite.Config] = dacite.Config(
    cast=[Format],
    convert_key=_camel_case,
)


def _check_range(name: str, value: int, upper: int) -> None:
    # JSON booleans decode to bool, which is an int subclass
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, not a boolean")
    if not 0 <= value <= upper:
        raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True, kw_only=True)
class ManifestLocation:
    """Object store location of a manifest."""

    bucket: str
    key: str


@dataclass(frozen=True, kw_only=True)
class ManifestLocationResponse:
    """
    Response of the manifest service for a release key.

    Attributes:
        location: where the manifest document lives.
        max_age: number of seconds the resolved rules may be cached.
    """

    location: ManifestLocation
    max_age: int

    def __post_init__(self):
        _check_range("maxAge", self.max_age, _UINT64_MAX)


@dataclass(frozen=True, kw_only=True)
class RegionRestriction:
    """Genomic region a manifest entry exposes. None bounds are unbounded."""

    chromosome: int
    start: int | None = None
    end: int | None = None

    def __post_init__(self):
        _check_range("chromosome", self.chromosome, _UINT8_MAX)
        for name, value in (("start", self.start), ("end", self.end)):
            if value is not None:
                _check_range(name, value, _UINT32_MAX)


@dataclass(frozen=True, kw_only=True)
class DataEntry:
    """Single reads or variants file shared by a release."""

    url: str
    format: Format | None = None
    restrictions: list[RegionRestriction] = field(default_factory=list)


@dataclass(frozen=True, kw_only=True)
class ManifestDocument:
    """Manifest listing the files shared by a release."""

    release_key: str
    reads: dict[str, DataEntry] = field(default_factory=dict)
    variants: dict[str, DataEntry] = field(default_factory=dict)


def load_location_response(data: Any) -> ManifestLocationResponse:
    """
    Load the manifest service response from decoded JSON.

    Raises:
        DeserializeFailure: if the data does not have the expected shape.
    """
    return _from_dict(ManifestLocationResponse, data, descr="manifest location response")


def load_manifest_document(data: Any) -> ManifestDocument:
    """
    Load a manifest document from decoded JSON.

    Raises:
        DeserializeFailure: if the data does not have the expected shape.
    """
    if isinstance(data, Mapping) and "releaseKey" not in data and "id" in data:
        data = {**data, "releaseKey": data["id"]}
    return _from_dict(ManifestDocument, data, descr="manifest document")


def _from_dict(data_class, data: Any, *, descr: str):
    if not isinstance(data, Mapping):
        raise DeserializeFailure(f"invalid {descr}: expected a JSON object")
    try:
        return dacite.from_dict(data_class, data, config=_DACITE_CONFIG)
    except (dacite.DaciteError, TypeError, ValueError) as exc:
        raise DeserializeFailure(f"invalid {descr}: {exc}") from exc
