"""
Routing rules produced by resolving a release.

A `RoutingRule` maps a request id (e.g., `R004/30F9F3FE`) onto an object
in a bucket and restricts which formats, reference names and genomic
intervals the caller may access.

Rules are plain immutable values and can be serialized to and from JSON
compatible dictionaries, which is how the cache persists them:

{
  "regex": "^R004/30F9F3FE$",
  "substitution_string": "HG00097/HG00097",
  "bucket": "umccr-10g-data-dev",
  "allow_formats": ["BAM"],
  "allow_reference_names": ["1"],
  "allow_interval": {"start": 1, "end": 10}
}

A null `allow_reference_names` means that every reference name is allowed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import dacite


class Format(str, Enum):
    """Genomic file formats a rule may allow."""

    BAM = "BAM"
    CRAM = "CRAM"
    VCF = "VCF"
    BCF = "BCF"

    @classmethod
    def _missing_(cls, value):
        # Manifests written by hand often use "Bam" or "bam"
        if isinstance(value, str):
            for member in cls:
                if member.value == value.upper():
                    return member
        return None

    def file_ending(self) -> str:
        """Return the canonical file ending for the format."""
        return _FILE_ENDINGS[self]


_FILE_ENDINGS = {
    Format.BAM: ".bam",
    Format.CRAM: ".cram",
    Format.VCF: ".vcf.gz",
    Format.BCF: ".bcf",
}


@dataclass(frozen=True, kw_only=True)
class Interval:
    """
    Genomic interval where a None bound means unbounded.

    Attributes:
        start: the first allowed position or None.
        end: the end position or None.
    """

    start: int | None = None
    end: int | None = None

    def covers(self, start: int | None, end: int | None) -> bool:
        """Return whether the queried [start, end) range lies within this interval."""
        if self.start is not None and (start is None or start < self.start):
            return False
        if self.end is not None and (end is None or end > self.end):
            return False
        return True


@dataclass(frozen=True, kw_only=True)
class _SerializedRule:
    regex: str
    substitution_string: str
    bucket: str
    allow_formats: list[Format] = field(default_factory=lambda: list(Format))
    allow_reference_names: list[str] | None = None
    allow_interval: Interval = field(default_factory=Interval)


@dataclass(frozen=True, kw_only=True)
class RoutingRule:
    """
    Rule routing a request id to an object in an S3 bucket.

    Attributes:
        regex: pattern matched against the request id.
        substitution_string: template producing the object key.
        bucket: the bucket containing the object.
        allow_formats: the formats the caller may request.
        allow_reference_names: the allowed reference names or None for any.
        allow_interval: the allowed genomic interval.

    Raises:
        ValueError: if the regex does not compile.
    """

    regex: str
    substitution_string: str
    bucket: str
    allow_formats: tuple[Format, ...] = tuple(Format)
    allow_reference_names: tuple[str, ...] | None = None
    allow_interval: Interval = field(default_factory=Interval)
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            pattern = re.compile(self.regex)
        except re.error as exc:
            raise ValueError(f"invalid rule regex {self.regex!r}: {exc}") from exc
        object.__setattr__(self, "_pattern", pattern)

    def matches(self, query_id: str) -> bool:
        """Return whether the request id matches this rule."""
        return self._pattern.search(query_id) is not None

    def resolve_id(self, query_id: str) -> str | None:
        """Return the object key for the request id, or None if the rule does not match."""
        match = self._pattern.search(query_id)
        if match is None:
            return None
        return match.expand(self.substitution_string)

    def allows(
        self,
        *,
        format: Format,
        reference_name: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> bool:
        """
        Return whether this rule permits the given query.

        A query without reference name asks for the whole file, which is
        only allowed when the rule does not restrict reference names.
        """
        if format not in self.allow_formats:
            return False
        if self.allow_reference_names is not None:
            if reference_name is None or reference_name not in self.allow_reference_names:
                return False
        return self.allow_interval.covers(start, end)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the rule."""
        return {
            "regex": self.regex,
            "substitution_string": self.substitution_string,
            "bucket": self.bucket,
            "allow_formats": [fmt.value for fmt in self.allow_formats],
            "allow_reference_names": (
                list(self.allow_reference_names)
                if self.allow_reference_names is not None
                else None
            ),
            "allow_interval": {
                "start": self.allow_interval.start,
                "end": self.allow_interval.end,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoutingRule:
        """
        Build a rule from its dictionary representation.

        Raises:
            dacite.DaciteError: if the data does not have the expected shape.
            ValueError: if the regex is invalid or a format is unknown.
        """
        serialized = dacite.from_dict(_SerializedRule, data, config=dacite.Config(cast=[Format]))
        return cls(
            regex=serialized.regex,
            substitution_string=serialized.substitution_string,
            bucket=serialized.bucket,
            allow_formats=tuple(serialized.allow_formats),
            allow_reference_names=(
                tuple(serialized.allow_reference_names)
                if serialized.allow_reference_names is not None
                else None
            ),
            allow_interval=serialized.allow_interval,
        )
