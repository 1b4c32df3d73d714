"""Module translating a manifest document into routing rules."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from .errors import InvalidManifest, UnsupportedManifestFeature
from .manifest import DataEntry, ManifestDocument
from .resolver import Format, Interval, RoutingRule

log = logging.getLogger("htsroute/translator")

SUPPORTED_SCHEME = "s3"


def translate(document: ManifestDocument) -> list[RoutingRule]:
    """
    Convert a manifest document into routing rules.

    Each entry yields one rule per restriction, so each rule is scoped
    to a single chromosome and interval. Entries are visited reads first
    and then variants, in sorted entry-id order, so the result does not
    depend on the order of the JSON objects.

    Raises:
        UnsupportedManifestFeature: if an entry uses a non-S3 URI.
        InvalidManifest: if an entry has an invalid URI or id.
    """
    rules: list[RoutingRule] = []
    for entry_id, entry, default_format in _iter_entries(document):
        rules.extend(
            rules_for_entry(
                release_key=document.release_key,
                entry_id=entry_id,
                entry=entry,
                default_format=default_format,
            )
        )
    return rules


def _iter_entries(document: ManifestDocument) -> Iterator[tuple[str, DataEntry, Format]]:
    for entry_id in sorted(document.reads):
        yield entry_id, document.reads[entry_id], Format.BAM
    for entry_id in sorted(document.variants):
        yield entry_id, document.variants[entry_id], Format.VCF


def rules_for_entry(
    *,
    release_key: str,
    entry_id: str,
    entry: DataEntry,
    default_format: Format,
) -> list[RoutingRule]:
    """Return the rules for a single manifest entry."""
    fmt = entry.format if entry.format is not None else default_format
    bucket, key = split_storage_uri(entry.url, fmt)

    if not entry.restrictions:
        # An entry without restrictions yields no rule and is thus unreachable
        log.warning("entry %s/%s has no restrictions: no rules generated", release_key, entry_id)
        return []

    regex = f"^{release_key}/{entry_id}$"
    rules: list[RoutingRule] = []
    for restriction in entry.restrictions:
        try:
            rule = RoutingRule(
                regex=regex,
                substitution_string=key,
                bucket=bucket,
                allow_formats=(fmt,),
                allow_reference_names=(str(restriction.chromosome),),
                allow_interval=Interval(start=restriction.start, end=restriction.end),
            )
        except ValueError as exc:
            raise InvalidManifest(f"failed to construct regex for {entry_id}: {exc}") from exc
        rules.append(rule)
    return rules


def split_storage_uri(url: str, fmt: Format) -> tuple[str, str]:
    """
    Split an `s3://bucket/key` URI into the bucket and the key.

    The format file ending, if present, is stripped from the key.

    Raises:
        UnsupportedManifestFeature: if the scheme is not s3.
        InvalidManifest: if the bucket or the key is empty.
    """
    scheme, sep, remainder = url.partition("://")
    if not sep or scheme.lower() != SUPPORTED_SCHEME:
        raise UnsupportedManifestFeature(f"only S3 manifest uris are supported: {url}")

    bucket, _, key = remainder.partition("/")
    if not bucket:
        raise InvalidManifest(f"missing bucket from uri: {url}")
    if not key:
        raise InvalidManifest(f"missing object path from uri: {url}")

    return bucket, key.removesuffix(fmt.file_ending())
