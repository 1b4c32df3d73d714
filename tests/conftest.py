"""Shared pytest fixtures for htsroute tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from htsroute.objstore import InMemoryObjectStore

MANIFEST_BUCKET = "elsa-data-tmp"
MANIFEST_KEY = "htsget-manifests/R004"
CACHE_BUCKET = "htsget-cache"


class FakeClock:
    """Clock returning a settable timezone-aware time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _fake_response(status_code: int = 200, data: object = None, reason: str = "OK") -> MagicMock:
    """Create a mock requests response returning the given JSON data."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.reason = reason
    resp.json.return_value = data
    return resp


@pytest.fixture
def example_manifest() -> dict:
    """Return a manifest with two reads and two variants entries."""
    return {
        "id": "R004",
        "reads": {
            "30F9F3FED8F711ED8C35DBEF59E9F537": {
                "url": "s3://umccr-10g-data-dev/HG00097/HG00097.bam",
                "restrictions": [{"chromosome": 1, "start": 1, "end": 10}],
            },
            "30F9FFD4D8F711ED8C353BBCB8861211": {
                "url": "s3://umccr-10g-data-dev/HG00096/HG00096.bam",
                "restrictions": [{"chromosome": 2, "end": 10}],
            },
        },
        "variants": {
            "30F9F3FED8F711ED8C35DBEF59E9F537": {
                "url": "s3://umccr-10g-data-dev/HG00097/HG00097.hard-filtered.vcf.gz",
                "restrictions": [{"chromosome": 3, "start": 10}],
                "variantSampleId": "",
            },
            "30F9FFD4D8F711ED8C353BBCB8861211": {
                "url": "s3://umccr-10g-data-dev/HG00096/HG00096.hard-filtered.vcf.gz",
                "restrictions": [{"chromosome": 4}],
                "variantSampleId": "",
            },
        },
        "cases": [
            {
                "ids": {"": "SINGLETONCHARLES"},
                "patients": [
                    {
                        "ids": {"": "CHARLES"},
                        "specimens": [
                            {
                                "htsgetId": "30F9FFD4D8F711ED8C353BBCB8861211",
                                "ids": {"": "HG00096"},
                            }
                        ],
                    }
                ],
            }
        ],
    }


@pytest.fixture
def example_location() -> dict:
    """Return the manifest service response pointing to the example manifest."""
    return {
        "location": {"bucket": MANIFEST_BUCKET, "key": MANIFEST_KEY},
        "maxAge": 86400,
    }


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock starting at a fixed time."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def store(clock: FakeClock, example_manifest: dict) -> InMemoryObjectStore:
    """Return an in-memory store already containing the example manifest."""
    store = InMemoryObjectStore(clock=clock)
    store.set_object(MANIFEST_BUCKET, MANIFEST_KEY, json.dumps(example_manifest).encode())
    return store


@pytest.fixture
def session(example_location: dict) -> MagicMock:
    """Return a mock requests session answering with the example location."""
    session = MagicMock()
    session.get.return_value = _fake_response(200, example_location)
    return session


@pytest.fixture
def make_response():
    """Return a factory of mock requests responses."""
    return _fake_response
