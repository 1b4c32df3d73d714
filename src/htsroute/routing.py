"""
Helpers to select the rules for an incoming request id.

Request ids look like `<release_key>/<entry_id>`. We resolve the release
key into dynamic rules and put them before the statically configured
rules. If resolution fails, we log a warning and fall back to the static
rules, so a manifest service outage only affects dynamic releases.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .endpoint import ResolutionEndpoint
from .errors import ResolveError
from .resolver import Format, RoutingRule

log = logging.getLogger("htsroute/routing")


def release_key_for_request(request_id: str) -> str | None:
    """Return the release key of a request id or None when there is none."""
    release_key = request_id.split("/", 1)[0]
    return release_key or None


async def rules_for_request(
    endpoint: ResolutionEndpoint,
    request_id: str,
    static_rules: Sequence[RoutingRule] = (),
) -> list[RoutingRule]:
    """Return the dynamic rules for the request followed by the static ones."""
    release_key = release_key_for_request(request_id)
    if release_key is not None:
        try:
            rules = await endpoint.resolve(release_key)
        except ResolveError as exc:
            log.warning(
                "cannot resolve %s: %s; using only the configured rules", release_key, exc
            )
        else:
            return [*rules, *static_rules]
    else:
        log.warning("no release key in %r; using only the configured rules", request_id)
    return list(static_rules)


def matching_rules(rules: Iterable[RoutingRule], request_id: str) -> list[RoutingRule]:
    """
    Return every rule matching the request id, in order.

    A manifest entry yields one rule per restriction, so several rules
    usually share the same regex and differ by what they allow.
    """
    return [rule for rule in rules if rule.matches(request_id)]


def find_rule(
    rules: Iterable[RoutingRule],
    request_id: str,
    *,
    format: Format | None = None,
    reference_name: str | None = None,
    start: int | None = None,
    end: int | None = None,
) -> RoutingRule | None:
    """
    Return the first rule matching the request id, if any.

    When a format is given, the rule must also allow the query made of
    the format, the reference name and the interval.
    """
    for rule in matching_rules(rules, request_id):
        if format is None or rule.allows(
            format=format, reference_name=reference_name, start=start, end=end
        ):
            return rule
    return None
