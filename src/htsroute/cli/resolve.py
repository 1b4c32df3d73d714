"""Resolve command."""

import asyncio
import json
import logging

import click

from ..config import create_endpoint
from ..errors import CachePersistFailure, ResolveError
from . import cli
from .common import config_option, load_config_or_fail, verbose_option
from .logger import configure_logging

log = logging.getLogger("htsroute/cli")


@cli.command()
@click.argument("release_key")
@config_option
@verbose_option
def resolve(release_key: str, config_file: str, verbose: bool) -> None:
    """Print the routing rules of RELEASE_KEY as JSON.

    Rules come from the cache when fresh, otherwise from the manifest
    service, in which case we also refresh the cache.
    """
    configure_logging(verbose)
    config = load_config_or_fail(config_file)
    endpoint = create_endpoint(config)

    try:
        rules = asyncio.run(endpoint.resolve(release_key))
    except CachePersistFailure as exc:
        log.warning("%s", exc)
        rules = exc.rules
    except ResolveError as exc:
        raise click.ClickException(f"cannot resolve {release_key}: {exc}") from exc

    click.echo(json.dumps([rule.to_dict() for rule in rules], indent=2))
