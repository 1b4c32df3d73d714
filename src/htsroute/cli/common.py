"""Options and helpers shared by the htsroute subcommands."""

from __future__ import annotations

import click

from ..config import ConfigError, HtsrouteConfig, load_config

config_option = click.option(
    "-c",
    "--config",
    "config_file",
    envvar="HTSROUTE_CONFIG",
    required=True,
    metavar="FILE",
    help="Path to the YAML config file (env: HTSROUTE_CONFIG)",
)

verbose_option = click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose mode.")


def load_config_or_fail(config_file: str) -> HtsrouteConfig:
    """Load the config, turning errors into a click usage failure."""
    try:
        return load_config(config_file)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
