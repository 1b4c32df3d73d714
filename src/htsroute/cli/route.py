"""Route command."""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from ..config import create_endpoint
from ..resolver import Format, RoutingRule
from ..routing import find_rule, matching_rules, rules_for_request
from . import cli
from .common import config_option, load_config_or_fail, verbose_option
from .logger import configure_logging


def _format_bound(value: int | None) -> str:
    return "*" if value is None else str(value)


def _rule_table(title: str, rule: RoutingRule, request_id: str) -> Table:
    reference_names = rule.allow_reference_names
    table = Table(title=title, show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("bucket", rule.bucket)
    table.add_row("key", rule.resolve_id(request_id) or "")
    table.add_row("formats", ", ".join(fmt.value for fmt in rule.allow_formats))
    table.add_row(
        "reference names",
        "*" if reference_names is None else ", ".join(reference_names),
    )
    table.add_row(
        "interval",
        f"{_format_bound(rule.allow_interval.start)}-{_format_bound(rule.allow_interval.end)}",
    )
    return table


@cli.command()
@click.argument("request_id")
@click.option(
    "--format",
    "fmt",
    type=click.Choice([fmt.value for fmt in Format], case_sensitive=False),
    default=None,
    help="Only show the rule allowing this format.",
)
@click.option("--reference-name", default=None, help="Reference name of the query.")
@click.option("--start", type=click.IntRange(min=0), default=None, help="Query start.")
@click.option("--end", type=click.IntRange(min=0), default=None, help="Query end.")
@config_option
@verbose_option
def route(
    request_id: str,
    fmt: str | None,
    reference_name: str | None,
    start: int | None,
    end: int | None,
    config_file: str,
    verbose: bool,
) -> None:
    """Show where REQUEST_ID is routed and what it may access.

    We combine the rules resolved for the release with the static
    rules in the config. If resolution fails, we only use the static
    rules. Without --format we show every rule matching REQUEST_ID,
    which means one rule per restriction of a manifest entry. With
    --format we show the first rule allowing the query instead.
    Exits with 1 when no rule is selected.
    """
    configure_logging(verbose)
    config = load_config_or_fail(config_file)
    endpoint = create_endpoint(config)

    rules = asyncio.run(rules_for_request(endpoint, request_id, config.resolvers))
    if fmt is None:
        selected = matching_rules(rules, request_id)
    else:
        rule = find_rule(
            rules,
            request_id,
            format=Format(fmt),
            reference_name=reference_name,
            start=start,
            end=end,
        )
        selected = [rule] if rule is not None else []

    if not selected:
        click.echo(f"No rule matches {request_id}.", err=True)
        raise SystemExit(1)

    console = Console()
    for index, rule in enumerate(selected, start=1):
        title = request_id if len(selected) == 1 else f"{request_id} ({index}/{len(selected)})"
        console.print(_rule_table(title, rule, request_id))
