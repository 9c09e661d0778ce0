"""Command-line interface for oppfeeds."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

import click

from oppfeeds.config import EVENTS, ICAL, OPPORTUNITIES, RSS, feeds_for
from oppfeeds.dates import DateParseError, format_date
from oppfeeds.filters import RecordFilter, apply, facet_values, group_by_type
from oppfeeds.pipeline import normalize
from oppfeeds.publish import publish
from oppfeeds.store import DataFileError, SourceStore
from oppfeeds.validate import validate_events, validate_opportunities

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(format=LOG_FORMAT, level=level)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _publish(ctx: click.Context, fmt: str | None) -> None:
    store: SourceStore = ctx.obj["store"]
    feeds = feeds_for(fmt, site_url=ctx.obj["site_url"])
    try:
        results = publish(feeds, store)
    except DataFileError as exc:
        logger.error("Feed generation aborted: %s", exc)
        ctx.exit(1)

    for result in results:
        status = "updated" if result.written else "unchanged"
        click.echo(f"{result.feed.name}: {result.items} item(s), {status} ({result.path})")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Dashboard checkout holding data/ and community-events/ (default: .).",
)
@click.option("--site-url", default=None, help="Public base URL used in feed links.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root: Path | None, site_url: str | None) -> None:
    """oppfeeds: RSS and iCalendar feeds for the opportunities dashboard."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["store"] = SourceStore(root=root)
    ctx.obj["site_url"] = site_url


@cli.command()
@click.pass_context
def rss(ctx: click.Context) -> None:
    """Regenerate the RSS feeds."""
    _publish(ctx, RSS)


@cli.command()
@click.pass_context
def ical(ctx: click.Context) -> None:
    """Regenerate the iCalendar feeds."""
    _publish(ctx, ICAL)


@cli.command("publish")
@click.pass_context
def publish_cmd(ctx: click.Context) -> None:
    """Regenerate every feed."""
    _publish(ctx, None)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate both JSON data files; exit 1 on any error."""
    store: SourceStore = ctx.obj["store"]
    failed = False

    for source, check in ((OPPORTUNITIES, validate_opportunities), (EVENTS, validate_events)):
        path = store.path_for(source)
        if not path.exists():
            click.echo(f"WARNING: {path} not found")
            continue
        try:
            data = store.load_raw(source)
        except DataFileError as exc:
            click.echo(f"FAIL: {exc}", err=True)
            failed = True
            continue
        result = check(data)
        if result.valid:
            click.echo(f"OK: {result.name} is valid ({result.count} items)")
        else:
            failed = True
            click.echo(f"FAIL: {result.name} has {len(result.errors)} error(s):", err=True)
            for error in result.errors:
                click.echo(f"  - {error}", err=True)

    click.echo("Validation failed" if failed else "All validations passed")
    if failed:
        ctx.exit(1)


@cli.command("list")
@click.option("--kind", type=click.Choice([OPPORTUNITIES, EVENTS]), default=OPPORTUNITIES, show_default=True)
@click.option("--region", default="", help="Only this region.")
@click.option("--type", "type_", default="", help="Only this type.")
@click.option("--category", default="", help="Only this category.")
@click.option("--format", "format_", default="", help="Only this format.")
@click.option("--include-past", is_flag=True, help="Also show records whose date has passed.")
@click.pass_context
def list_records(
    ctx: click.Context,
    kind: str,
    region: str,
    type_: str,
    category: str,
    format_: str,
    include_past: bool,
) -> None:
    """Show visible records grouped by type."""
    store: SourceStore = ctx.obj["store"]
    try:
        records = store.load(kind)
    except DataFileError as exc:
        logger.error("%s", exc)
        ctx.exit(1)

    record_filter = RecordFilter(
        region=region, type=type_, category=category, format=format_, include_past=include_past
    )
    visible = apply(records, record_filter)
    if not visible:
        click.echo("No matching records.")
        return

    for type_name, group in group_by_type(visible):
        click.echo(f"{type_name} ({len(group)})")
        for record in group:
            when = format_date(record.start_date) or "no date"
            click.echo(f"  - {record.title} [{when}]")
    click.echo(f"\n{len(visible)} record(s)")


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show record counts per date classification."""
    store: SourceStore = ctx.obj["store"]
    for source in (OPPORTUNITIES, EVENTS):
        try:
            records = store.load(source)
        except DataFileError as exc:
            logger.error("%s", exc)
            ctx.exit(1)

        counts: Counter[str] = Counter()
        for record in records:
            if record.archived:
                counts["archived"] += 1
                continue
            try:
                counts[normalize(record).classification.value] += 1
            except DateParseError:
                counts["invalid"] += 1

        click.echo(f"{source}: {len(records)} record(s)")
        for label, count in sorted(counts.items()):
            click.echo(f"  {label:<16} {count}")
        regions = facet_values(records, "region")
        if regions:
            click.echo(f"  regions: {', '.join(regions)}")
