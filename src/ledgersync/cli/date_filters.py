"""CLI helpers for date range resolution."""

from datetime import date

import click

from ledgersync.utils.date_parser import get_date_range, parse_date


def _parse_option(ctx, label: str, value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label} date: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve an inclusive date range from period flags or explicit dates.

    A single period flag decides the range on its own. Explicit dates may be
    given alone for an open-ended range. With neither, default_range applies.
    """
    selected = [period for period, is_set in period_flags.items() if is_set]

    if len(selected) > 1:
        flags = ", ".join(f"--{period}" for period in selected)
        click.echo(f"Error: Only one period option can be specified at a time (got {flags}).", err=True)
        ctx.exit(1)

    if selected and (start_date or end_date):
        click.echo(
            f"Error: --{selected[0]} cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if selected:
        return get_date_range(selected[0])

    start = _parse_option(ctx, "start", start_date)
    end = _parse_option(ctx, "end", end_date)

    if start is None and end is None and default_range is not None:
        return default_range

    if start is not None and end is not None and start > end:
        click.echo(f"Error: Start date {start} is after end date {end}.", err=True)
        ctx.exit(1)

    return start, end
