"""
Backlink intelligence commands: discovery trend and referring-domain rollup.

Both work on the latest complete snapshot of a site.
"""

import math
import click
from datetime import date
from tabulate import tabulate
from db import Database
from domain.rollup import rollup_domains
from domain.trend import build_trend
from settings import DEFAULT_TREND_RANGE

SORT_KEYS = {
    'dr': lambda s: s.authority_score,
    'backlinks': lambda s: s.link_count,
    'dofollow': lambda s: s.dofollow_count,
    'traffic': lambda s: s.traffic,
}


@click.group()
def intel():
    """Analyze the latest snapshot of a site."""
    pass


def _load_latest(db, session, host):
    """Return (site, snapshot, records) or None after printing why."""
    s = db.get_site_by_host(session, host)
    if not s:
        click.echo(click.style(f"✗ Site '{host}' not found", fg="red"))
        return None

    snap = db.latest_snapshot(session, s.id)
    if not snap:
        click.echo(click.style(f"✗ Site '{host}' has no complete snapshots", fg="yellow"))
        return None

    return s, snap, db.get_snapshot_records(session, snap.id)


@intel.command()
@click.argument('host')
@click.option('--mode', '-m', type=click.Choice(['cumulative', 'daily']), default='cumulative', help='Running total or per-day new domains')
@click.option('--range', '-r', 'range_days', default=DEFAULT_TREND_RANGE, help="Trailing window in days, or 'all' (default: DEFAULT_TREND_RANGE)")
@click.option('--day', default=None, help='Drill down: list the backlinks first seen on this day (YYYY-MM-DD)')
def trend(host, mode, range_days, day):
    """
    Show the referring-domain discovery trend of a site.

    Example:
        backlinks intel trend example.com
        backlinks intel trend example.com --mode daily --range all
        backlinks intel trend example.com --day 2024-01-10
    """
    if range_days != 'all' and not str(range_days).isdigit():
        raise click.BadParameter("must be a number of days or 'all'", param_hint='--range')

    db = Database()
    session = db.get_session()

    try:
        loaded = _load_latest(db, session, host)
        if not loaded:
            return
        s, snap, records = loaded

        points = build_trend(records, mode=mode, range_days=range_days)
        if not points:
            click.echo(click.style("No dated backlinks in this range", fg="yellow"))
            return

        if day:
            try:
                wanted = date.fromisoformat(day)
            except ValueError:
                raise click.BadParameter("expected YYYY-MM-DD", param_hint='--day')
            point = next((p for p in points if p.day == wanted), None)
            if not point:
                click.echo(click.style(f"No backlinks first seen on {day}", fg="yellow"))
                return
            click.echo(click.style(f"\n{len(point.records)} backlinks first seen on {day}:\n", fg="cyan", bold=True))
            for record in point.records:
                click.echo(f"  {click.style(record.referring_domain, bold=True)}  {record.source_page_url}")
            return

        label = 'Total domains' if mode == 'cumulative' else 'New domains'
        click.echo(click.style(f"\nReferring domain trend for {s.canonical_host} (snapshot {snap.id}, {mode}, range {range_days})\n",
                               fg="cyan", bold=True))
        table = [[p.day.isoformat(), p.count, p.new_domains, len(p.records)] for p in points]
        click.echo(tabulate(table, headers=['Day', label, 'New', 'Backlinks'], tablefmt='simple'))

    finally:
        session.close()


@intel.command()
@click.argument('host')
@click.option('--sort', 'sort_key', type=click.Choice(sorted(SORT_KEYS)), default='dr', help='Sort column (default: dr)')
@click.option('--asc', is_flag=True, help='Sort ascending instead of descending')
@click.option('--search', default=None, help='Only domains containing this text')
@click.option('--dofollow-only', is_flag=True, help='Only domains with at least one dofollow link')
@click.option('--hide-at-risk', is_flag=True, help='Hide domains flagged by the spam heuristic')
@click.option('--page', type=int, default=1, help='Page number (default: 1)')
@click.option('--page-size', type=int, default=25, help='Domains per page (default: 25)')
def domains(host, sort_key, asc, search, dofollow_only, hide_at_risk, page, page_size):
    """
    List referring domains of a site with quality flags.

    Example:
        backlinks intel domains example.com
        backlinks intel domains example.com --sort backlinks --hide-at-risk
    """
    db = Database()
    session = db.get_session()

    try:
        loaded = _load_latest(db, session, host)
        if not loaded:
            return
        s, snap, records = loaded

        summaries = rollup_domains(records, db.library_domain_set(session))

        if search:
            summaries = [d for d in summaries if search.lower() in d.domain]
        if dofollow_only:
            summaries = [d for d in summaries if d.dofollow_count > 0]
        if hide_at_risk:
            summaries = [d for d in summaries if not d.is_at_risk]

        summaries.sort(key=lambda d: d.domain)
        summaries.sort(key=SORT_KEYS[sort_key], reverse=not asc)

        if not summaries:
            click.echo(click.style("No domains match", fg="yellow"))
            return

        total_pages = max(1, math.ceil(len(summaries) / page_size))
        page = min(max(page, 1), total_pages)
        start = (page - 1) * page_size

        table = []
        for d in summaries[start:start + page_size]:
            risk = click.style('at-risk', fg='red') if d.is_at_risk else click.style('healthy', fg='green')
            library = click.style('yes', fg='cyan') if d.in_catalog else 'no'
            table.append([d.domain, f"{d.authority_score:g}", d.link_count, d.dofollow_count, f"{d.traffic:,.0f}", risk, library])

        click.echo(click.style(f"\nReferring domains of {s.canonical_host} (snapshot {snap.id})\n", fg="cyan", bold=True))
        click.echo(tabulate(table, headers=['Domain', 'DR', 'Links', 'Dofollow', 'Traffic', 'Risk', 'Library'], tablefmt='simple'))
        click.echo(f"\nPage {page} of {total_pages}  |  {len(summaries)} domains")

    finally:
        session.close()
