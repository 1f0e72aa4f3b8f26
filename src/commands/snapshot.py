"""
Snapshot import and inspection commands.
"""

import sys
import click
from db import Database, Site, Snapshot, SnapshotStatus
from extractors import ParseError
from processors.snapshot_import import import_files
from settings import DEBUG


@click.group()
def snapshot():
    """Import and inspect backlink snapshots."""
    pass


@snapshot.command(name='import')
@click.argument('files', nargs=-1, required=True, type=click.Path(dir_okay=False))
@click.option('--site', '-s', 'site_host', default=None, help='Site host (default: guessed from file name)')
@click.option('--name', '-n', default=None, help='Display name for a new site')
@click.option('--notes', default=None, help='Notes stored on each snapshot')
@click.option('--batch-size', type=int, default=None, help='Records per database write (default: IMPORT_BATCH_SIZE)')
def import_(files, site_host, name, notes, batch_size):
    """
    Import one or more exported backlink reports (CSV or XLSX).

    Files are imported one after another; the first file that cannot be
    parsed stops the remaining queue.

    Example:
        backlinks snapshot import example.com-backlinks.csv
        backlinks snapshot import export.xlsx --site example.com --name "Example"
    """
    db = Database()
    session = db.get_session()

    def progress(file_name, written, total):
        click.echo(f"  {file_name}: wrote {written} / {total} records")

    try:
        click.echo(f"Importing {len(files)} file(s)...\n")
        results = import_files(
            db, session, files,
            site_host=site_host,
            site_name=name,
            notes=notes,
            batch_size=batch_size,
            progress=progress
        )

        for result in results:
            m = result.metrics
            click.echo()
            click.echo(click.style(f"✓ {result.file_name} -> {result.site_host} (snapshot {result.snapshot_id})", fg="green"))
            click.echo(f"    Backlinks: {m.total_links} ({m.total_dofollow_links} dofollow)")
            click.echo(f"    Referring domains: {m.total_referring_domains} ({m.total_dofollow_referring_domains} dofollow)")
            if m.earliest_first_seen:
                click.echo(f"    First seen: {m.earliest_first_seen.date()} to {m.latest_first_seen.date()}")
            click.echo(f"    New library domains: {len(result.domains_created)}")

    except ParseError as e:
        click.echo(click.style(f"✗ {e}", fg="red"), err=True)
        sys.exit(1)
    except Exception as e:
        if DEBUG:
            raise
        click.echo(click.style(f"✗ Import failed: {e}", fg="red"), err=True)
        click.echo("  Run `backlinks snapshot prune` to remove the unfinished snapshot.", err=True)
        sys.exit(1)
    finally:
        session.close()


@snapshot.command()
@click.option('--site', '-s', 'site_host', default=None, help='Filter by site host')
@click.option('--limit', '-l', type=int, default=20, help='Number of snapshots to show (default: 20)')
def list(site_host, limit):
    """
    List snapshots, most recent first.

    Example:
        backlinks snapshot list
        backlinks snapshot list --site example.com
    """
    db = Database()
    session = db.get_session()

    try:
        query = session.query(Snapshot, Site).join(Site, Snapshot.site_id == Site.id)
        if site_host:
            s = db.get_site_by_host(session, site_host)
            if not s:
                click.echo(click.style(f"✗ Site '{site_host}' not found", fg="red"))
                return
            query = query.filter(Snapshot.site_id == s.id)

        rows = query.order_by(Snapshot.imported_at.desc(), Snapshot.id.desc()).limit(limit).all()
        if not rows:
            click.echo(click.style("No snapshots found", fg="yellow"))
            return

        for snap, s in rows:
            metrics = snap.get_metrics()
            status_color = "green" if snap.status == SnapshotStatus.COMPLETE else "yellow"
            click.echo(f"{click.style(f'[{snap.id}]', fg='cyan', bold=True)} {s.canonical_host}  {snap.source_file_name} "
                       f"{click.style(f'[{snap.status.value}]', fg=status_color)}")
            click.echo(f"    {snap.imported_at.strftime('%Y-%m-%d %H:%M')}  |  "
                       f"{metrics.total_links} links  |  {metrics.total_referring_domains} domains")

    finally:
        session.close()


@snapshot.command()
@click.argument('snapshot_id', type=int)
@click.option('--search', default=None, help='Filter rows by domain or anchor text')
@click.option('--limit', '-l', type=int, default=50, help='Number of rows to show (default: 50)')
@click.option('--no-pager', is_flag=True, help='Disable pager for output')
def show(snapshot_id, search, limit, no_pager):
    """
    Show the metrics and backlink rows of a snapshot.

    Example:
        backlinks snapshot show 3
        backlinks snapshot show 3 --search blog
    """
    db = Database()
    session = db.get_session()

    try:
        snap = db.get(session, Snapshot, snapshot_id)
        if not snap:
            click.echo(click.style(f"✗ Snapshot {snapshot_id} not found", fg="red"))
            return

        metrics = snap.get_metrics()
        output_lines = [
            click.style(f"\n=== Snapshot {snap.id}: {snap.source_file_name} ===\n", fg="cyan", bold=True),
            f"Site: {snap.site.canonical_host}",
            f"Imported: {snap.imported_at}",
            f"Status: {snap.status.value}",
            f"Records: {snap.record_count}",
            f"Backlinks: {metrics.total_links} ({metrics.total_dofollow_links} dofollow)",
            f"Referring domains: {metrics.total_referring_domains} ({metrics.total_dofollow_referring_domains} dofollow)",
        ]
        if snap.notes:
            output_lines.append(f"Notes: {snap.notes}")
        output_lines.append("")

        records = db.get_snapshot_records(session, snap.id)
        if search:
            needle = search.lower()
            records = [r for r in records
                       if needle in r.referring_domain or needle in (r.anchor_text or '').lower()]

        for record in records[:limit]:
            kind = click.style("nofollow", fg="yellow") if record.is_nofollow else click.style("dofollow", fg="green")
            first_seen = record.first_discovered_at.date() if record.first_discovered_at else '-'
            output_lines.append(f"{click.style(record.referring_domain, bold=True)}  DR {record.domain_authority_score:g}  {kind}  {first_seen}")
            output_lines.append(f"  {record.source_page_url}")
            output_lines.append(f"  -> {record.target_url}  \"{record.anchor_text or ''}\"")

        if len(records) > limit:
            output_lines.append(f"\n... {len(records) - limit} more rows (use --limit)")

        output_text = "\n".join(output_lines)
        if no_pager or len(output_lines) <= 40:
            click.echo(output_text)
        else:
            click.echo_via_pager(output_text)

    finally:
        session.close()


@snapshot.command()
@click.option('--site', '-s', 'site_host', default=None, help='Only prune snapshots of this site')
def prune(site_host):
    """
    Remove snapshots left pending by an interrupted import.

    Example:
        backlinks snapshot prune
    """
    db = Database()
    session = db.get_session()

    try:
        site_id = None
        if site_host:
            s = db.get_site_by_host(session, site_host)
            if not s:
                click.echo(click.style(f"✗ Site '{site_host}' not found", fg="red"))
                return
            site_id = s.id

        removed = db.prune_pending_snapshots(session, site_id)
        session.commit()

        if removed:
            click.echo(click.style(f"✓ Removed {removed} pending snapshot(s)", fg="green"))
        else:
            click.echo("No pending snapshots")

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error pruning snapshots: {e}", fg="red"))
    finally:
        session.close()
