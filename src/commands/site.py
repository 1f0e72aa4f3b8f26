"""
Site management commands.
"""

import click
from sqlalchemy import func
from db import Database, Site, Snapshot, SnapshotStatus


@click.group()
def site():
    """Manage tracked sites."""
    pass


@site.command()
def list():
    """
    List all tracked sites with their latest snapshot.

    Example:
        backlinks site list
    """
    db = Database()
    session = db.get_session()

    try:
        sites = session.query(Site).order_by(Site.canonical_host).all()

        if not sites:
            click.echo(click.style("No sites found", fg="yellow"))
            return

        click.echo("Tracked sites:\n")
        for s in sites:
            snapshot_count = (session.query(func.count(Snapshot.id))
                              .filter(Snapshot.site_id == s.id, Snapshot.status == SnapshotStatus.COMPLETE)
                              .scalar())
            latest = db.latest_snapshot(session, s.id)

            click.echo(f"[{s.id}] {click.style(s.canonical_host, fg='cyan', bold=True)}")
            click.echo(f"    Name: {s.name}")
            click.echo(f"    Snapshots: {snapshot_count}")
            if latest:
                metrics = latest.get_metrics()
                click.echo(f"    Backlinks: {metrics.total_links}  |  Referring domains: {metrics.total_referring_domains}")
                click.echo(f"    Last import: {latest.imported_at.strftime('%Y-%m-%d %H:%M')}")
            click.echo()

    finally:
        session.close()


@site.command()
@click.argument('host')
def show(host):
    """
    Show details and snapshot history for a site.

    Example:
        backlinks site show example.com
    """
    db = Database()
    session = db.get_session()

    try:
        s = db.get_site_by_host(session, host)
        if not s:
            click.echo(click.style(f"✗ Site '{host}' not found", fg="red"))
            return

        click.echo(click.style(f"\n=== {s.canonical_host} ===\n", fg="cyan", bold=True))
        click.echo(f"ID: {s.id}")
        click.echo(f"Name: {s.name}")
        click.echo(f"Created: {s.created_at}")

        if not s.snapshots:
            click.echo(click.style("\nNo snapshots yet", fg="yellow"))
            return

        click.echo(f"\nSnapshots ({len(s.snapshots)}):")
        for snap in reversed(s.snapshots):
            metrics = snap.get_metrics()
            status = snap.status.value
            status_color = "green" if snap.status == SnapshotStatus.COMPLETE else "yellow"
            click.echo(f"  [{snap.id}] {snap.source_file_name} {click.style(f'[{status}]', fg=status_color)}")
            click.echo(f"      Imported: {snap.imported_at.strftime('%Y-%m-%d %H:%M')}")
            click.echo(f"      Links: {metrics.total_links} ({metrics.total_dofollow_links} dofollow)"
                       f"  |  Domains: {metrics.total_referring_domains} ({metrics.total_dofollow_referring_domains} dofollow)")

    finally:
        session.close()


@site.command()
@click.argument('host')
@click.confirmation_option(prompt='Are you sure? This will delete all snapshots and backlinks of this site.')
def delete(host):
    """
    Delete a site with all of its snapshots and backlinks.

    Library entries are kept.

    Example:
        backlinks site delete example.com
    """
    db = Database()
    session = db.get_session()

    try:
        s = db.get_site_by_host(session, host)
        if not s:
            click.echo(click.style(f"✗ Site '{host}' not found", fg="red"))
            return

        counts = db.delete_site(session, s.id)
        session.commit()

        click.echo(click.style(
            f"✓ Deleted site '{host}', {counts['snapshots']} snapshots and {counts['backlinks']} backlinks",
            fg="green"
        ))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error deleting site: {e}", fg="red"))
    finally:
        session.close()
