"""
CLI commands for snapshot import logs.
"""

import click
from tabulate import tabulate
from processors.import_logging import recent_import_logs


@click.group()
def log():
    """Inspect snapshot import attempts."""
    pass


@log.command()
@click.option('--limit', default=20, help='Number of recent imports to show (default: 20)')
@click.option('--errors', is_flag=True, help='Only show failed imports')
def list(limit, errors):
    """List recent import attempts."""
    entries = recent_import_logs(limit=limit, failed_only=errors)

    if not entries:
        click.echo(click.style("No imports logged.", fg='yellow'))
        return

    table_data = []
    for entry in entries:
        status = click.style('✓', fg='green') if entry.success else click.style('✗', fg='red')
        duration = f"{entry.duration_ms}ms" if entry.duration_ms is not None else 'N/A'
        written = entry.records_written if entry.records_written is not None else '-'
        created = entry.domains_created if entry.domains_created is not None else '-'

        table_data.append([
            entry.id,
            status,
            entry.file_name,
            entry.site_host or '-',
            entry.snapshot_id or '-',
            written,
            created,
            duration,
            entry.started_at.strftime('%Y-%m-%d %H:%M:%S')
        ])

    click.echo()
    click.echo(tabulate(
        table_data,
        headers=['ID', '✓', 'File', 'Site', 'Snapshot', 'Records', 'New domains', 'Duration', 'Started'],
        tablefmt='simple'
    ))

    failures = [entry for entry in entries if not entry.success]
    if failures:
        click.echo()
        for entry in failures:
            click.echo(click.style(f"✗ [{entry.id}] {entry.file_name}: {entry.error_message}", fg='red'))
    click.echo()
