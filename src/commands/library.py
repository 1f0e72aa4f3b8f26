"""
Resource library commands.
"""

import click
from tabulate import tabulate
from db import Database, LibraryDomain, PricingType, LinkStatus, DomainType
from domain.normalize import normalize_domain
from processors.library_sync import (
    LibrarySelection,
    build_export_preview,
    export_to_library,
    sync_library_to_database
)

PRICING_CHOICES = [p.value for p in PricingType]
STATUS_CHOICES = [s.value for s in LinkStatus]
TYPE_CHOICES = [t.value for t in DomainType]


@click.group()
def library():
    """Manage the outreach resource library."""
    pass


@library.command()
@click.option('--status', type=click.Choice(STATUS_CHOICES), help='Filter by outreach status')
@click.option('--pricing', type=click.Choice(PRICING_CHOICES), help='Filter by pricing type')
@click.option('--search', default=None, help='Only domains containing this text')
@click.option('--limit', '-l', type=int, default=50, help='Number of entries to show (default: 50)')
def list(status, pricing, search, limit):
    """
    List library domains.

    Example:
        backlinks library list
        backlinks library list --status live --pricing free
    """
    db = Database()
    session = db.get_session()

    try:
        query = session.query(LibraryDomain)
        if status:
            query = query.filter(LibraryDomain.status == LinkStatus(status))
        if pricing:
            query = query.filter(LibraryDomain.pricing_type == PricingType(pricing))
        if search:
            query = query.filter(LibraryDomain.domain.contains(search.lower()))

        entries = query.order_by(LibraryDomain.domain).limit(limit).all()
        if not entries:
            click.echo(click.style("No library domains found", fg="yellow"))
            return

        table = []
        for entry in entries:
            price = f"{entry.price_amount:g} {entry.currency}" if entry.price_amount is not None else '-'
            table.append([entry.id, entry.domain, entry.domain_type.value, entry.pricing_type.value, price, entry.status.value])
        click.echo(tabulate(table, headers=['ID', 'Domain', 'Type', 'Pricing', 'Price', 'Status'], tablefmt='simple'))

    finally:
        session.close()


@library.command()
@click.argument('domain_name')
def show(domain_name):
    """
    Show a library domain and the sites it links to.

    Example:
        backlinks library show blog.example.com
    """
    db = Database()
    session = db.get_session()

    try:
        domain = normalize_domain(domain_name)
        entry = db.get_library_domain(session, domain)
        if not entry:
            click.echo(click.style(f"✗ Domain '{domain}' not in library", fg="red"))
            return

        click.echo(click.style(f"\n=== {entry.domain} ===\n", fg="cyan", bold=True))
        click.echo(f"ID: {entry.id}")
        if entry.display_name:
            click.echo(f"Name: {entry.display_name}")
        click.echo(f"Type: {entry.domain_type.value}")
        if entry.type_tags:
            click.echo(f"Tags: {', '.join(entry.type_tags)}")
        click.echo(f"Pricing: {entry.pricing_type.value}")
        if entry.price_amount is not None:
            click.echo(f"Price: {entry.price_amount:g} {entry.currency}")
        click.echo(f"Status: {entry.status.value}")
        if entry.submission_url:
            click.echo(f"Submission URL: {entry.submission_url}")
        if entry.contact:
            click.echo(f"Contact: {entry.contact}")
        if entry.notes:
            click.echo(f"Notes: {entry.notes}")
        click.echo(f"Created: {entry.created_at}")
        click.echo(f"Updated: {entry.updated_at}")

        usage = db.library_usage(session, entry.domain)
        if usage:
            click.echo(f"\nLinks to {len(usage)} tracked site(s):")
            for u in usage:
                last_seen = u['last_seen'].date() if u['last_seen'] else '-'
                click.echo(f"  {u['site'].canonical_host}: {u['backlinks']} backlinks (last seen {last_seen})")

    finally:
        session.close()


def _entry_fields(name, domain_type, pricing, price, currency, submission_url, contact, status, notes, tags):
    """Collect explicitly given options into model field values."""
    fields = {
        'display_name': name,
        'domain_type': DomainType(domain_type) if domain_type else None,
        'pricing_type': PricingType(pricing) if pricing else None,
        'price_amount': price,
        'currency': currency.upper() if currency else None,
        'submission_url': submission_url,
        'contact': contact,
        'status': LinkStatus(status) if status else None,
        'notes': notes,
        'type_tags': [t.strip() for t in tags if t.strip()] if tags else None,
    }
    return {key: value for key, value in fields.items() if value is not None}


_entry_options = [
    click.option('--name', default=None, help='Display name'),
    click.option('--type', 'domain_type', type=click.Choice(TYPE_CHOICES), default=None, help='Kind of site'),
    click.option('--pricing', type=click.Choice(PRICING_CHOICES), default=None, help='Pricing type'),
    click.option('--price', type=float, default=None, help='Price amount'),
    click.option('--currency', default=None, help='Price currency (e.g. USD)'),
    click.option('--submission-url', default=None, help='Where to submit a link'),
    click.option('--contact', default=None, help='Contact person or address'),
    click.option('--status', type=click.Choice(STATUS_CHOICES), default=None, help='Outreach status'),
    click.option('--notes', default=None, help='Free-text notes'),
    click.option('--tag', 'tags', multiple=True, help='Type tag (repeatable)'),
]


def entry_options(func):
    for option in reversed(_entry_options):
        func = option(func)
    return func


@library.command()
@click.argument('domain_name')
@entry_options
def add(domain_name, name, domain_type, pricing, price, currency, submission_url, contact, status, notes, tags):
    """
    Manually add a domain to the library.

    Example:
        backlinks library add blog.example.com --pricing free --type blog
    """
    db = Database()
    session = db.get_session()

    try:
        domain = normalize_domain(domain_name)
        if not domain:
            click.echo(click.style(f"✗ '{domain_name}' is not a valid domain", fg="red"))
            return

        existing = db.get_library_domain(session, domain)
        if existing:
            click.echo(click.style(f"✗ Domain '{domain}' already exists (ID: {existing.id})", fg="yellow"))
            return

        fields = _entry_fields(name, domain_type, pricing, price, currency, submission_url, contact, status, notes, tags)
        entry = db.insert(session, LibraryDomain(domain=domain, **fields))
        session.commit()

        click.echo(click.style(f"✓ Added library domain: {domain} (ID: {entry.id})", fg="green"))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error adding domain: {e}", fg="red"))
    finally:
        session.close()


@library.command()
@click.argument('domain_name')
@entry_options
def update(domain_name, name, domain_type, pricing, price, currency, submission_url, contact, status, notes, tags):
    """
    Edit a library domain. Only the given options are changed.

    Example:
        backlinks library update blog.example.com --status submitted --notes "Emailed editor"
    """
    db = Database()
    session = db.get_session()

    try:
        domain = normalize_domain(domain_name)
        entry = db.get_library_domain(session, domain)
        if not entry:
            click.echo(click.style(f"✗ Domain '{domain}' not in library", fg="red"))
            return

        fields = _entry_fields(name, domain_type, pricing, price, currency, submission_url, contact, status, notes, tags)
        if not fields:
            click.echo(click.style("Nothing to update", fg="yellow"))
            return

        db.update(session, LibraryDomain, entry.id, fields)
        session.commit()

        click.echo(click.style(f"✓ Updated {domain}: {', '.join(sorted(fields))}", fg="green"))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error updating domain: {e}", fg="red"))
    finally:
        session.close()


@library.command()
@click.argument('domain_name')
@click.confirmation_option(prompt='Are you sure? This cannot be undone.')
def delete(domain_name):
    """
    Remove a domain from the library.

    Example:
        backlinks library delete blog.example.com
    """
    db = Database()
    session = db.get_session()

    try:
        domain = normalize_domain(domain_name)
        entry = db.get_library_domain(session, domain)
        if not entry:
            click.echo(click.style(f"✗ Domain '{domain}' not in library", fg="red"))
            return

        db.delete(session, LibraryDomain, entry.id)
        session.commit()
        click.echo(click.style(f"✓ Deleted library domain '{domain}'", fg="green"))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error deleting domain: {e}", fg="red"))
    finally:
        session.close()


@library.command()
@click.argument('host')
def sync(host):
    """
    Add unseen referring domains of a site's latest snapshot to the library.

    Existing library entries are never modified.

    Example:
        backlinks library sync example.com
    """
    db = Database()
    session = db.get_session()

    try:
        s = db.get_site_by_host(session, host)
        snap = db.latest_snapshot(session, s.id) if s else None
        if not snap:
            click.echo(click.style(f"✗ No complete snapshot for '{host}'", fg="red"))
            return

        records = db.get_snapshot_records(session, snap.id)
        created = sync_library_to_database(db, session, {r.referring_domain for r in records}, provenance=snap.source_file_name)
        session.commit()

        click.echo(click.style(f"✓ {len(created)} new library domain(s) from snapshot {snap.id}", fg="green"))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error syncing library: {e}", fg="red"))
    finally:
        session.close()


@library.command()
@click.argument('host')
@click.option('--domain', '-d', 'domains', multiple=True, help='Domain to export (repeatable; default: all new domains in the preview)')
@click.option('--pricing', type=click.Choice(PRICING_CHOICES), default=None, help='Pricing type for every selected domain')
@click.option('--status', type=click.Choice(STATUS_CHOICES), default=None, help='Outreach status for every selected domain')
@click.option('--notes', default=None, help='Notes for every selected domain')
@click.option('--limit', '-l', type=int, default=100, help='Preview size: top domains by DR (default: 100)')
@click.option('--dry-run', is_flag=True, help='Only show the preview')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
def export(host, domains, pricing, status, notes, limit, dry_run, yes):
    """
    Export top referring domains of a site's latest snapshot to the library.

    Selected domains that already exist are updated with the given
    pricing/status/notes; the rest are created.

    Example:
        backlinks library export example.com --dry-run
        backlinks library export example.com --pricing free --status not_tried
        backlinks library export example.com -d blog.example.com --status submitted
    """
    db = Database()
    session = db.get_session()

    try:
        s = db.get_site_by_host(session, host)
        snap = db.latest_snapshot(session, s.id) if s else None
        if not snap:
            click.echo(click.style(f"✗ No complete snapshot for '{host}'", fg="red"))
            return

        records = db.get_snapshot_records(session, snap.id)
        preview = build_export_preview(db, session, records, limit=limit)

        wanted = {normalize_domain(d) for d in domains}
        for item in preview:
            if wanted:
                item['selected'] = item['domain'] in wanted

        table = []
        for item in preview:
            mark = click.style('x', fg='green') if item['selected'] else ' '
            state = 'update' if item['is_existing'] else 'new'
            table.append([mark, item['domain'], f"{item['authority_score']:g}", item['link_count'], state,
                          item['pricing_type'].value, item['status'].value])
        click.echo(tabulate(table, headers=['', 'Domain', 'DR', 'Links', 'Library', 'Pricing', 'Status'], tablefmt='simple'))

        selected = [item for item in preview if item['selected']]
        missing = wanted - {item['domain'] for item in preview}
        for domain in sorted(missing):
            click.echo(click.style(f"  ! {domain} is not in the preview of snapshot {snap.id}", fg="yellow"))

        if dry_run:
            return
        if not selected:
            click.echo(click.style("Nothing selected", fg="yellow"))
            return
        if not yes and not click.confirm(f"Export {len(selected)} domain(s) to the library?"):
            click.echo(click.style("Export cancelled", fg="yellow"))
            return

        selections = [
            LibrarySelection(
                domain=item['domain'],
                pricing_type=PricingType(pricing) if pricing else None,
                status=LinkStatus(status) if status else None,
                notes=notes
            )
            for item in selected
        ]
        stats = export_to_library(db, session, selections)
        session.commit()

        click.echo(click.style(f"✓ Library export: {stats['created']} created, {stats['updated']} updated", fg="green"))

    except Exception as e:
        session.rollback()
        click.echo(click.style(f"✗ Error exporting to library: {e}", fg="red"))
    finally:
        session.close()


@library.command()
@click.argument('domain_name')
def usage(domain_name):
    """
    Show which tracked sites a domain links to.

    Works for any referring domain, whether or not it is in the library.

    Example:
        backlinks library usage blog.example.com
    """
    db = Database()
    session = db.get_session()

    try:
        domain = normalize_domain(domain_name)
        rows = db.library_usage(session, domain)
        if not rows:
            click.echo(click.style(f"No backlinks from '{domain}' in any snapshot", fg="yellow"))
            return

        table = [
            [u['site'].canonical_host, u['backlinks'], u['last_seen'].date() if u['last_seen'] else '-']
            for u in rows
        ]
        click.echo(tabulate(table, headers=['Site', 'Backlinks', 'Last seen'], tablefmt='simple'))

    finally:
        session.close()
