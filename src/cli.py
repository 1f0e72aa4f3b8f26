#!/usr/bin/env python3
"""
CLI for backlink intelligence.
"""

import click
from importlib.metadata import version
from commands import intel, library, log, site, snapshot


@click.group()
@click.version_option(version=version("backlinks"))
def cli():
    """Backlinks CLI - Import backlink reports, track referring domains and manage outreach."""
    pass


# Register command groups
cli.add_command(site.site)
cli.add_command(snapshot.snapshot)
cli.add_command(intel.intel)
cli.add_command(library.library)
cli.add_command(log.log)


if __name__ == "__main__":
    cli()
