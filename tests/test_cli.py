from click.testing import CliRunner
import pytest

from commands.intel import intel
from commands.library import library
from commands.log import log
from commands.site import site
from commands.snapshot import snapshot
from db import Database, LibraryDomain, LinkStatus, PricingType


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def imported(runner, sample_csv):
    result = runner.invoke(snapshot, ['import', str(sample_csv), '--batch-size', '2'])
    assert result.exit_code == 0, result.output
    return result


def test_import_reports_progress_and_metrics(imported, sample_csv):
    assert f"{sample_csv.name}: wrote 2 / 3 records" in imported.output
    assert f"✓ {sample_csv.name} -> mysite.com" in imported.output
    assert "Referring domains: 2 (2 dofollow)" in imported.output
    assert "New library domains: 2" in imported.output


def test_import_of_corrupt_file_exits_non_zero(runner, tmp_path):
    path = tmp_path / 'corrupt.xlsx'
    path.write_bytes(b'not a zip')

    result = runner.invoke(snapshot, ['import', str(path)])
    assert result.exit_code == 1
    assert "corrupt.xlsx" in result.output


def test_site_list_and_show(runner, imported):
    result = runner.invoke(site, ['list'])
    assert result.exit_code == 0
    assert "mysite.com" in result.output
    assert "Referring domains: 2" in result.output

    result = runner.invoke(site, ['show', 'MySite.com'])
    assert result.exit_code == 0
    assert "[complete]" in result.output


def test_snapshot_list_and_show(runner, imported):
    result = runner.invoke(snapshot, ['list'])
    assert "3 links" in result.output

    result = runner.invoke(snapshot, ['show', '1', '--search', 'spam', '--no-pager'])
    assert result.exit_code == 0
    assert "spam.example.net" in result.output
    assert "blog.example.org" not in result.output


def test_intel_trend(runner, imported):
    result = runner.invoke(intel, ['trend', 'mysite.com', '--range', 'all'])
    assert result.exit_code == 0
    assert "2024-01-10" in result.output
    assert "2024-01-12" in result.output

    result = runner.invoke(intel, ['trend', 'mysite.com', '--range', 'all', '--day', '2024-01-12'])
    assert "1 backlinks first seen on 2024-01-12" in result.output


def test_intel_trend_rejects_bad_range(runner, imported):
    result = runner.invoke(intel, ['trend', 'mysite.com', '--range', 'soon'])
    assert result.exit_code != 0


def test_intel_domains(runner, imported):
    result = runner.invoke(intel, ['domains', 'mysite.com'])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    blog = next(line for line in lines if line.startswith('blog.example.org'))
    spam = next(line for line in lines if line.startswith('spam.example.net'))
    assert 'healthy' in blog
    assert 'at-risk' in spam
    assert lines.index(blog) < lines.index(spam)

    result = runner.invoke(intel, ['domains', 'mysite.com', '--hide-at-risk'])
    assert "spam.example.net" not in result.output


def test_intel_accepts_site_url(runner, imported):
    result = runner.invoke(intel, ['trend', 'https://www.MySite.com/', '--range', 'all'])
    assert result.exit_code == 0
    assert '2024-01-10' in result.output

    result = runner.invoke(library, ['sync', 'www.mysite.com'])
    assert '0 new library domain(s)' in result.output


def test_unknown_site(runner):
    result = runner.invoke(intel, ['domains', 'nowhere.com'])
    assert "not found" in result.output


def test_library_add_update_show_delete(runner):
    result = runner.invoke(library, ['add', 'https://www.Directory.example.com/submit', '--pricing', 'free', '--tag', 'directory'])
    assert "✓ Added library domain: directory.example.com" in result.output

    result = runner.invoke(library, ['add', 'directory.example.com'])
    assert "already exists" in result.output

    result = runner.invoke(library, ['update', 'directory.example.com', '--status', 'live', '--price', '25', '--currency', 'eur'])
    assert result.exit_code == 0

    result = runner.invoke(library, ['show', 'directory.example.com'])
    assert "Status: live" in result.output
    assert "Price: 25 EUR" in result.output
    assert "Tags: directory" in result.output

    result = runner.invoke(library, ['delete', 'directory.example.com', '--yes'])
    assert "✓ Deleted" in result.output

    result = runner.invoke(library, ['list'])
    assert "No library domains found" in result.output


def test_library_export_updates_existing(runner, imported):
    result = runner.invoke(library, ['export', 'mysite.com', '--pricing', 'paid', '--status', 'submitted', '--yes'])
    assert result.exit_code == 0, result.output
    # Every domain was auto-synced at import, so nothing is preselected
    assert "Nothing selected" in result.output

    session = Database().get_session()
    try:
        entry = session.query(LibraryDomain).filter_by(domain='blog.example.org').one()
        assert entry.pricing_type == PricingType.UNKNOWN

        result = runner.invoke(library, ['export', 'mysite.com', '-d', 'blog.example.org', '--pricing', 'paid',
                                         '--status', 'submitted', '--yes'])
        assert "0 created, 1 updated" in result.output

        session.expire_all()
        entry = session.query(LibraryDomain).filter_by(domain='blog.example.org').one()
        assert entry.pricing_type == PricingType.PAID
        assert entry.status == LinkStatus.SUBMITTED
    finally:
        session.close()


def test_library_usage(runner, imported):
    result = runner.invoke(library, ['usage', 'blog.example.org'])
    assert "mysite.com" in result.output


def test_site_delete(runner, imported):
    result = runner.invoke(site, ['delete', 'mysite.com', '--yes'])
    assert "1 snapshots and 3 backlinks" in result.output

    result = runner.invoke(site, ['list'])
    assert "No sites found" in result.output


def test_log_list(runner, imported):
    result = runner.invoke(log, ['list'])
    assert result.exit_code == 0
    assert "mysite.com" in result.output
