import io
import sys
from pathlib import Path

import pytest

# Add src/ to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

import openpyxl  # noqa: E402

from db import Database  # noqa: E402


SAMPLE_HEADER = ("Referring page URL,Target URL,Domain rating,Domain traffic,Page traffic,"
                 "External links,Anchor,Nofollow,First seen,Last seen,Language")

SAMPLE_CSV = "\n".join([
    SAMPLE_HEADER,
    "https://www.blog.example.org/post-1,https://mysite.com/,62,1200,30,15,my site,false,2024-01-10 08:00:00,2024-03-01,en",
    "https://blog.example.org/post-2,https://mysite.com/about,62,1200,10,20,about,true,2024-01-12,2024-03-01,en",
    "http://spam.example.net/links,https://mysite.com/,2,0,0,900,click here,false,2024-01-10,2024-02-01,en",
    ",https://mysite.com/,10,0,0,0,,false,,,",
    "",
])


@pytest.fixture(autouse=True)
def data_paths(tmp_path, monkeypatch):
    """Point the default database and the import logs at temporary files."""
    import db.database
    import processors.import_logging

    paths = {
        'database': str(tmp_path / 'backlinks.db'),
        'logs': str(tmp_path / 'import_logs.db'),
    }
    monkeypatch.setattr(db.database, 'DATABASE_PATH', paths['database'])
    monkeypatch.setattr(processors.import_logging, 'LOGS_DB_PATH', paths['logs'])
    return paths


@pytest.fixture
def db(data_paths):
    return Database(data_paths['database'])


@pytest.fixture
def session(db):
    session = db.get_session()
    yield session
    session.close()


@pytest.fixture
def sample_csv(tmp_path):
    """A small Ahrefs-style export on disk."""
    path = tmp_path / 'www.mysite.com-backlinks-subdomains_2024-03-01.csv'
    path.write_text(SAMPLE_CSV, encoding='utf-8')
    return path


def build_xlsx(rows) -> bytes:
    """Write rows (header first) to an in-memory workbook."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_xlsx():
    return build_xlsx
