"""
Shared test fixtures for QMS.

Provides an in-memory database with all schemas, a file-backed Flask test
client with an admin session, and a CLI runner for isolated testing.
"""

import sqlite3
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from qms.core.db import apply_migrations, apply_schemas
from qms.tests.factories import seed_customer, seed_quotation

ADMIN_SESSION = {
    "id": 1,
    "email": "admin@example.com",
    "display_name": "Admin",
    "role": "admin",
    "is_active": True,
    "must_change_password": False,
}


@pytest.fixture
def memory_db():
    """Provide an in-memory SQLite database with ALL schemas applied in FK order."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row

    apply_schemas(conn)
    apply_migrations(conn)

    yield conn
    conn.close()


@pytest.fixture
def mock_db(memory_db):
    """Patch get_db everywhere to return the in-memory database."""

    @contextmanager
    def _get_db(readonly=False):
        yield memory_db

    with patch("qms.core.db.get_db", _get_db), \
         patch("qms.core.get_db", _get_db):
        yield memory_db


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def customer_id(memory_db):
    return seed_customer(memory_db)


@pytest.fixture
def quotation_id(memory_db, customer_id):
    return seed_quotation(memory_db, customer_id)


# ---------------------------------------------------------------------------
# Flask app (file-backed database)
# ---------------------------------------------------------------------------


@pytest.fixture
def db_file(tmp_path):
    """A migrated on-disk database that get_db() points at for the test."""
    from qms.core.db import migrate_all

    path = tmp_path / "qms.db"
    with patch("qms.core.db.get_db_path", return_value=path):
        migrate_all()
        yield path


@pytest.fixture
def file_db(db_file):
    """Direct connection to the app's database for seeding and assertions."""
    conn = sqlite3.connect(str(db_file))
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row
    yield conn
    conn.close()


@pytest.fixture
def app(db_file, tmp_path):
    from qms.api import create_app

    exports = tmp_path / "exports"

    def _export_dir(subdir=None):
        path = exports / subdir if subdir else exports
        path.mkdir(parents=True, exist_ok=True)
        return path

    with patch("qms.documents.db.documents_root", return_value=tmp_path / "documents"), \
         patch("qms.rfq.exporter.export_dir", _export_dir):
        yield create_app({"TESTING": True, "SECRET_KEY": "test-secret"})


@pytest.fixture
def anon_client(app):
    return app.test_client()


@pytest.fixture
def client(app):
    """Test client logged in as an admin."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user"] = dict(ADMIN_SESSION)
    return client


@pytest.fixture
def login_as():
    """Replace the client's session user with one holding ``role``."""

    def _login(client, role, email="user@example.com"):
        with client.session_transaction() as sess:
            sess["user"] = dict(ADMIN_SESSION, id=2, email=email, role=role)

    return _login
