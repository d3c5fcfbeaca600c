"""Tests for core config, db helpers, paths and output formatters."""

import json
from unittest.mock import patch

import pytest
import yaml

from qms.core.config import (
    get_allowed_origins,
    get_config_value,
    get_write_roles,
    update_config_section,
)
from qms.core.db import (
    MAX_PAGE_LIMIT,
    SCHEMA_ORDER,
    execute_query,
    log_audit,
    page_window,
    total_pages,
)
from qms.core.output import OutputFormat, format_result, format_table
from qms.core.paths import export_path, slugify, timestamped_name


class TestConfig:
    def test_nested_lookup(self):
        assert get_config_value("quotations", "number_prefix") == "Q"

    def test_missing_key_returns_default(self):
        assert get_config_value("quotations", "nope", default=7) == 7

    def test_write_roles_from_permissions(self):
        assert "sales" in get_write_roles("quotations")
        assert "sales" not in get_write_roles("settings")

    def test_unknown_module_is_admin_only(self):
        assert get_write_roles("unknown-module") == ["admin"]

    def test_cors_origins(self):
        assert "http://localhost:3000" in get_allowed_origins()

    def test_update_config_section(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("rfq:\n  validity_days: 7\n  contact: []\n", encoding="utf-8")
        with patch("qms.core.config.CONFIG_PATH", cfg):
            update_config_section("rfq", {"validity_days": 10})
            with pytest.raises(KeyError):
                update_config_section("missing.section", {})
        assert yaml.safe_load(cfg.read_text())["rfq"] == {"validity_days": 10, "contact": []}


class TestDb:
    def test_get_db_sets_row_factory(self, mock_db):
        row = mock_db.execute("SELECT 1 AS val").fetchone()
        assert row["val"] == 1

    def test_foreign_keys_enabled(self, mock_db):
        assert mock_db.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_execute_query_returns_rows(self, mock_db):
        rows = execute_query("SELECT 42 AS n")
        assert rows[0]["n"] == 42

    def test_schema_order(self):
        assert SCHEMA_ORDER[0] == "auth"
        assert SCHEMA_ORDER.index("customers") < SCHEMA_ORDER.index("quotations")
        assert SCHEMA_ORDER[-1] == "documents"

    def test_all_tables_created(self, memory_db):
        tables = {
            r[0] for r in memory_db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        for table in ("users", "audit_log", "system_settings", "customers", "products",
                      "product_categories", "vendors", "vendor_categories",
                      "rate_requests", "rate_request_vendors", "quotations",
                      "quotation_items", "quotation_item_vendor_rates",
                      "document_attachments"):
            assert table in tables

    def test_migrations_add_columns(self, memory_db):
        cols = [r[1] for r in memory_db.execute("PRAGMA table_info(quotations)")]
        assert "approved_by" in cols
        item_cols = [r[1] for r in memory_db.execute("PRAGMA table_info(quotation_items)")]
        assert "selected_rate_id" in item_cols

    def test_migrations_are_idempotent(self, memory_db):
        from qms.core.db import apply_migrations

        apply_migrations(memory_db)
        cols = [r[1] for r in memory_db.execute("PRAGMA table_info(quotations)")]
        assert cols.count("approved_at") == 1

    def test_log_audit_serialises_values(self, memory_db):
        log_audit(memory_db, "quotation", 5, "status_change", "a@b.c",
                  old_values={"status": "draft"}, new_values={"status": "sent"})
        row = memory_db.execute("SELECT * FROM audit_log").fetchone()
        assert row["entity_id"] == "5"
        assert json.loads(row["new_values"]) == {"status": "sent"}


class TestPaging:
    def test_defaults(self):
        assert page_window(None, None) == (1, 50, 0)

    def test_offset(self):
        assert page_window(3, 20) == (3, 20, 40)

    def test_limit_capped(self):
        assert page_window(1, 500)[1] == MAX_PAGE_LIMIT

    def test_garbage_values(self):
        assert page_window("x", "y") == (1, 50, 0)

    def test_total_pages(self):
        assert total_pages(0, 50) == 0
        assert total_pages(101, 50) == 3


class TestPaths:
    def test_slugify(self):
        assert slugify("ABC Traders (Pvt) Ltd.") == "ABC_Traders_Pvt_Ltd"
        assert slugify("") == "untitled"

    def test_export_path_creates_subdir(self, tmp_path):
        with patch("qms.core.config.QMSPaths.exports", new=tmp_path):
            path = export_path("a.xlsx", "RFQ-1")
        assert path == tmp_path / "RFQ-1" / "a.xlsx"
        assert path.parent.is_dir()

    def test_timestamped_name(self):
        name = timestamped_name("Quotation List", ".xlsx")
        assert name.startswith("Quotation_List_")
        assert name.endswith(".xlsx")


class TestOutput:
    def test_format_human_with_title(self):
        text = format_result({"key": "val"}, title="Quotation Q-1")
        assert "Quotation Q-1" in text
        assert "===" in text

    def test_format_json(self):
        data = json.loads(format_result({"total": 28.5}, fmt=OutputFormat.JSON))
        assert data["total"] == 28.5

    def test_format_markdown(self):
        text = format_result({"total_amount": 4.0}, fmt=OutputFormat.MARKDOWN)
        assert "| Field | Value |" in text
        assert "Total Amount" in text

    def test_table_human(self):
        rows = [{"id": 1, "name": "Acme", "total": 1234.5}]
        text = format_table(rows, [("id", "ID", 4), ("name", "Name", 10), ("total", "Total", 10)])
        assert text.splitlines()[0].startswith("ID")
        assert "1,234.50" in text

    def test_table_json(self):
        rows = [{"id": 1, "name": None}]
        data = json.loads(format_table(rows, [("id", "ID", 4)], OutputFormat.JSON))
        assert data == [{"id": 1, "name": None}]

    def test_table_markdown_none_cell(self):
        text = format_table([{"a": None}], [("a", "A", 3)], OutputFormat.MARKDOWN)
        assert "| - |" in text
