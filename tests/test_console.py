"""Tests for the SQL console CLI."""

from __future__ import annotations

import io
import tempfile
import unittest
import uuid
from pathlib import Path

from console import ConsoleApp, format_rows
from patient_registry.config import Settings


def _make_app() -> tuple[ConsoleApp, io.StringIO]:
    settings = Settings(
        DATA_DIR=Path(tempfile.mkdtemp(prefix="registry-test-")),
        DB_SETTLE_DELAY=0,
        INIT_MAX_ATTEMPTS=1,
        BROADCAST_CHANNEL=f"test-{uuid.uuid4()}",
    )
    out = io.StringIO()
    return ConsoleApp(settings, out=out), out


class TestFormatRows(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(format_rows([]), "Query returned no results.")

    def test_table_with_nulls(self):
        text = format_rows([{"id": 1, "email": None}, {"id": 22, "email": "x@y.z"}])
        lines = text.splitlines()
        self.assertEqual(lines[0].split(" | ")[0].strip(), "id")
        self.assertIn("NULL", lines[2])
        self.assertEqual(lines[-1], "(2 rows)")

    def test_summary_rendered_as_json(self):
        text = format_rows([{"operation": "DELETE", "row_count": 0, "message": "DELETE completed successfully"}])
        self.assertIn('"operation": "DELETE"', text)


class TestConsoleApp(unittest.TestCase):
    def setUp(self):
        self.app, self.out = _make_app()

    def tearDown(self):
        self.app.close()

    def test_run_statement_prints_rows(self):
        self.assertTrue(self.app.run_statement("SELECT 1 AS one"))
        self.assertIn("one", self.out.getvalue())
        self.assertIn("(1 row)", self.out.getvalue())

    def test_denied_statement_prints_readable_error(self):
        self.assertFalse(self.app.run_statement("TRUNCATE patients"))
        self.assertIn("Query error: Destructive database operations are not allowed", self.out.getvalue())

    def test_status_and_empty_list(self):
        self.app.show_status()
        self.app.show_records()
        output = self.out.getvalue()
        self.assertIn("Storage strategy: durable-wal", output)
        self.assertIn("Patients: 0", output)
        self.assertIn("No patients registered yet.", output)

    def test_list_after_registration(self):
        self.app.registry.registration.register({
            "first_name": "Clara",
            "last_name": "Barton",
            "date_of_birth": "1821-12-25",
            "gender": "female",
        })
        self.app.show_records()
        self.assertIn("Clara Barton", self.out.getvalue())


if __name__ == "__main__":
    unittest.main()
