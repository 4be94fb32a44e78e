"""Unit tests for the registration service and shared utilities."""

from __future__ import annotations

import tempfile
import unittest
import uuid
from pathlib import Path
from unittest.mock import patch

from patient_registry.config import Settings
from patient_registry.context import RegistryContext
from patient_registry.errors import RepositoryError, ValidationError
from patient_registry.utils.redact import redact_text
from patient_registry.utils.retry import retry_on_failure


def _make_context() -> RegistryContext:
    settings = Settings(
        DATA_DIR=Path(tempfile.mkdtemp(prefix="registry-test-")),
        DB_SETTLE_DELAY=0,
        INIT_MAX_ATTEMPTS=1,
        BROADCAST_CHANNEL=f"test-{uuid.uuid4()}",
    )
    return RegistryContext(settings)


def _form(**overrides) -> dict:
    form = {
        "first_name": "Mary",
        "last_name": "Seacole",
        "date_of_birth": "1805-11-23",
        "gender": "female",
        "email": "",
        "phone": "",
        "address": "",
    }
    form.update(overrides)
    return form


# ===========================================================================
# 1. Registration service
# ===========================================================================

class TestRegistrationService(unittest.TestCase):
    def setUp(self):
        self.ctx = _make_context()
        self.svc = self.ctx.registration

    def tearDown(self):
        self.ctx.close()

    def test_register_and_read_back(self):
        patient_id = self.svc.register(_form())
        record = self.svc.record(patient_id)
        self.assertEqual(record.full_name, "Mary Seacole")
        self.assertIsNone(record.email)
        self.assertEqual(len(self.svc.records()), 1)

    def test_missing_required_fields_rejected_before_storage(self):
        with self.assertRaises(ValidationError) as ctx:
            self.svc.register(_form(first_name="", gender=None))
        self.assertEqual(ctx.exception.missing, ["first_name", "gender"])
        self.assertIn("Please fill in all required fields: first_name, gender", str(ctx.exception))
        self.assertEqual(self.ctx.patients.count(), 0)

    def test_non_standard_gender_is_accepted(self):
        patient_id = self.svc.register(_form(gender="nonbinary"))
        self.assertEqual(self.svc.record(patient_id).gender, "nonbinary")

    def test_edit_and_remove(self):
        patient_id = self.svc.register(_form())
        self.assertTrue(self.svc.edit(patient_id, _form(phone="020 7946 0000")))
        self.assertEqual(self.svc.record(patient_id).phone, "020 7946 0000")
        self.assertTrue(self.svc.remove(patient_id))
        self.assertFalse(self.svc.remove(patient_id))
        self.assertFalse(self.svc.edit(patient_id, _form()))

    def test_storage_errors_propagate(self):
        with patch.object(self.ctx.patients, "insert", side_effect=RepositoryError("insert", "disk I/O error")):
            with self.assertRaises(RepositoryError):
                self.svc.register(_form())


# ===========================================================================
# 2. Redaction
# ===========================================================================

class TestRedact(unittest.TestCase):
    def test_email_redacted(self):
        text = redact_text("INSERT INTO patients (email) VALUES ('mary@example.org')")
        self.assertNotIn("mary@example.org", text)
        self.assertIn("[REDACTED_EMAIL]", text)

    def test_phone_redacted(self):
        text = redact_text("UPDATE patients SET phone = '+44 20 7946 0000' WHERE id = 4")
        self.assertNotIn("7946", text)
        self.assertIn("WHERE id = 4", text)

    def test_plain_sql_untouched(self):
        sql = "SELECT gender, COUNT(*) AS count FROM patients GROUP BY gender"
        self.assertEqual(redact_text(sql), sql)


# ===========================================================================
# 3. Retry decorator
# ===========================================================================

class TestRetry(unittest.TestCase):
    def test_succeeds_after_transient_failures(self):
        calls = {"n": 0}

        @retry_on_failure(max_attempts=3, backoff_factor=2, retry_on=(ConnectionError,))
        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("not yet")
            return "ok"

        with patch("patient_registry.utils.retry.time.sleep") as sleep:
            self.assertEqual(flaky(), "ok")
        self.assertEqual(calls["n"], 3)
        self.assertEqual(sleep.call_count, 2)

    def test_other_exceptions_are_not_retried(self):
        calls = {"n": 0}

        @retry_on_failure(max_attempts=5, retry_on=(ConnectionError,))
        def broken():
            calls["n"] += 1
            raise ValueError("bad input")

        with self.assertRaises(ValueError):
            broken()
        self.assertEqual(calls["n"], 1)


if __name__ == "__main__":
    unittest.main()
