"""Database schema DDL: the ``patients`` table, its name index and update trigger."""

PATIENTS_TABLE = "patients"

SCHEMA_DDL = """
-- ==========================================================================
-- Patients
-- ==========================================================================
CREATE TABLE IF NOT EXISTS patients (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name      TEXT NOT NULL,
    last_name       TEXT NOT NULL,
    date_of_birth   DATE NOT NULL,
    gender          TEXT NOT NULL,
    email           TEXT,
    phone           TEXT,
    address         TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_patients_name ON patients(last_name, first_name);

-- ==========================================================================
-- updated_at maintenance (replaced on every connection)
-- ==========================================================================
DROP TRIGGER IF EXISTS patients_touch_updated_at;

CREATE TRIGGER patients_touch_updated_at
AFTER UPDATE ON patients
FOR EACH ROW
WHEN NEW.updated_at = OLD.updated_at
BEGIN
    UPDATE patients
       SET updated_at = strftime('%Y-%m-%dT%H:%M:%fZ','now')
     WHERE id = NEW.id;
END;
"""
