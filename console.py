#!/usr/bin/env python3
"""
Patient Registry SQL Console
============================

An interactive console for ad-hoc SQL against the patient database.

Usage:
    python console.py                     # Interactive console
    python console.py --once "SELECT 1"   # Run a single statement
    python console.py --status            # Show database status
    python console.py --list              # Show patient records

Examples:
    sql> SELECT * FROM patients
    sql> SELECT gender, COUNT(*) AS count FROM patients GROUP BY gender
    sql> /samples
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, TextIO

from dotenv import load_dotenv

from patient_registry.config import Settings, get_settings
from patient_registry.context import RegistryContext
from patient_registry.db.query_gateway import SAMPLE_QUERIES
from patient_registry.errors import QueryError, RegistryError

logger = logging.getLogger(__name__)


def format_rows(rows: list[dict[str, Any]]) -> str:
    """Render gateway output: a text table for rows, JSON for command summaries."""
    if not rows:
        return "Query returned no results."
    if "operation" in rows[0] and "row_count" in rows[0] and "message" in rows[0]:
        return json.dumps(rows, indent=2)

    columns = list(rows[0].keys())
    cells = [["NULL" if row.get(c) is None else str(row.get(c)) for c in columns] for row in rows]
    widths = [max(len(c), *(len(r[i]) for r in cells)) for i, c in enumerate(columns)]

    def line(values: list[str]) -> str:
        return " | ".join(v.ljust(w) for v, w in zip(values, widths))

    out = [line(columns), "-+-".join("-" * w for w in widths)]
    out.extend(line(r) for r in cells)
    out.append(f"({len(rows)} row{'s' if len(rows) != 1 else ''})")
    return "\n".join(out)


class ConsoleApp:
    """Interactive SQL console bound to one registry session."""

    def __init__(self, settings: Optional[Settings] = None, out: TextIO = sys.stdout):
        self.registry = RegistryContext(settings or get_settings())
        self.out = out

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def show_status(self) -> None:
        """Show database status."""
        handle = self.registry.handle
        handle.acquire()
        strategy = handle.active_strategy
        self._print("\n=== Patient Registry Status ===\n")
        self._print(f"Storage strategy: {strategy.name if strategy else 'none'}")
        self._print(f"Location: {strategy.location if strategy else '-'}")
        self._print(f"Durable: {strategy.durable if strategy else '-'}")
        self._print(f"Patients: {self.registry.patients.count()}")
        self._print()

    def show_records(self) -> None:
        patients = self.registry.registration.records()
        if not patients:
            self._print("No patients registered yet.")
            return
        self._print(format_rows([
            {
                "id": p.id,
                "name": p.full_name,
                "date_of_birth": p.date_of_birth,
                "gender": p.gender,
                "email": p.email,
                "phone": p.phone,
            }
            for p in patients
        ]))

    def run_statement(self, sql: str) -> bool:
        """Run one statement and print its result; returns False on error."""
        try:
            rows = self.registry.queries.execute(sql)
        except QueryError as e:
            self._print(f"Query error: {e}")
            return False
        except RegistryError as e:
            self._print(f"Error: {e}")
            return False
        self._print(format_rows(rows))
        return True

    def run_interactive(self) -> None:
        """Run interactive console loop."""
        self._print("=" * 60)
        self._print("Patient Registry SQL Console")
        self._print("=" * 60)
        self._print("Enter one SQL statement per line.")
        self._print("Commands: /status, /list, /samples, /help, /quit")
        self._print("=" * 60 + "\n")

        while True:
            try:
                user_input = input("sql> ").strip()
            except (KeyboardInterrupt, EOFError):
                self._print("\nGoodbye!")
                break

            if not user_input:
                continue

            command = user_input.lower()
            if command in ("/quit", "/exit", "/q"):
                self._print("Goodbye!")
                break
            if command == "/status":
                self.show_status()
                continue
            if command == "/list":
                self.show_records()
                continue
            if command == "/samples":
                for sample in SAMPLE_QUERIES:
                    self._print(f"  {sample}")
                continue
            if command == "/help":
                self._print(__doc__)
                continue

            self.run_statement(user_input)

    def close(self) -> None:
        self.registry.close()


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Patient Registry SQL Console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--once", "-o",
        type=str,
        help="Run a single statement and exit",
    )
    parser.add_argument(
        "--status", "-s",
        action="store_true",
        help="Show database status",
    )
    parser.add_argument(
        "--list", "-l",
        action="store_true",
        help="Show patient records",
    )

    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = ConsoleApp(settings)
    try:
        if args.status:
            app.show_status()
            return 0
        if args.list:
            app.show_records()
            return 0
        if args.once:
            return 0 if app.run_statement(args.once) else 1
        app.run_interactive()
        return 0
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
