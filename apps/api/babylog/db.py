"""SQLite helpers."""
from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .errors import StorageFailure
from .store import mask_family_code
from .schemas import (
    DAILY_MODELS,
    RECORD_MODELS,
    DailyKind,
    RecordBase,
    RecordKind,
    SettingEntry,
    Snapshot,
)

logger = logging.getLogger(__name__)

# Column lists exclude id and family_code.
RECORD_TABLES: Dict[RecordKind, Tuple[str, Tuple[str, ...]]] = {
    RecordKind.FEEDING: (
        "feeding",
        ("date", "time", "breast_left", "breast_right", "bottle_breast_milk", "bottle_formula", "created_at"),
    ),
    RecordKind.DIAPER: (
        "diaper",
        ("date", "time", "type", "color", "amount", "note", "image", "created_at"),
    ),
    RecordKind.SLEEP: (
        "sleep",
        ("date", "start_time", "end_time", "direction", "created_at"),
    ),
    RecordKind.EDUCATION: (
        "education",
        ("date", "category", "duration", "content", "created_at"),
    ),
}

DAILY_TABLES: Dict[DailyKind, Tuple[str, Tuple[str, ...]]] = {
    DailyKind.SUPPLEMENT: ("supplement", ("date", "items", "created_at")),
    DailyKind.CARE: ("care", ("date", "items", "created_at")),
    DailyKind.DAILY_NOTE: ("daily_note", ("date", "temperature", "vaccine", "note", "created_at")),
}

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS family (
        code TEXT PRIMARY KEY,
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS feeding (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        breast_left INTEGER DEFAULT 0,
        breast_right INTEGER DEFAULT 0,
        bottle_breast_milk INTEGER DEFAULT 0,
        bottle_formula INTEGER DEFAULT 0,
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS diaper (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        type TEXT NOT NULL,
        color TEXT DEFAULT '',
        amount TEXT DEFAULT '',
        note TEXT DEFAULT '',
        image TEXT DEFAULT '',
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS sleep (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT DEFAULT '',
        direction TEXT DEFAULT 'center',
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS education (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        category TEXT NOT NULL,
        duration INTEGER DEFAULT 0,
        content TEXT DEFAULT '',
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS supplement (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        items TEXT NOT NULL,
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS care (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        items TEXT NOT NULL,
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_note (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        date TEXT NOT NULL,
        temperature REAL DEFAULT 0,
        vaccine TEXT DEFAULT '',
        note TEXT DEFAULT '',
        created_at INTEGER NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_code TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        UNIQUE(family_code, key)
    );
    """,
)


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def _index_statements() -> List[str]:
    statements = []
    for table, _ in RECORD_TABLES.values():
        statements.append(f"CREATE INDEX IF NOT EXISTS idx_{table}_fc_date ON {table} (family_code, date)")
    for table, _ in DAILY_TABLES.values():
        statements.append(
            f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{table}_fc_date ON {table} (family_code, date)"
        )
    return statements


def _row_to_dict(row: Optional[sqlite3.Row]) -> dict:
    if row is None:
        return {}
    return {key: row[key] for key in row.keys() if key != "family_code"}


def _record_columns(record: RecordBase, columns: Tuple[str, ...]) -> List[Any]:
    data = record.model_dump(mode="json", exclude={"id"})
    if data.get("created_at") is None:
        data["created_at"] = now_ms()
    if "items" in data:
        data["items"] = json.dumps(data["items"], ensure_ascii=False)
    return [data[column] for column in columns]


class SQLiteStore:
    """Local single-file backend. Every statement filters on family_code."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.initialize_db()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageFailure(f"Unable to open database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except (sqlite3.Error, OverflowError) as exc:
            logger.exception("sqlite statement failed", extra={"path": str(self.path)})
            raise StorageFailure(f"Database write failed: {exc}") from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block as one write transaction; any exception rolls it back."""
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def initialize_db(self) -> None:
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            for statement in SCHEMA:
                conn.execute(statement)
            for statement in _index_statements():
                conn.execute(statement)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_settings_fc ON settings (family_code)")

    def ping(self) -> None:
        with self.get_connection() as conn:
            conn.execute("SELECT 1")

    def ensure_family(self, family_code: str) -> None:
        """Create the family row if it does not exist yet."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO family (code, created_at) VALUES (?, ?)",
                (family_code, now_ms()),
            )
            created = cursor.rowcount == 1
        if created:
            logger.info("family created", extra={"family": mask_family_code(family_code)})

    # -- multi-entry records -------------------------------------------------

    def list_records(self, family_code: str, kind: RecordKind, date: str) -> List[RecordBase]:
        table, _ = RECORD_TABLES[kind]
        model = RECORD_MODELS[kind]
        with self.get_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT *
                FROM {table}
                WHERE family_code = ? AND date = ?
                ORDER BY created_at ASC, id ASC
                """,
                (family_code, date),
            ).fetchall()
        return [model.model_validate(_row_to_dict(row)) for row in rows]

    def _insert_record(self, conn: sqlite3.Connection, family_code: str, kind: RecordKind, record: RecordBase) -> int:
        table, columns = RECORD_TABLES[kind]
        placeholders = ", ".join("?" for _ in range(len(columns) + 1))
        cursor = conn.execute(
            f"INSERT INTO {table} (family_code, {', '.join(columns)}) VALUES ({placeholders})",
            (family_code, *_record_columns(record, columns)),
        )
        return cursor.lastrowid

    def add_record(self, family_code: str, kind: RecordKind, record: RecordBase) -> RecordBase:
        table, _ = RECORD_TABLES[kind]
        with self.get_connection() as conn:
            record_id = self._insert_record(conn, family_code, kind, record)
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return RECORD_MODELS[kind].model_validate(_row_to_dict(row))

    def delete_record(self, family_code: str, kind: RecordKind, record_id: int) -> None:
        table, _ = RECORD_TABLES[kind]
        with self.get_connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE id = ? AND family_code = ?",
                (record_id, family_code),
            )
        logger.info(
            "record delete",
            extra={"family": mask_family_code(family_code), "table": table, "id": record_id, "deleted": cursor.rowcount},
        )

    # -- one row per day -----------------------------------------------------

    def get_daily(self, family_code: str, kind: DailyKind, date: str) -> Optional[RecordBase]:
        table, _ = DAILY_TABLES[kind]
        with self.get_connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE family_code = ? AND date = ? LIMIT 1",
                (family_code, date),
            ).fetchone()
        if row is None:
            return None
        return DAILY_MODELS[kind].model_validate(_row_to_dict(row))

    def _upsert_daily(self, conn: sqlite3.Connection, family_code: str, kind: DailyKind, record: RecordBase) -> int:
        table, columns = DAILY_TABLES[kind]
        values = _record_columns(record, columns)
        existing = conn.execute(
            f"SELECT id FROM {table} WHERE family_code = ? AND date = ?",
            (family_code, record.date),
        ).fetchone()
        if existing:
            # date is the lookup key; every other column is replaced.
            assignments = ", ".join(f"{column} = ?" for column in columns[1:])
            conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*values[1:], existing["id"]),
            )
            return existing["id"]
        placeholders = ", ".join("?" for _ in range(len(columns) + 1))
        cursor = conn.execute(
            f"INSERT INTO {table} (family_code, {', '.join(columns)}) VALUES ({placeholders})",
            (family_code, *values),
        )
        return cursor.lastrowid

    def save_daily(self, family_code: str, kind: DailyKind, record: RecordBase) -> int:
        with self.transaction() as conn:
            return self._upsert_daily(conn, family_code, kind, record)

    # -- settings ------------------------------------------------------------

    def get_settings(self, family_code: str) -> Dict[str, str]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT key, value FROM settings WHERE family_code = ? ORDER BY id",
                (family_code,),
            ).fetchall()
        return {row["key"]: row["value"] for row in rows}

    def _upsert_setting(self, conn: sqlite3.Connection, family_code: str, key: str, value: str) -> None:
        conn.execute(
            """
            INSERT INTO settings (family_code, key, value) VALUES (?, ?, ?)
            ON CONFLICT(family_code, key) DO UPDATE SET value = excluded.value
            """,
            (family_code, key, value),
        )

    def set_setting(self, family_code: str, key: str, value: str) -> None:
        with self.get_connection() as conn:
            self._upsert_setting(conn, family_code, key, value)

    # -- backup --------------------------------------------------------------

    def export_snapshot(self, family_code: str) -> Snapshot:
        data: Dict[str, Any] = {}
        with self.get_connection() as conn:
            for kind, (table, _) in RECORD_TABLES.items():
                rows = conn.execute(
                    f"SELECT * FROM {table} WHERE family_code = ? ORDER BY created_at ASC, id ASC",
                    (family_code,),
                ).fetchall()
                data[kind.value] = [_row_to_dict(row) for row in rows]
            for kind, (table, _) in DAILY_TABLES.items():
                rows = conn.execute(
                    f"SELECT * FROM {table} WHERE family_code = ? ORDER BY date ASC, id ASC",
                    (family_code,),
                ).fetchall()
                data[kind.value] = [_row_to_dict(row) for row in rows]
            settings = conn.execute(
                "SELECT key, value FROM settings WHERE family_code = ? ORDER BY id",
                (family_code,),
            ).fetchall()
        data["settings"] = [SettingEntry(key=row["key"], value=row["value"]) for row in settings]
        data["exportDate"] = datetime.now(tz=timezone.utc).isoformat()
        return Snapshot.model_validate(data)

    def replace_all(self, family_code: str, snapshot: Snapshot) -> int:
        """Destructive restore: clear the family's rows, then insert the snapshot, atomically."""
        imported = 0
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO family (code, created_at) VALUES (?, ?)",
                (family_code, now_ms()),
            )
            tables = [table for table, _ in RECORD_TABLES.values()]
            tables += [table for table, _ in DAILY_TABLES.values()]
            tables.append("settings")
            for table in tables:
                conn.execute(f"DELETE FROM {table} WHERE family_code = ?", (family_code,))

            for kind in RECORD_TABLES:
                for record in snapshot.records(kind):
                    self._insert_record(conn, family_code, kind, record)
                    imported += 1
            for kind in DAILY_TABLES:
                for record in snapshot.records(kind):
                    self._upsert_daily(conn, family_code, kind, record)
                    imported += 1
            for entry in snapshot.settings:
                self._upsert_setting(conn, family_code, entry.key, entry.value)
                imported += 1
        logger.info("snapshot restored", extra={"family": mask_family_code(family_code), "imported": imported})
        return imported
