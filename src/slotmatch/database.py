"""SQLite persistence layer: one short-lived connection per operation."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from slotmatch.errors import PersistenceError
from slotmatch.scheduling import find_conflict

_SLOT_COLUMNS = ("title", "description", "start_time", "end_time", "start_date", "end_date", "user_id", "active")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Database:
    def __init__(self, db_path: Path | str = "slotmatch.db") -> None:
        self.db_path = str(db_path)
        self._init_tables()

    # -- Connections ----------------------------------------------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Autocommit connection; sqlite errors surface as PersistenceError."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=10, isolation_level=None)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction that holds the database lock from its first read."""
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @contextmanager
    def _snapshot(self) -> Iterator[sqlite3.Connection]:
        """Read transaction; every query inside sees the same database state."""
        with self._connect() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            finally:
                conn.execute("COMMIT")

    def _init_tables(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    timezone TEXT DEFAULT '',
                    profession TEXT DEFAULT '',
                    role TEXT DEFAULT 'user',
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS slots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT,
                    description TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    active INTEGER DEFAULT 1,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS meetings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    description TEXT,
                    date TEXT NOT NULL,
                    slot_id INTEGER NOT NULL REFERENCES slots(id),
                    host_id INTEGER NOT NULL REFERENCES users(id),
                    status INTEGER DEFAULT 1,  -- 0 cancelled, 1 pending, 2 completed
                    start_time TEXT,
                    end_time TEXT,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS meeting_guests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    meeting_id INTEGER NOT NULL REFERENCES meetings(id),
                    guest_id INTEGER NOT NULL REFERENCES users(id),
                    UNIQUE(meeting_id, guest_id)
                );

                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id),
                    title TEXT,
                    description TEXT,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    operation TEXT,
                    table_name TEXT,
                    details TEXT,
                    created_at TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_slots_user_active ON slots(user_id, active);
                CREATE INDEX IF NOT EXISTS idx_meetings_host_date ON meetings(host_id, date);
            """)

    # -- Users ----------------------------------------------------------------

    def insert_user(self, user: dict) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """INSERT INTO users (name, email, password_hash, timezone, profession, role, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    user.get("name", ""), user["email"], user["password_hash"],
                    user.get("timezone", ""), user.get("profession", ""),
                    user.get("role", "user"), user.get("created_at") or _now(),
                ),
            )
            return cur.lastrowid

    def get_user_by_id(self, user_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def get_user_by_email(self, email: str) -> dict | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return dict(row) if row else None

    def list_hosts_with_active_slots(self, exclude_user_id: int) -> list[dict]:
        """Users other than *exclude_user_id* owning at least one active slot.

        Each user dict gets a ``slots`` list holding only its active slots.
        Users and slots are read from one snapshot, so no host comes back
        with an empty list.
        """
        with self._snapshot() as conn:
            rows = conn.execute(
                """SELECT u.* FROM users u
                   WHERE u.id != ?
                     AND EXISTS (SELECT 1 FROM slots s WHERE s.user_id = u.id AND s.active = 1)
                   ORDER BY u.id""",
                (exclude_user_id,),
            ).fetchall()
            users = []
            for r in rows:
                u = dict(r)
                u["slots"] = self._active_slots(conn, u["id"])
                users.append(u)
        return users

    # -- Slots ----------------------------------------------------------------

    def insert_slot(self, slot: dict) -> int:
        with self._connect() as conn:
            return self._insert_slot(conn, slot)

    def _insert_slot(self, conn: sqlite3.Connection, slot: dict) -> int:
        cur = conn.execute(
            """INSERT INTO slots
               (title, description, start_time, end_time, start_date, end_date, user_id, active, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                slot.get("title", ""), slot.get("description", ""),
                slot["start_time"], slot["end_time"], slot["start_date"], slot["end_date"],
                slot["user_id"], int(slot.get("active", True)), _now(),
            ),
        )
        return cur.lastrowid

    def create_slot_if_free(self, slot: dict) -> dict | None:
        """Insert *slot* unless it overlaps an active slot of the same owner.

        The check and the insert share one write transaction, so concurrent
        creations for the same owner are serialised.  Returns None on conflict.
        """
        with self._transaction() as conn:
            existing = self._active_slots(conn, slot["user_id"])
            if find_conflict(existing, slot):
                return None
            slot_id = self._insert_slot(conn, slot)
        return self.get_slot(slot_id)

    def update_slot_if_free(self, slot_id: int, slot: dict) -> dict | None:
        """Rewrite a slot unless the new bounds overlap another active slot.

        Deactivating a slot never conflicts.  Returns None on conflict.
        """
        with self._transaction() as conn:
            if slot.get("active", True):
                existing = self._active_slots(conn, slot["user_id"], exclude_slot_id=slot_id)
                if find_conflict(existing, slot):
                    return None
            sets = [f"{c} = ?" for c in _SLOT_COLUMNS]
            params = [int(slot.get(c, True)) if c == "active" else slot.get(c, "") for c in _SLOT_COLUMNS]
            params.append(slot_id)
            conn.execute(f"UPDATE slots SET {', '.join(sets)} WHERE id = ?", params)
        return self.get_slot(slot_id)

    def set_slot_active(self, slot_id: int, active: bool) -> bool:
        with self._connect() as conn:
            cur = conn.execute("UPDATE slots SET active = ? WHERE id = ?", (int(active), slot_id))
        return cur.rowcount > 0

    def get_slot(self, slot_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM slots WHERE id = ?", (slot_id,)).fetchone()
        return _row_to_slot(row) if row else None

    def list_slots(self) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM slots ORDER BY id").fetchall()
        return [_row_to_slot(r) for r in rows]

    def list_slots_by_user(self, user_id: int) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM slots WHERE user_id = ? ORDER BY start_date, start_time", (user_id,)
            ).fetchall()
        return [_row_to_slot(r) for r in rows]

    def list_active_slots_for_user(self, user_id: int, exclude_slot_id: int | None = None) -> list[dict]:
        with self._connect() as conn:
            return self._active_slots(conn, user_id, exclude_slot_id)

    def _active_slots(
        self, conn: sqlite3.Connection, user_id: int, exclude_slot_id: int | None = None,
    ) -> list[dict]:
        query = "SELECT * FROM slots WHERE user_id = ? AND active = 1"
        params: list = [user_id]
        if exclude_slot_id is not None:
            query += " AND id != ?"
            params.append(exclude_slot_id)
        rows = conn.execute(query + " ORDER BY id", params).fetchall()
        return [_row_to_slot(r) for r in rows]

    def list_slots_between(self, user_id: int, start: str, end: str) -> list[dict]:
        """Slots of *user_id* whose start_date lies in [start, end)."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT * FROM slots
                   WHERE user_id = ? AND start_date >= ? AND start_date < ?
                   ORDER BY start_date, start_time""",
                (user_id, start, end),
            ).fetchall()
        return [_row_to_slot(r) for r in rows]

    # -- Meetings -------------------------------------------------------------

    def insert_meeting(self, m: dict) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """INSERT INTO meetings
                   (description, date, slot_id, host_id, status, start_time, end_time, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    m.get("description", ""), m["date"], m["slot_id"], m["host_id"],
                    m.get("status", 1), m.get("start_time"), m.get("end_time"), _now(),
                ),
            )
            return cur.lastrowid

    def find_meeting_by_tuple(self, description: str, date: str, slot_id: int, host_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT * FROM meetings
                   WHERE description = ? AND date = ? AND slot_id = ? AND host_id = ?""",
                (description, date, slot_id, host_id),
            ).fetchone()
        return dict(row) if row else None

    def get_meeting(self, meeting_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
            if not row:
                return None
            d = dict(row)
            d["guest_ids"] = _guest_ids(conn, meeting_id)
        return d

    def list_meetings(self) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM meetings ORDER BY date").fetchall()
            results = []
            for r in rows:
                d = dict(r)
                d["guest_ids"] = _guest_ids(conn, d["id"])
                results.append(d)
        return results

    def list_meetings_by_host(self, host_id: int) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM meetings WHERE host_id = ? ORDER BY date", (host_id,)
            ).fetchall()
            results = []
            for r in rows:
                d = dict(r)
                d["guest_ids"] = _guest_ids(conn, d["id"])
                d["slot"] = _slot_by_id(conn, d["slot_id"])
                results.append(d)
        return results

    def list_meetings_by_slot(self, slot_id: int) -> list[dict]:
        """Meetings booked against *slot_id*, each with its slot and host."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM meetings WHERE slot_id = ? ORDER BY id", (slot_id,)
            ).fetchall()
            results = []
            for r in rows:
                d = dict(r)
                d["slot"] = _slot_by_id(conn, d["slot_id"])
                host = conn.execute(
                    "SELECT id, name, email, profession FROM users WHERE id = ?", (d["host_id"],)
                ).fetchone()
                d["host"] = dict(host) if host else None
                results.append(d)
        return results

    def list_meetings_between(self, host_id: int, start: str, end: str) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT * FROM meetings
                   WHERE host_id = ? AND date >= ? AND date < ?
                   ORDER BY date""",
                (host_id, start, end),
            ).fetchall()
            results = []
            for r in rows:
                d = dict(r)
                d["guest_ids"] = _guest_ids(conn, d["id"])
                d["slot"] = _slot_by_id(conn, d["slot_id"])
                results.append(d)
        return results

    def update_meeting_status(self, meeting_id: int, status: int) -> bool:
        with self._connect() as conn:
            cur = conn.execute("UPDATE meetings SET status = ? WHERE id = ?", (status, meeting_id))
        return cur.rowcount > 0

    def delete_meeting(self, meeting_id: int) -> bool:
        with self._transaction() as conn:
            conn.execute("DELETE FROM meeting_guests WHERE meeting_id = ?", (meeting_id,))
            cur = conn.execute("DELETE FROM meetings WHERE id = ?", (meeting_id,))
        return cur.rowcount > 0

    def insert_meeting_guest(self, meeting_id: int, guest_id: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO meeting_guests (meeting_id, guest_id) VALUES (?, ?)",
                (meeting_id, guest_id),
            )

    # -- Notifications --------------------------------------------------------

    def insert_notification(self, n: dict) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO notifications (user_id, title, description, created_at) VALUES (?, ?, ?, ?)",
                (n["user_id"], n.get("title", ""), n.get("description", ""), _now()),
            )
            return cur.lastrowid

    def list_notifications(self, user_id: int) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    # -- History (append-only) ------------------------------------------------

    def insert_history(self, operation: str, table_name: str, details: str) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO history (operation, table_name, details, created_at) VALUES (?, ?, ?, ?)",
                (operation, table_name, details, _now()),
            )
            return cur.lastrowid

    def list_history(self, limit: int = 100) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM history ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [dict(r) for r in rows]


def _row_to_slot(row: sqlite3.Row) -> dict:
    d = dict(row)
    d["active"] = bool(d["active"])
    return d


def _slot_by_id(conn: sqlite3.Connection, slot_id: int) -> dict | None:
    row = conn.execute("SELECT * FROM slots WHERE id = ?", (slot_id,)).fetchone()
    return _row_to_slot(row) if row else None


def _guest_ids(conn: sqlite3.Connection, meeting_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT guest_id FROM meeting_guests WHERE meeting_id = ? ORDER BY guest_id", (meeting_id,)
    ).fetchall()
    return [r["guest_id"] for r in rows]
