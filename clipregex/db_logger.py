"""
db_logger.py — SQLite diagnostics log for ClipRegex.

Creates clipregex.db in the chosen folder (default: next to the config).
Callers only enqueue; one writer thread drains the queue in batches, so a
hotkey thread never waits on disk.

Schema:
    sessions(id, started_at, config_path)
    log_entries(id, session_id, timestamp, tag, message, profile_name)

Entries older than `retain_days` are purged when a session starts.
LogReader opens an existing database read-only for browsing; it never
starts a session.
"""

import queue
import sqlite3
import threading
import uuid
from datetime import datetime, timedelta
from pathlib import Path

RETAIN_DAYS = 30
DB_NAME     = "clipregex.db"

_BATCH_MAX = 64

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS sessions (
        id          TEXT PRIMARY KEY,
        started_at  TEXT NOT NULL,
        config_path TEXT
    );
    CREATE TABLE IF NOT EXISTS log_entries (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id   TEXT NOT NULL REFERENCES sessions(id),
        timestamp    TEXT NOT NULL,
        tag          TEXT NOT NULL,
        message      TEXT NOT NULL,
        profile_name TEXT
    );
    CREATE INDEX IF NOT EXISTS idx_entries_session ON log_entries(session_id);
    CREATE INDEX IF NOT EXISTS idx_entries_tag     ON log_entries(tag);
    CREATE INDEX IF NOT EXISTS idx_entries_profile ON log_entries(profile_name);
"""

_INSERT = (
    "INSERT INTO log_entries(session_id, timestamp, tag, message, profile_name) "
    "VALUES(?,?,?,?,?)"
)


class LogReader:
    """Queries over a log database; opens it read-only."""

    def __init__(self, folder: str):
        self._db_path = str(Path(folder) / DB_NAME)

    @property
    def db_path(self) -> str:
        return self._db_path

    def exists(self) -> bool:
        return Path(self._db_path).is_file()

    def _read_only(self) -> sqlite3.Connection:
        uri = Path(self._db_path).resolve().as_uri() + "?mode=ro"
        return sqlite3.connect(uri, uri=True, timeout=10)

    def _rows(self, sql: str, params) -> list:
        conn = self._read_only()
        try:
            conn.row_factory = sqlite3.Row
            return [dict(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get_entries(self, session_id: str = None, tag: str = None,
                    profile: str = None, limit: int = 500) -> list:
        """
        Newest `limit` entries matching the filters, returned oldest first as
        dicts {id, session_id, timestamp, tag, message, profile_name}.
        """
        filters = {"session_id": session_id, "tag": tag, "profile_name": profile}
        active  = {col: val for col, val in filters.items() if val}
        where   = " AND ".join(f"{col} = ?" for col in active)
        sql = (
            "SELECT id, session_id, timestamp, tag, message, profile_name "
            "FROM log_entries "
            + (f"WHERE {where} " if where else "")
            + "ORDER BY id DESC LIMIT ?"
        )
        rows = self._rows(sql, [*active.values(), limit])
        rows.reverse()
        return rows

    def get_sessions(self, limit: int = 50) -> list:
        """Most recent sessions first, each with its entry count."""
        return self._rows(
            "SELECT s.id, s.started_at, s.config_path, COUNT(e.id) AS entries "
            "FROM sessions s LEFT JOIN log_entries e ON e.session_id = s.id "
            "GROUP BY s.id ORDER BY s.started_at DESC LIMIT ?",
            (limit,),
        )


class DBLogger(LogReader):
    def __init__(self, folder: str, config_path: str = "",
                 retain_days: int = RETAIN_DAYS):
        super().__init__(folder)
        self._session  = uuid.uuid4().hex[:8]
        self._queue    = queue.Queue()
        self._stop_evt = threading.Event()

        with self._connect() as conn:
            conn.executescript(_SCHEMA)
            self._purge(conn, retain_days)
            conn.execute(
                "INSERT INTO sessions(id, started_at, config_path) VALUES(?,?,?)",
                (self._session, datetime.now().isoformat(), config_path),
            )

        self._writer = threading.Thread(
            target=self._writer_loop, name="clipregex-db", daemon=True
        )
        self._writer.start()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @staticmethod
    def _purge(conn: sqlite3.Connection, retain_days: int):
        cutoff = (datetime.now() - timedelta(days=retain_days)).isoformat()
        conn.execute("DELETE FROM log_entries WHERE timestamp < ?", (cutoff,))
        conn.execute(
            "DELETE FROM sessions WHERE started_at < ? AND NOT EXISTS "
            "(SELECT 1 FROM log_entries e WHERE e.session_id = sessions.id)",
            (cutoff,),
        )

    # ── Writer thread ─────────────────────────────────────────────────────────

    def _next_batch(self) -> list:
        batch = [self._queue.get(timeout=0.2)]
        while len(batch) < _BATCH_MAX:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def _writer_loop(self):
        conn = self._connect()
        try:
            while True:
                try:
                    batch = self._next_batch()
                except queue.Empty:
                    if self._stop_evt.is_set():
                        break
                    continue

                rows = [item for item in batch if item is not None]
                try:
                    if rows:
                        conn.executemany(_INSERT, rows)
                        conn.commit()
                except sqlite3.Error:
                    # Entries in a failed batch are dropped
                    pass
                finally:
                    for _ in batch:
                        self._queue.task_done()

                if len(rows) != len(batch):
                    break
        finally:
            conn.close()

    # ── Public API ────────────────────────────────────────────────────────────

    def log(self, message: str, tag: str = "info", profile_name: str = ""):
        stamp = datetime.now().isoformat()
        self._queue.put((self._session, stamp, tag, message, profile_name or None))

    __call__ = log

    def flush(self):
        """Block until every queued entry has been written."""
        self._queue.join()

    @property
    def session_id(self) -> str:
        return self._session

    def stop(self):
        self._stop_evt.set()
        self._queue.put(None)
        self._writer.join(timeout=3)
