"""
Processing-log sinks: append-only audit records of every recognition request.
"""

import sqlite3
import threading
import datetime as dt
from pathlib import Path
from typing import List

from .models import ProcessingLogEntry


class MemoryLogStore:
    """Keeps log entries in a list. Used for tests and when logging is off."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: List[ProcessingLogEntry] = []

    def append(self, entry: ProcessingLogEntry):
        with self._lock:
            self._entries.append(entry)

    def recent(self, limit: int = 20) -> List[ProcessingLogEntry]:
        with self._lock:
            return list(reversed(self._entries[-limit:])) if limit > 0 else []

    @property
    def entries(self) -> List[ProcessingLogEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self):
        return len(self._entries)


class SQLiteLogStore:
    """Append-only processing log in a SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        """Initialize the ocr_processing_logs table."""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
            CREATE TABLE IF NOT EXISTS ocr_processing_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                input_image_name TEXT,
                processing_time_ms INTEGER NOT NULL,
                engine_version TEXT,
                detected_text TEXT,
                confidence REAL,
                error_message TEXT,
                is_successful INTEGER NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
            """)
            conn.commit()

    def append(self, entry: ProcessingLogEntry):
        """Insert one log entry. Concurrent callers are serialized."""
        with self._lock:
            conn = sqlite3.connect(self.db_path.as_posix())
            try:
                with conn:
                    conn.execute("""
                        INSERT INTO ocr_processing_logs
                        (input_image_name, processing_time_ms, engine_version, detected_text,
                         confidence, error_message, is_successful, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """, (
                        entry.filename,
                        entry.processing_time_ms,
                        entry.engine_version,
                        entry.detected_text,
                        entry.confidence,
                        entry.error_message,
                        1 if entry.successful else 0,
                        entry.created_at.isoformat(),
                    ))
            finally:
                conn.close()

    def recent(self, limit: int = 20) -> List[ProcessingLogEntry]:
        """Return the newest `limit` entries, newest first."""
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
                SELECT input_image_name, processing_time_ms, is_successful, detected_text,
                       confidence, error_message, engine_version, created_at
                FROM ocr_processing_logs
                ORDER BY id DESC
                LIMIT ?
            """, (limit,))
            rows = cur.fetchall()

        return [
            ProcessingLogEntry(
                filename=r[0],
                processing_time_ms=r[1],
                successful=bool(r[2]),
                detected_text=r[3],
                confidence=r[4],
                error_message=r[5],
                engine_version=r[6],
                created_at=dt.datetime.fromisoformat(r[7]),
            )
            for r in rows
        ]

    def __len__(self):
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            return conn.execute("SELECT COUNT(*) FROM ocr_processing_logs").fetchone()[0]
