"""SQLite database layer for upsc-rank."""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from upsc_rank.adaptive import PerformanceSample
from upsc_rank.subjects import UserProgressSnapshot

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".upsc-rank" / "data.db"


class Database:
    """SQLite database manager with WAL mode."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS performance_samples (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                performance REAL NOT NULL,
                accuracy REAL,
                time_taken_seconds REAL,
                mood_tag TEXT,
                duration_minutes REAL,
                revision_count INTEGER
            );

            CREATE INDEX IF NOT EXISTS idx_samples_user_time
                ON performance_samples (user_id, timestamp);

            CREATE TABLE IF NOT EXISTS progress (
                user_id TEXT PRIMARY KEY,
                completion_ratio REAL DEFAULT 0.0,
                accuracy_ratio REAL DEFAULT 0.0,
                test_performance_ratio REAL DEFAULT 0.0,
                category TEXT DEFAULT 'general'
            );

            CREATE TABLE IF NOT EXISTS predictions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                total_score INTEGER,
                predicted_rank INTEGER,
                percentile REAL,
                payload TEXT
            );

            CREATE TABLE IF NOT EXISTS learning_velocity (
                user_id TEXT PRIMARY KEY,
                velocity REAL NOT NULL,
                updated_at TEXT
            );
        """)
        self.conn.commit()

    def add_sample(self, user_id: str, sample: PerformanceSample) -> int:
        """Append a performance sample. Samples are never updated."""
        cursor = self.conn.execute(
            "INSERT INTO performance_samples (user_id, timestamp, performance, accuracy, "
            "time_taken_seconds, mood_tag, duration_minutes, revision_count) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                user_id,
                sample.timestamp.astimezone(timezone.utc).isoformat(),
                sample.performance,
                sample.accuracy,
                sample.time_taken_seconds,
                sample.mood_tag,
                sample.duration_minutes,
                sample.revision_count,
            ),
        )
        self.conn.commit()
        logger.debug("Stored sample %d for %s", cursor.lastrowid, user_id)
        return cursor.lastrowid

    def get_recent_samples(self, user_id: str, limit: int = 100) -> list[PerformanceSample]:
        """Return up to `limit` samples, most recent first."""
        rows = self.conn.execute(
            "SELECT * FROM performance_samples WHERE user_id = ? "
            "ORDER BY timestamp DESC, id DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        return [_row_to_sample(row) for row in rows]

    def count_samples(self, user_id: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) AS n FROM performance_samples WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row["n"]

    def set_progress(self, user_id: str, snapshot: UserProgressSnapshot) -> None:
        """Set the progress snapshot for a user (upsert)."""
        self.conn.execute(
            "INSERT INTO progress (user_id, completion_ratio, accuracy_ratio, "
            "test_performance_ratio, category) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET "
            "completion_ratio = excluded.completion_ratio, "
            "accuracy_ratio = excluded.accuracy_ratio, "
            "test_performance_ratio = excluded.test_performance_ratio, "
            "category = excluded.category",
            (
                user_id,
                snapshot.completion_ratio,
                snapshot.accuracy_ratio,
                snapshot.test_performance_ratio,
                snapshot.category,
            ),
        )
        self.conn.commit()

    def get_progress(self, user_id: str) -> UserProgressSnapshot | None:
        """Get the progress snapshot for a user."""
        row = self.conn.execute(
            "SELECT * FROM progress WHERE user_id = ?", (user_id,)
        ).fetchone()
        if row is None:
            return None
        return UserProgressSnapshot(
            completion_ratio=row["completion_ratio"],
            accuracy_ratio=row["accuracy_ratio"],
            test_performance_ratio=row["test_performance_ratio"],
            category=row["category"],
        )

    def save_prediction(
        self,
        user_id: str,
        created_at: str,
        total_score: int,
        predicted_rank: int,
        percentile: float,
        payload: dict,
    ) -> int:
        """Store a computed prediction with its full JSON payload."""
        cursor = self.conn.execute(
            "INSERT INTO predictions (user_id, created_at, total_score, predicted_rank, "
            "percentile, payload) VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, created_at, total_score, predicted_rank, percentile, json.dumps(payload)),
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_prediction_history(self, user_id: str, limit: int = 10) -> list[dict]:
        """Return stored predictions, newest first, without payloads."""
        rows = self.conn.execute(
            "SELECT id, created_at, total_score, predicted_rank, percentile "
            "FROM predictions WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_latest_prediction(self, user_id: str) -> dict | None:
        """Return the newest stored prediction payload."""
        row = self.conn.execute(
            "SELECT payload FROM predictions WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return json.loads(row["payload"]) if row else None

    def get_learning_velocity(self, user_id: str) -> float | None:
        row = self.conn.execute(
            "SELECT velocity FROM learning_velocity WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row["velocity"] if row else None

    def set_learning_velocity(self, user_id: str, velocity: float) -> None:
        self.conn.execute(
            "INSERT INTO learning_velocity (user_id, velocity, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET velocity = excluded.velocity, "
            "updated_at = excluded.updated_at",
            (user_id, velocity, datetime.now(tz=timezone.utc).isoformat()),
        )
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()


def _row_to_sample(row: sqlite3.Row) -> PerformanceSample:
    return PerformanceSample(
        timestamp=datetime.fromisoformat(row["timestamp"]),
        performance=row["performance"],
        accuracy=row["accuracy"],
        time_taken_seconds=row["time_taken_seconds"],
        mood_tag=row["mood_tag"],
        duration_minutes=row["duration_minutes"],
        revision_count=row["revision_count"],
    )
