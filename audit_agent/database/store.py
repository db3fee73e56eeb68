"""
Database Module
SQLite store for persisted preferences (prompt templates, theme) and run history.
"""

import sqlite3
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List
from contextlib import contextmanager

from pydantic import ValidationError

from audit_agent.core.prompts import default_prompt_templates
from audit_agent.models import RunSummary, UserPreferences, WorkflowRun
from audit_agent.settings import settings
from audit_agent.utils.logger import get_logger

logger = get_logger(__name__)

PREFERENCES_KEY = "user_preferences"
INPUT_EXCERPT_CHARS = 200


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path or settings.db_path
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def get_connection(self):
        """Get database connection context manager."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Create database tables if they don't exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    run_id TEXT PRIMARY KEY,
                    started_at TEXT NOT NULL,
                    finished_at TEXT,
                    status TEXT NOT NULL,
                    start_step INTEGER NOT NULL,
                    input_excerpt TEXT,
                    error_message TEXT,
                    outputs TEXT
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_runs_started_at
                ON runs(started_at)
            """)

    # ===== Preferences =====

    def save_preferences(self, preferences: UserPreferences):
        """Store the preferences object verbatim as JSON."""
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO preferences (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (
                PREFERENCES_KEY,
                preferences.model_dump_json(),
                datetime.now(timezone.utc).isoformat()
            ))
        logger.debug("Preferences saved")

    def load_preferences(self) -> UserPreferences:
        """Load stored preferences, falling back to defaults."""
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM preferences WHERE key = ?",
                (PREFERENCES_KEY,)
            ).fetchone()

        if row is None:
            return UserPreferences(prompts=default_prompt_templates())

        try:
            return UserPreferences.model_validate_json(row["value"])
        except ValidationError as e:
            logger.warning(
                f"Stored preferences are unreadable, using defaults: {e.error_count()} errors"
            )
            return UserPreferences(prompts=default_prompt_templates())

    def reset_preferences(self):
        """Delete stored preferences."""
        with self.get_connection() as conn:
            conn.execute("DELETE FROM preferences WHERE key = ?", (PREFERENCES_KEY,))
        logger.info("Preferences reset to defaults")

    # ===== Run History =====

    def record_run(self, run: WorkflowRun):
        """Insert or update a workflow run."""
        outputs = {
            str(step.id): step.content for step in run.steps if step.content
        }
        with self.get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO runs (
                    run_id, started_at, finished_at, status, start_step,
                    input_excerpt, error_message, outputs
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                run.run_id,
                run.started_at.isoformat(),
                run.finished_at.isoformat() if run.finished_at else None,
                run.status,
                run.start_step,
                run.data.audit_report[:INPUT_EXCERPT_CHARS],
                run.error,
                json.dumps(outputs)
            ))
        logger.info("Run recorded", extra={"run_id": run.run_id, "status": run.status})

    def _row_to_summary(self, row: sqlite3.Row) -> RunSummary:
        outputs = json.loads(row["outputs"]) if row["outputs"] else {}
        return RunSummary(
            run_id=row["run_id"],
            started_at=row["started_at"],
            finished_at=row["finished_at"],
            status=row["status"],
            start_step=row["start_step"],
            input_excerpt=row["input_excerpt"] or "",
            error_message=row["error_message"],
            outputs={int(step_id): text for step_id, text in outputs.items()}
        )

    def get_recent_runs(self, limit: int = 10) -> List[RunSummary]:
        """Get the most recent runs, newest first."""
        with self.get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM runs
                ORDER BY started_at DESC
                LIMIT ?
            """, (limit,)).fetchall()
        return [self._row_to_summary(row) for row in rows]

    def get_run(self, run_id: str) -> Optional[RunSummary]:
        """Get one run by id."""
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,)).fetchone()
        return self._row_to_summary(row) if row else None


_database: Optional[Database] = None


def get_database() -> Database:
    """Get or create the global database instance."""
    global _database
    if _database is None:
        _database = Database()
    return _database
