"""
SQLite-backed progress repository.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import cast

from .database import connect, initialize_database


@dataclass
class LessonProgress:
    user_id: str
    lesson_id: str
    completed: bool
    score: float | None = None
    completed_at: str | None = None
    time_spent: int = 0

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "LessonProgress":
        row_dict = cast(dict[str, object], dict(row))
        return cls(
            user_id=_require_str(row_dict["user_id"], "user_id"),
            lesson_id=_require_str(row_dict["lesson_id"], "lesson_id"),
            completed=bool(row_dict.get("completed")),
            score=_optional_float(row_dict.get("score")),
            completed_at=_optional_str(row_dict.get("completed_at")),
            time_spent=_require_int(row_dict.get("time_spent") or 0, "time_spent"),
        )


@dataclass
class AttemptRecord:
    user_id: str
    exercise_id: str
    correct: bool
    execution_time_ms: int
    failure: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "AttemptRecord":
        row_dict = cast(dict[str, object], dict(row))
        return cls(
            user_id=_require_str(row_dict["user_id"], "user_id"),
            exercise_id=_require_str(row_dict["exercise_id"], "exercise_id"),
            correct=bool(row_dict.get("correct")),
            execution_time_ms=_require_int(row_dict["execution_time_ms"], "execution_time_ms"),
            failure=_optional_str(row_dict.get("failure")),
            created_at=_optional_str(row_dict.get("created_at")),
        )


def _require_str(value: object, field: str) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        raise ValueError(f"{field} is required")
    return str(value)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _require_int(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        return int(value)
    if value is None:
        raise ValueError(f"{field} is required")
    raise ValueError(f"{field} must be an int")


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        return float(value)
    raise ValueError("value must be a float")


class ProgressStore:
    def __init__(self, db_path: str | Path = "data/progress.db") -> None:
        self.db_path: str = str(db_path)
        initialize_database(self.db_path)

    def mark_lesson_completed(
        self, user_id: str, lesson_id: str, score: float | None = None
    ) -> LessonProgress:
        """Upsert a completed row, keeping previously accumulated practice time."""
        completed_at = datetime.now(timezone.utc).isoformat()
        with connect(self.db_path) as connection:
            _ = connection.execute(
                """
                INSERT INTO progress (user_id, lesson_id, completed, score, completed_at)
                VALUES (?, ?, 1, ?, ?)
                ON CONFLICT(user_id, lesson_id) DO UPDATE SET
                  completed = 1,
                  score = excluded.score,
                  completed_at = excluded.completed_at
                """,
                (user_id, lesson_id, score, completed_at),
            )
            connection.commit()
        progress = self.get_lesson_progress(user_id, lesson_id)
        if progress is None:
            raise RuntimeError(f"Progress row for {user_id}/{lesson_id} missing after upsert")
        return progress

    def update_practice_time(self, user_id: str, lesson_id: str, additional_minutes: int) -> None:
        """Add practice minutes to an existing progress row; unknown rows are ignored."""
        with connect(self.db_path) as connection:
            _ = connection.execute(
                "UPDATE progress SET time_spent = time_spent + ? WHERE user_id = ? AND lesson_id = ?",
                (additional_minutes, user_id, lesson_id),
            )
            connection.commit()

    def get_lesson_progress(self, user_id: str, lesson_id: str) -> LessonProgress | None:
        with connect(self.db_path) as connection:
            row = cast(
                sqlite3.Row | None,
                connection.execute(
                    "SELECT * FROM progress WHERE user_id = ? AND lesson_id = ?",
                    (user_id, lesson_id),
                ).fetchone(),
            )
        return LessonProgress.from_row(row) if row is not None else None

    def get_user_progress(self, user_id: str) -> list[LessonProgress]:
        with connect(self.db_path) as connection:
            rows = cast(
                list[sqlite3.Row],
                connection.execute(
                    "SELECT * FROM progress WHERE user_id = ? ORDER BY lesson_id",
                    (user_id,),
                ).fetchall(),
            )
        return [LessonProgress.from_row(row) for row in rows]

    def record_attempt(
        self,
        user_id: str,
        exercise_id: str,
        correct: bool,
        execution_time_ms: int,
        failure: str | None = None,
    ) -> None:
        with connect(self.db_path) as connection:
            _ = connection.execute(
                """
                INSERT INTO attempts (user_id, exercise_id, correct, failure, execution_time_ms)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, exercise_id, int(correct), failure, execution_time_ms),
            )
            connection.commit()

    def get_attempts(self, user_id: str, exercise_id: str | None = None) -> list[AttemptRecord]:
        query = "SELECT * FROM attempts WHERE user_id = ?"
        params: list[object] = [user_id]
        if exercise_id is not None:
            query += " AND exercise_id = ?"
            params.append(exercise_id)
        query += " ORDER BY id"
        with connect(self.db_path) as connection:
            rows = cast(list[sqlite3.Row], connection.execute(query, params).fetchall())
        return [AttemptRecord.from_row(row) for row in rows]
