from pathlib import Path
from unittest.mock import patch

import pytest

from store.repository import ProgressStore


def test_mark_completed_upserts_single_row(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")

    first = store.mark_lesson_completed("user-1", "variables-basics", score=85)
    second = store.mark_lesson_completed("user-1", "variables-basics", score=100)

    assert first.completed is True
    assert second.score == 100.0
    assert len(store.get_user_progress("user-1")) == 1


def test_practice_time_accumulates_and_survives_completion(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")
    _ = store.mark_lesson_completed("user-1", "js-intro")
    store.update_practice_time("user-1", "js-intro", 5)
    store.update_practice_time("user-1", "js-intro", 7)
    _ = store.mark_lesson_completed("user-1", "js-intro", score=90)

    progress = store.get_lesson_progress("user-1", "js-intro")
    assert progress is not None
    assert progress.time_spent == 12
    assert progress.score == 90.0


def test_practice_time_for_unknown_lesson_is_ignored(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")
    store.update_practice_time("user-1", "missing", 5)
    assert store.get_lesson_progress("user-1", "missing") is None


def test_progress_is_scoped_per_user(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")
    _ = store.mark_lesson_completed("user-1", "js-intro")
    _ = store.mark_lesson_completed("user-2", "functions-intro")

    assert [row.lesson_id for row in store.get_user_progress("user-1")] == ["js-intro"]
    assert [row.lesson_id for row in store.get_user_progress("user-2")] == ["functions-intro"]


def test_attempts_filter_by_exercise(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")
    store.record_attempt("user-1", "variables-basics", False, 12, failure="syntax")
    store.record_attempt("user-1", "variables-basics", True, 9)
    store.record_attempt("user-1", "other", True, 3)

    attempts = store.get_attempts("user-1", "variables-basics")
    assert [attempt.correct for attempt in attempts] == [False, True]
    assert attempts[0].failure == "syntax"
    assert len(store.get_attempts("user-1")) == 3


def test_store_reopens_existing_database(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "progress.db"
    _ = ProgressStore(db_path).mark_lesson_completed("user-1", "js-intro")
    assert ProgressStore(db_path).get_lesson_progress("user-1", "js-intro") is not None


def test_mark_completed_raises_when_row_cannot_be_read_back(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.db")
    with patch.object(ProgressStore, "get_lesson_progress", return_value=None):
        with pytest.raises(RuntimeError):
            _ = store.mark_lesson_completed("user-1", "js-intro")
