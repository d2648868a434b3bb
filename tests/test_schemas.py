from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from practice.catalog import ExerciseCatalog
from practice.schemas import AttemptOutcome, Exercise, Lesson


def test_attempt_outcome_serializes_round_trip() -> None:
    outcome = AttemptOutcome(
        exercise_id="variables-basics",
        correct=True,
        output="My name is Alice and I am 25 years old.",
        execution_time_ms=14,
        checked_at=datetime(2026, 1, 1),
    )

    restored = AttemptOutcome.from_json(outcome.to_json())

    assert restored.to_dict() == outcome.to_dict()
    assert restored.checked_at.utcoffset() == timezone.utc.utcoffset(restored.checked_at)


def test_unknown_language_is_rejected() -> None:
    with pytest.raises(ValidationError):
        _ = Exercise(id="x", title="X", prompt="p", expected_output="o", language="cobol")


def test_only_javascript_is_executable() -> None:
    assert Exercise(id="a", title="A", prompt="p", expected_output="o").executable is True
    assert Exercise(id="b", title="B", prompt="p", expected_output="o", language="ruby").executable is False


def test_lesson_order_must_be_non_negative() -> None:
    with pytest.raises(ValidationError):
        _ = Lesson(id="l", title="L", description="d", order=-1)


def test_bundled_catalog_loads_in_order() -> None:
    catalog = ExerciseCatalog.from_yaml()

    lessons = catalog.lessons()
    assert [lesson.order for lesson in lessons] == sorted(lesson.order for lesson in lessons)
    assert lessons[0].id == "js-intro"
    assert catalog.next_lesson("js-intro").id == "variables-basics"
    assert catalog.next_lesson("arrays-objects") is None

    exercise = catalog.get_exercise("variables-practice")
    assert exercise is not None
    assert exercise.expected_output == "My name is Alice and I am 25 years old."
    assert exercise.lesson_id == "variables-basics"
    assert catalog.get_exercise("py-variables-practice").executable is False
    assert catalog.get_lesson("missing") is None


def test_catalog_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        _ = ExerciseCatalog.from_yaml(tmp_path / "nope.yaml")


def test_catalog_invalid_entry(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text("exercises:\n  - id: broken\n    title: Broken\n", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = ExerciseCatalog.from_yaml(path)


def test_catalog_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = ExerciseCatalog.from_yaml(path)


def test_catalog_rejects_exercise_for_unknown_lesson(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "exercises:\n"
        "  - id: orphan\n"
        "    title: Orphan\n"
        "    prompt: p\n"
        "    expected_output: o\n"
        "    lesson_id: missing-lesson\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        _ = ExerciseCatalog.from_yaml(path)
