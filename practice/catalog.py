"""Lesson and practice-exercise catalogue backed by a YAML file."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from practice.schemas import Exercise, Lesson

DEFAULT_CATALOG_PATH = Path(__file__).with_name("data") / "catalog.yaml"


class ExerciseCatalog:
    """Read-only keyed lookup over lessons and practice exercises."""

    def __init__(self, lessons: list[Lesson], exercises: list[Exercise]) -> None:
        self._lessons: dict[str, Lesson] = {lesson.id: lesson for lesson in lessons}
        self._exercises: dict[str, Exercise] = {exercise.id: exercise for exercise in exercises}

    @classmethod
    def from_yaml(cls, yaml_path: str | Path | None = None) -> "ExerciseCatalog":
        """Load a catalogue file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the YAML is empty or an entry fails validation
        """
        path = Path(yaml_path) if yaml_path is not None else DEFAULT_CATALOG_PATH
        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Empty or invalid catalog file: {path}")

        try:
            lessons = [Lesson.from_dict(item) for item in data.get("lessons") or []]
            exercises = [Exercise.from_dict(item) for item in data.get("exercises") or []]
        except ValidationError as e:
            raise ValueError(f"Invalid catalog entry in {path}: {e}") from e

        lesson_ids = {lesson.id for lesson in lessons}
        for exercise in exercises:
            if exercise.lesson_id is not None and exercise.lesson_id not in lesson_ids:
                raise ValueError(
                    f"Exercise {exercise.id} references unknown lesson {exercise.lesson_id} in {path}"
                )

        return cls(lessons, exercises)

    def lessons(self) -> list[Lesson]:
        return sorted(self._lessons.values(), key=lambda lesson: lesson.order)

    def exercises(self) -> list[Exercise]:
        return list(self._exercises.values())

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        return self._lessons.get(lesson_id)

    def get_exercise(self, exercise_id: str) -> Exercise | None:
        return self._exercises.get(exercise_id)

    def next_lesson(self, lesson_id: str) -> Lesson | None:
        lesson = self._lessons.get(lesson_id)
        if lesson is None or lesson.next_lesson_id is None:
            return None
        return self._lessons.get(lesson.next_lesson_id)

    def __len__(self) -> int:
        return len(self._lessons)
