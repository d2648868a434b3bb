from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Literal, TypeVar

from pydantic import BaseModel, Field, field_validator

Language = Literal["javascript", "python", "php", "ruby"]
Difficulty = Literal["beginner", "intermediate", "advanced"]

EXECUTABLE_LANGUAGES: frozenset[str] = frozenset({"javascript"})


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class Lesson(BaseSchema):
    id: str
    title: str
    description: str
    difficulty: Difficulty = "beginner"
    order: int = Field(ge=0)
    estimated_time: int = Field(default=10, ge=0)
    content: str = ""
    example: str = ""
    next_lesson_id: str | None = None
    language: Language = "javascript"


class Exercise(BaseSchema):
    id: str
    title: str
    prompt: str
    starter_code: str = ""
    expected_output: str
    hints: list[str] = Field(default_factory=list)
    # Lesson marked completed when this exercise is solved
    lesson_id: str | None = None
    language: Language = "javascript"

    @property
    def executable(self) -> bool:
        return self.language in EXECUTABLE_LANGUAGES


class AttemptOutcome(BaseSchema):
    exercise_id: str
    correct: bool
    output: str
    error: str | None = None
    failure: str | None = None
    execution_time_ms: int = Field(default=0, ge=0)
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("checked_at")
    @classmethod
    def checked_at_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)
