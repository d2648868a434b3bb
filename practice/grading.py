"""Check practice attempts against an exercise's expected output."""

from __future__ import annotations

import logging
import sqlite3

from practice.schemas import AttemptOutcome, Exercise
from sandbox.executor import SnippetExecutor
from store.repository import ProgressStore

logger = logging.getLogger(__name__)

UNSUPPORTED_LANGUAGE_MESSAGE = "Code execution currently supports JavaScript only"
COMPLETION_SCORE = 100.0


def outputs_match(actual: str, expected: str) -> bool:
    return actual.strip() == expected.strip()


class ExerciseGrader:
    """
    Runs an attempt through the executor and compares trimmed output.

    Attempts are recorded under the exercise id; a correct attempt completes
    the exercise's lesson, if it names one. Progress recording is
    fire-and-forget: a failing store is logged and never changes the outcome.
    """

    def __init__(self, executor: SnippetExecutor, store: ProgressStore | None = None) -> None:
        self.executor = executor
        self.store = store

    async def check(self, exercise: Exercise, source: str, user_id: str | None = None) -> AttemptOutcome:
        if not exercise.executable:
            return AttemptOutcome(
                exercise_id=exercise.id,
                correct=False,
                output="",
                error=UNSUPPORTED_LANGUAGE_MESSAGE,
            )

        result = await self.executor.execute(source)
        correct = result.ok and outputs_match(result.output, exercise.expected_output)
        outcome = AttemptOutcome(
            exercise_id=exercise.id,
            correct=correct,
            output=result.output,
            error=result.error,
            failure=result.failure.value if result.failure is not None else None,
            execution_time_ms=result.execution_time_ms,
        )
        if user_id is not None:
            self._record(user_id, exercise, outcome)
        return outcome

    def _record(self, user_id: str, exercise: Exercise, outcome: AttemptOutcome) -> None:
        if self.store is None:
            return
        try:
            self.store.record_attempt(
                user_id,
                outcome.exercise_id,
                outcome.correct,
                outcome.execution_time_ms,
                failure=outcome.failure,
            )
            if outcome.correct and exercise.lesson_id is not None:
                _ = self.store.mark_lesson_completed(user_id, exercise.lesson_id, score=COMPLETION_SCORE)
        except sqlite3.Error as exc:
            logger.warning("Could not record progress for %s/%s: %s", user_id, outcome.exercise_id, exc)
