"""
Grade validation for AI grading results.

Rounds every grade to the stored precision, enforces 0 <= grade <= max_points
for every question the assignment knows about and recomputes the total from
the corrected grades. The total the model reported is never kept.
"""

import logging
from decimal import Decimal
from typing import NamedTuple, Sequence

from classgrade.config import UnknownQuestionPolicy
from classgrade.errors import AIResponseError
from classgrade.models import GradeEntry, GradingResult, QuestionSpec, quantize_points

logger = logging.getLogger(__name__)


class ValidationReport(NamedTuple):
    """Corrected result plus what had to be changed to get there."""

    result: GradingResult
    clamped_question_ids: tuple[int, ...]
    unknown_question_ids: tuple[int, ...]


class GradeValidator:
    """
    Clamps AI grades into range and recomputes totals.

    Grades above a question's max are clamped down to the max and negative
    grades up to zero; nothing is rejected for being out of range. Entries
    for question ids outside the question set are handled per
    ``unknown_policy``.
    """

    def __init__(self, unknown_policy: UnknownQuestionPolicy | str = UnknownQuestionPolicy.PASS):
        self._unknown_policy = UnknownQuestionPolicy(unknown_policy)

    def validate(
        self, result: GradingResult, questions: Sequence[QuestionSpec]
    ) -> ValidationReport:
        """
        Produce a corrected copy of a grading result.

        Args:
            result: Result as decoded from the model.
            questions: The assignment's questions.

        Returns:
            ValidationReport with the corrected result.

        Raises:
            AIResponseError: If the policy is REJECT and an unknown id is present.
        """
        max_points = {q.id: q.max_points for q in questions}

        entries: list[GradeEntry] = []
        clamped: list[int] = []
        unknown: list[int] = []

        for entry in result.grades:
            limit = max_points.get(entry.question_id)

            if limit is None:
                unknown.append(entry.question_id)
                if self._unknown_policy == UnknownQuestionPolicy.REJECT:
                    raise AIResponseError(
                        f"Grade references unknown question id {entry.question_id}"
                    )
                if self._unknown_policy == UnknownQuestionPolicy.DROP:
                    continue
                entries.append(entry.model_copy(update={"grade": quantize_points(entry.grade)}))
                continue

            # Round before clamping so the total matches the stored rows.
            rounded = quantize_points(entry.grade)
            grade = clamp_grade(rounded, limit)
            if grade != rounded:
                clamped.append(entry.question_id)
                logger.warning(
                    "Clamped grade for question %s from %s to %s",
                    entry.question_id,
                    entry.grade,
                    grade,
                )
            entries.append(entry.model_copy(update={"grade": grade}))

        if unknown:
            logger.warning(
                "Grading result references unknown question ids %s (policy: %s)",
                unknown,
                self._unknown_policy.value,
            )

        total = sum((e.grade for e in entries), Decimal(0))
        corrected = result.model_copy(update={"grades": tuple(entries), "total_score": total})

        return ValidationReport(
            result=corrected,
            clamped_question_ids=tuple(clamped),
            unknown_question_ids=tuple(unknown),
        )


def clamp_grade(grade: Decimal, max_points: Decimal) -> Decimal:
    """Force a grade into [0, max_points]."""
    if grade > max_points:
        return max_points
    if grade < 0:
        return Decimal(0)
    return grade


def validate_grading_result(
    result: GradingResult,
    questions: Sequence[QuestionSpec],
    unknown_policy: UnknownQuestionPolicy | str = UnknownQuestionPolicy.PASS,
) -> GradingResult:
    """Clamp grades and recompute the total; see GradeValidator."""
    return GradeValidator(unknown_policy).validate(result, questions).result
