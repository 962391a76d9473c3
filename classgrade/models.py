"""
Pydantic models for the grading pipeline.

These models define the strict schemas for:
- Questions as read-only grading input
- Per-question grades and the aggregate grading result
- The outcome reported once a submission has been graded

ORM tables live in ``classgrade.db.tables``; these models are the typed
values that flow between pipeline stages.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# Grades and points are stored with two decimal places.
POINTS_QUANTUM = Decimal("0.01")


def quantize_points(value: Decimal) -> Decimal:
    """Round a point value to the stored precision, half away from zero."""
    return value.quantize(POINTS_QUANTUM, rounding=ROUND_HALF_UP)


def _to_decimal(v: Any) -> Any:
    """Convert numeric values to Decimal for precision."""
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return Decimal(str(v))
    return v


# ==============================================================================
# Grading Input Models
# ==============================================================================


class QuestionSpec(BaseModel):
    """
    A question as seen by the grading pipeline.

    Immutable during grading; built from the stored question row.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Question identifier")

    number: int = Field(..., description="Ordinal number within the assignment")

    text: str = Field(..., description="Question text shown to students")

    max_points: Decimal = Field(
        ...,
        ge=0,
        description="Maximum points for this question",
    )

    solution_key: str | None = Field(
        default=None,
        description="Optional reference answer",
    )

    @field_validator("max_points", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        return _to_decimal(v)


# ==============================================================================
# Grading Result Models
# ==============================================================================


class GradeEntry(BaseModel):
    """The grade awarded for a single question."""

    model_config = ConfigDict(frozen=True)

    question_id: int = Field(..., description="Question this grade belongs to")

    grade: Decimal = Field(..., description="Points awarded")

    feedback: str = Field(default="", description="Feedback for the student")

    @field_validator("grade", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        return _to_decimal(v)

    @field_validator("feedback", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class GradingResult(BaseModel):
    """
    Grading result for one submission.

    Produced by the AI client, corrected by the validator and consumed by
    the persistence step. ``total_score`` is whatever the producer reported
    until the validator recomputes it.
    """

    model_config = ConfigDict(frozen=True)

    grades: tuple[GradeEntry, ...] = Field(
        ...,
        description="Per-question grades in the order returned",
    )

    total_score: Decimal = Field(
        ...,
        description="Aggregate score",
    )

    overall_feedback: str = Field(
        ...,
        description="Overall summary feedback for the submission",
    )

    @field_validator("total_score", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        return _to_decimal(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def grades_sum(self) -> Decimal:
        """Sum of the per-question grades."""
        return sum((g.grade for g in self.grades), Decimal(0))


class GradingOutcome(BaseModel):
    """What the orchestrator reports after a submission has been graded."""

    model_config = ConfigDict(frozen=True)

    assignment_id: int
    student_id: int
    submission_id: int

    result: GradingResult

    max_score: Decimal = Field(
        ...,
        description="Sum of max points over the assignment's questions",
    )

    clamped_question_ids: tuple[int, ...] = Field(
        default=(),
        description="Questions whose AI grade had to be clamped",
    )

    graded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp when grading was committed",
    )
