"""
Data access for the grading pipeline.

Reads the assignment, its questions and the latest submission, and owns
the single transaction that swaps a submission's grade set.
"""

import logging
from typing import NamedTuple

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from classgrade.db.tables import Assignment, Grade, Question, Submission, SubmissionStatus
from classgrade.errors import NotFoundError, PersistenceError
from classgrade.models import GradingResult, QuestionSpec

logger = logging.getLogger(__name__)


# Newest first; the id breaks ties between rows created in the same instant.
LATEST_SUBMISSION_FIRST = (Submission.created_at.desc(), Submission.submission_id.desc())


def latest_submission_ids(assignment_id: int) -> Select:
    """Select the id of each student's latest submission for an assignment."""
    ranked = (
        select(
            Submission.submission_id,
            func.row_number()
            .over(partition_by=Submission.student_id, order_by=list(LATEST_SUBMISSION_FIRST))
            .label("position"),
        )
        .where(Submission.assignment_id == assignment_id)
        .subquery()
    )
    return select(ranked.c.submission_id).where(ranked.c.position == 1)


class GradingContext(NamedTuple):
    """Everything about an assignment the grader needs."""

    assignment_id: int
    guidelines: str | None
    questions: tuple[QuestionSpec, ...]


class SubmissionRef(NamedTuple):
    """The submission selected for grading."""

    submission_id: int
    assignment_id: int
    student_id: int
    file_key: str | None
    status: str


class GradingRepository:
    """
    Database operations used by the grading orchestrator.

    Each method opens its own short-lived session. Only ``replace_grades``
    writes, and it does so inside one transaction.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_grading_context(self, assignment_id: int) -> GradingContext:
        """
        Load guidelines and ordered questions for an assignment.

        Raises:
            NotFoundError: If the assignment does not exist.
        """
        with self._session_factory() as session:
            assignment = session.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found")

            rows = session.scalars(
                select(Question)
                .where(Question.assignment_id == assignment_id)
                .order_by(Question.question_number, Question.question_id)
            ).all()

            questions = tuple(
                QuestionSpec(
                    id=row.question_id,
                    number=row.question_number,
                    text=row.question_text,
                    max_points=row.max_points,
                    solution_key=row.solution_key,
                )
                for row in rows
            )

            return GradingContext(
                assignment_id=assignment.assignment_id,
                guidelines=assignment.grading_guidelines,
                questions=questions,
            )

    def get_latest_submission(self, assignment_id: int, student_id: int) -> SubmissionRef | None:
        """Return the most recent submission for a student, or None."""
        with self._session_factory() as session:
            row = session.scalars(
                select(Submission)
                .where(
                    Submission.assignment_id == assignment_id,
                    Submission.student_id == student_id,
                )
                .order_by(*LATEST_SUBMISSION_FIRST)
                .limit(1)
            ).first()

            if row is None:
                return None

            return SubmissionRef(
                submission_id=row.submission_id,
                assignment_id=row.assignment_id,
                student_id=row.student_id,
                file_key=row.file_key,
                status=row.status,
            )

    def replace_grades(self, submission_id: int, result: GradingResult) -> int:
        """
        Atomically replace a submission's grades and mark it GRADED.

        Deletes every existing grade row, inserts one row per entry in
        ``result`` and flips the status, all in one transaction. The
        submission row is locked first (where the database supports
        ``SELECT ... FOR UPDATE``) so concurrent re-grades of the same
        submission commit one after the other; the last one wins.

        Args:
            submission_id: Submission being graded.
            result: Validated grading result.

        Returns:
            Number of grade rows written.

        Raises:
            NotFoundError: If the submission no longer exists.
            PersistenceError: If any statement fails; nothing is changed.
        """
        try:
            with self._session_factory.begin() as session:
                submission = session.scalars(
                    select(Submission)
                    .where(Submission.submission_id == submission_id)
                    .with_for_update()
                ).first()
                if submission is None:
                    raise NotFoundError("Submission not found")

                session.execute(delete(Grade).where(Grade.submission_id == submission_id))

                session.add_all(
                    Grade(
                        submission_id=submission_id,
                        question_id=entry.question_id,
                        grade=entry.grade,
                        feedback=entry.feedback,
                    )
                    for entry in result.grades
                )
                session.flush()

                submission.status = SubmissionStatus.GRADED

        except SQLAlchemyError as e:
            logger.error("Grade replacement for submission %s rolled back: %s", submission_id, e)
            raise PersistenceError(
                f"Failed to replace grades for submission {submission_id}", cause=e
            ) from e

        logger.info(
            "Stored %d grades for submission %s", len(result.grades), submission_id
        )
        return len(result.grades)
