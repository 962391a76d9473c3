"""
Grading service - the core orchestrator.

Runs one AI grading for the latest submission of a student:
file retrieval, prompt and schema construction, the AI call, clamping,
and the atomic grade replacement. Each stage fails fast and nothing is
written before the final transaction commits.
"""

import logging
import time
from decimal import Decimal

from classgrade.config import Settings, UnknownQuestionPolicy, get_settings
from classgrade.db.grading import GradingRepository
from classgrade.errors import InvalidStateError, NotFoundError, StorageError
from classgrade.grading.ai_client import AIGradingClient
from classgrade.grading.validator import GradeValidator
from classgrade.models import GradingOutcome
from classgrade.storage import FileStorage

logger = logging.getLogger(__name__)


class GradingService:
    """
    Orchestrates AI grading of a submission.

    Collaborators are injected so tests can substitute fakes. The service
    keeps no per-request state; concurrent calls for different submissions
    share nothing mutable.
    """

    def __init__(
        self,
        repository: GradingRepository,
        storage: FileStorage | None,
        ai_client: AIGradingClient,
        settings: Settings | None = None,
        unknown_policy: UnknownQuestionPolicy | None = None,
    ):
        """
        Initialize the grading service.

        Args:
            repository: Database access for the pipeline.
            storage: Where submission files live; None when no store is configured.
            ai_client: Client for the grading model.
            settings: Configuration settings. Uses global settings if not provided.
            unknown_policy: Override for the unknown-question policy.
        """
        self._settings = settings or get_settings()
        self._repository = repository
        self._storage = storage
        self._ai_client = ai_client
        self._validator = GradeValidator(
            unknown_policy or self._settings.unknown_question_policy
        )

    def grade_submission(self, assignment_id: int, student_id: int) -> GradingOutcome:
        """
        Grade the latest submission of a student for an assignment.

        Re-running replaces the previous grades, so the operation is
        idempotent from the caller's point of view.

        Args:
            assignment_id: Assignment being graded.
            student_id: Student whose latest submission is graded.

        Returns:
            GradingOutcome with the stored result.

        Raises:
            NotFoundError: If the assignment or a submission is missing.
            InvalidStateError: If there are no questions or no stored file.
            StorageError: If no store is configured or the file cannot be retrieved.
            AIServiceError: If the model call fails or times out.
            AIResponseError: If the model reply is unusable.
            PersistenceError: If saving the grades fails (rolled back).
        """
        started = time.monotonic()

        # Step 1: assignment, guidelines and questions
        context = self._repository.get_grading_context(assignment_id)
        if not context.questions:
            raise InvalidStateError("Assignment has no questions to grade")

        # Step 2: latest submission and its file
        submission = self._repository.get_latest_submission(assignment_id, student_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        if not submission.file_key:
            raise InvalidStateError("Submission has no file attached")

        logger.info(
            "Grading submission %s (assignment %s, student %s, %d questions)",
            submission.submission_id,
            assignment_id,
            student_id,
            len(context.questions),
        )

        # Step 3: file content
        if self._storage is None:
            raise StorageError("File storage is not configured")
        try:
            pdf_content = self._storage.get(submission.file_key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to retrieve '{submission.file_key}': {e}", cause=e) from e

        # Step 4: AI grading
        raw_result = self._ai_client.grade(pdf_content, context.questions, context.guidelines)

        # Step 5: clamp and recompute
        report = self._validator.validate(raw_result, context.questions)
        if report.result.total_score != raw_result.total_score:
            logger.info(
                "Recomputed total for submission %s: model reported %s, stored %s",
                submission.submission_id,
                raw_result.total_score,
                report.result.total_score,
            )

        # Step 6: atomic replacement
        self._repository.replace_grades(submission.submission_id, report.result)

        max_score = sum((q.max_points for q in context.questions), Decimal(0))
        logger.info(
            "Graded submission %s: %s/%s in %.1fs",
            submission.submission_id,
            report.result.total_score,
            max_score,
            time.monotonic() - started,
        )

        return GradingOutcome(
            assignment_id=assignment_id,
            student_id=student_id,
            submission_id=submission.submission_id,
            result=report.result,
            max_score=max_score,
            clamped_question_ids=report.clamped_question_ids,
        )

    def health_check(self) -> bool:
        """
        Check if the grading model is reachable.

        Returns:
            True if the AI API answers.
        """
        return self._ai_client.health_check()
