"""
Submission upload flow.

A new upload replaces every earlier submission of the same student for
the same assignment, in storage and in the database.
"""

import logging
import time

from classgrade.config import Settings, get_settings
from classgrade.db.grading import SubmissionRef
from classgrade.db.platform import PlatformRepository
from classgrade.errors import StorageError
from classgrade.pdf import inspect_pdf
from classgrade.storage import FileStorage

logger = logging.getLogger(__name__)


def submission_file_key(assignment_id: int, student_id: int, timestamp_ms: int) -> str:
    return f"submissions/{assignment_id}/{student_id}/{timestamp_ms}.pdf"


class SubmissionService:
    """Stores uploaded PDFs and records them as the student's submission."""

    def __init__(
        self,
        repository: PlatformRepository,
        storage: FileStorage,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._repository = repository
        self._storage = storage

    def upload(self, assignment_id: int, student_id: int, content: bytes) -> SubmissionRef:
        """
        Validate, store and record a submission PDF.

        The new file is written before the database rows are swapped, and
        old files are removed only after the swap commits. Failing to
        delete an old file is logged, not raised.

        Raises:
            InvalidStateError: If the upload is not an acceptable PDF.
            NotFoundError: If the assignment or user does not exist.
            StorageError: If the new file cannot be stored.
            PersistenceError: If the submission cannot be recorded.
        """
        info = inspect_pdf(content, max_bytes=self._settings.max_upload_bytes)

        old_keys = self._repository.list_submission_file_keys(assignment_id, student_id)

        file_key = submission_file_key(assignment_id, student_id, int(time.time() * 1000))
        self._storage.put(file_key, content, "application/pdf")

        try:
            submission = self._repository.replace_submission(assignment_id, student_id, file_key)
        except Exception:
            self._discard(file_key)
            raise

        for key in old_keys:
            if key != file_key:
                self._discard(key)

        logger.info(
            "Stored submission %s for assignment %s, student %s (%d pages, %d bytes)",
            submission.submission_id,
            assignment_id,
            student_id,
            info.page_count,
            info.size_bytes,
        )
        return submission

    def _discard(self, key: str) -> None:
        try:
            self._storage.delete(key)
        except StorageError as e:
            logger.error("Failed to delete file %s from storage: %s", key, e)
