"""
Submission upload, submission view and manual grade edits.
"""

from fastapi import APIRouter, Depends, File, UploadFile

from classgrade.api.dependencies import (
    get_app_settings,
    get_platform_repository,
    get_submission_service,
)
from classgrade.api.schemas import GradeUpdate, MessageResponse, UserSubmission
from classgrade.config import Settings
from classgrade.db.platform import PlatformRepository
from classgrade.pdf import read_upload
from classgrade.storage import public_file_url
from classgrade.submissions import SubmissionService

router = APIRouter(tags=["submissions"])


@router.post("/users/{user_id}/assignments/{assignment_id}/upload", response_model=MessageResponse)
def upload_submission(
    user_id: int,
    assignment_id: int,
    file: UploadFile = File(...),
    service: SubmissionService = Depends(get_submission_service),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    """Upload a PDF, replacing any earlier submission for this assignment."""
    data = read_upload(file.file, settings.max_upload_bytes)
    service.upload(assignment_id, user_id, data)
    return MessageResponse(message="Submission uploaded successfully")


@router.get(
    "/assignments/{assignment_id}/students/{student_id}/submission",
    response_model=UserSubmission,
)
def get_user_submission(
    assignment_id: int,
    student_id: int,
    repository: PlatformRepository = Depends(get_platform_repository),
    settings: Settings = Depends(get_app_settings),
) -> UserSubmission:
    view = repository.get_user_submission(assignment_id, student_id)

    submission = view["submission"]
    if submission is not None:
        view["submission"] = {
            "file_url": public_file_url(settings, submission["file_key"]),
            "status": submission["status"],
        }

    return UserSubmission.model_validate(view)


@router.put("/grades", response_model=MessageResponse)
def update_grade(
    body: GradeUpdate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.update_grade(body.grade_id, body.grade, body.feedback)
    return MessageResponse(message="Grade updated successfully")
