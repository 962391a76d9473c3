"""
Assignments and their questions.
"""

from fastapi import APIRouter, Depends

from classgrade.api.dependencies import get_platform_repository
from classgrade.api.schemas import (
    AssignmentCreate,
    AssignmentInfo,
    GuidelinesUpdate,
    MessageResponse,
    QuestionCreate,
    QuestionUpdate,
)
from classgrade.db.platform import PlatformRepository

router = APIRouter(tags=["assignments"])


@router.post("/assignments", response_model=MessageResponse)
def create_assignment(
    body: AssignmentCreate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.create_assignment(
        course_id=body.course_id,
        title=body.title,
        submission_type=body.submission_type,
        due_date=body.due_date,
        grading_guidelines=body.grading_guidelines,
    )
    return MessageResponse(message="Assignment created successfully")


@router.put("/assignments/grading-guidelines", response_model=MessageResponse)
def update_grading_guidelines(
    body: GuidelinesUpdate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.update_grading_guidelines(body.assignment_id, body.grading_guidelines)
    return MessageResponse(message="Grading guidelines updated successfully")


@router.get("/assignments/{assignment_id}", response_model=AssignmentInfo)
def get_assignment_info(
    assignment_id: int, repository: PlatformRepository = Depends(get_platform_repository)
) -> AssignmentInfo:
    """Assignment with questions, course users, latest submissions and scores."""
    return AssignmentInfo.model_validate(repository.get_assignment_info(assignment_id))


@router.post("/questions", response_model=MessageResponse)
def create_question(
    body: QuestionCreate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.create_question(
        assignment_id=body.assignment_id,
        question_number=body.question_number,
        question_text=body.question_text,
        max_points=body.max_points,
        solution_key=body.solution_key,
    )
    return MessageResponse(message="Question created successfully")


@router.put("/questions", response_model=MessageResponse)
def update_question(
    body: QuestionUpdate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.update_question(
        question_id=body.question_id,
        question_number=body.question_number,
        question_text=body.question_text,
        max_points=body.max_points,
        solution_key=body.solution_key,
    )
    return MessageResponse(message="Question updated successfully")


@router.delete("/questions/{question_id}", response_model=MessageResponse)
def delete_question(
    question_id: int, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.delete_question(question_id)
    return MessageResponse(message="Question deleted successfully")
