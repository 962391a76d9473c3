"""
AI grading endpoint.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends

from classgrade.api.dependencies import get_grading_service
from classgrade.api.schemas import MessageResponse
from classgrade.grading.engine import GradingService

router = APIRouter(tags=["grading"])


def format_points(value: Decimal) -> str:
    """Render points without trailing zeros (``15.00`` becomes ``15``)."""
    return format(value.normalize(), "f")


@router.get(
    "/assignments/{assignment_id}/user/{user_id}/ai-grading",
    response_model=MessageResponse,
)
def grade_with_ai(
    assignment_id: int,
    user_id: int,
    service: GradingService = Depends(get_grading_service),
) -> MessageResponse:
    """
    Grade the user's latest submission for the assignment with the AI model.

    Runs synchronously; previous grades are replaced once the new ones
    have been validated.
    """
    outcome = service.grade_submission(assignment_id, user_id)
    return MessageResponse(
        message=(
            "Submission graded successfully: "
            f"{format_points(outcome.result.total_score)}/{format_points(outcome.max_score)}"
        )
    )
