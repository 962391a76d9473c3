"""
Structured-output schema for AI grading responses.

The schema is handed to the model so its reply is machine-parseable JSON
instead of free text.
"""

from typing import Any, Sequence

from classgrade.models import QuestionSpec

SCHEMA_NAME = "grading_result"


def build_response_schema(questions: Sequence[QuestionSpec]) -> dict[str, Any]:
    """
    Build the JSON schema the model must answer with.

    The grades array is not pinned to one entry per question; the validator
    deals with missing or unexpected entries.

    Args:
        questions: Questions being graded, in order.

    Returns:
        JSON schema object.
    """
    limits = ", ".join(f"question {q.id}: {q.max_points}" for q in questions)
    grade_description = "Points awarded (must not exceed max_points"
    grade_description += f"; {limits})" if limits else ")"

    return {
        "type": "object",
        "properties": {
            "grades": {
                "type": "array",
                "description": "Array of grades for each question",
                "items": {
                    "type": "object",
                    "properties": {
                        "question_id": {
                            "type": "integer",
                            "description": "The question ID",
                        },
                        "grade": {
                            "type": "number",
                            "description": grade_description,
                        },
                        "feedback": {
                            "type": "string",
                            "description": "Detailed feedback explaining the grade",
                        },
                    },
                    "required": ["question_id", "grade", "feedback"],
                },
            },
            "total_score": {
                "type": "number",
                "description": "Sum of all question grades",
            },
            "overall_feedback": {
                "type": "string",
                "description": "Overall summary feedback for the submission",
            },
        },
        "required": ["grades", "total_score", "overall_feedback"],
    }
