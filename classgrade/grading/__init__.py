"""
Grading Module.

AI grading pipeline: schema and prompt construction, the model client,
response decoding, grade clamping and orchestration.
"""

from classgrade.grading.ai_client import AIGradingClient
from classgrade.grading.engine import GradingService
from classgrade.grading.parser import ResponseParser
from classgrade.grading.prompt_builder import PromptBuilder
from classgrade.grading.schema_builder import build_response_schema
from classgrade.grading.validator import GradeValidator, validate_grading_result

__all__ = [
    "AIGradingClient",
    "GradeValidator",
    "GradingService",
    "PromptBuilder",
    "ResponseParser",
    "build_response_schema",
    "validate_grading_result",
]
