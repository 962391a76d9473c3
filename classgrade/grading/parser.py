"""
Response parser for AI grading output.

Extracts the JSON document from the model's reply and decodes it into a
typed GradingResult. Anything that does not have the expected shape is an
AIResponseError; raw dictionaries never leave this module.
"""

import json
import re
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from classgrade.errors import AIResponseError
from classgrade.models import GradingResult

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")


class ResponseParser:
    """
    Parses AI grading responses.

    Ensures:
    1. Markdown fences and surrounding chatter are removed
    2. The payload is a JSON object
    3. grades, total_score and overall_feedback are present and well typed
    """

    def parse(self, response: str) -> GradingResult:
        """
        Parse a model response into a GradingResult.

        Args:
            response: Raw model response (expected JSON).

        Returns:
            Decoded GradingResult, not yet clamped.

        Raises:
            AIResponseError: If the response is not a valid grading result.
        """
        data = self.extract_json(response)

        try:
            return GradingResult.model_validate(data)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise AIResponseError(
                f"Grading response has an unexpected shape: {', '.join(fields)}",
                raw_response=response,
                cause=e,
            ) from e

    def extract_json(self, response: str) -> dict[str, Any]:
        """
        Extract the JSON object from a response, handling common wrappings.

        Args:
            response: Raw response text.

        Returns:
            Decoded JSON object. Floats are decoded as Decimal.

        Raises:
            AIResponseError: If no JSON object can be decoded.
        """
        if not response or not response.strip():
            raise AIResponseError("Empty grading response", raw_response=response)

        text = response.strip()

        # Remove markdown code block if present
        fence = _FENCE_PATTERN.search(text)
        if fence:
            text = fence.group(1).strip()
        elif text.startswith("```"):
            # Opening fence without a closing one
            text = re.sub(r"^```(?:json|JSON)?\s*", "", text).strip()

        brace_start = text.find("{")
        if brace_start == -1:
            raise AIResponseError("No JSON object found in response", raw_response=response)

        decoder = json.JSONDecoder(parse_float=Decimal)
        try:
            data, _ = decoder.raw_decode(text, brace_start)
        except json.JSONDecodeError as e:
            raise AIResponseError(
                f"Invalid JSON in response: {e}", raw_response=response, cause=e
            ) from e

        if not isinstance(data, dict):
            raise AIResponseError("Response JSON is not an object", raw_response=response)

        return data
