"""
AI grading client.

Wraps the OpenAI SDK pointed at an OpenAI-compatible endpoint (Gemini's by
default). One call carries the prompt, the response schema and the PDF
inline; the reply is decoded into a GradingResult.

The client does not retry. A failed call surfaces immediately and the
caller decides whether to run the whole grading again.
"""

import base64
import logging
from typing import Any, Sequence

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

from classgrade.config import Settings, get_settings
from classgrade.errors import AIServiceError, AITimeoutError
from classgrade.grading.parser import ResponseParser
from classgrade.grading.prompt_builder import PromptBuilder
from classgrade.grading.schema_builder import SCHEMA_NAME, build_response_schema
from classgrade.models import GradingResult, QuestionSpec

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


class AIGradingClient:
    """
    Client for grading PDF submissions with a structured-output model.

    Holds no per-request state, so one instance can serve concurrent
    requests. Nothing is cached: every call re-sends the file and prompt.
    """

    def __init__(self, settings: Settings | None = None, client: OpenAI | None = None):
        """
        Initialize the AI client.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
            client: Preconfigured OpenAI client, mainly for tests.
        """
        self._settings = settings or get_settings()
        self._client = client or OpenAI(
            api_key=self._settings.ai_api_key,
            base_url=self._settings.ai_base_url,
            timeout=self._settings.ai_timeout_seconds,
            max_retries=0,
        )
        self._parser = ResponseParser()

    @property
    def model(self) -> str:
        return self._settings.ai_model

    def grade(
        self,
        pdf_content: bytes,
        questions: Sequence[QuestionSpec],
        guidelines: str | None = None,
    ) -> GradingResult:
        """
        Grade a submission PDF.

        Args:
            pdf_content: Raw bytes of the submitted PDF.
            questions: Questions to grade, in order.
            guidelines: Instructor grading guidelines.

        Returns:
            The decoded GradingResult. Grades are not clamped yet.

        Raises:
            AIServiceError: If the upstream call fails.
            AITimeoutError: If the call exceeds the configured deadline.
            AIResponseError: If the reply is not a valid grading result.
        """
        schema = build_response_schema(questions)
        prompt = PromptBuilder.build_grading_prompt(questions, guidelines)

        raw_response = self.generate(prompt, pdf_content, schema)
        return self._parser.parse(raw_response)

    def generate(self, prompt: str, pdf_content: bytes, schema: dict[str, Any]) -> str:
        """
        Send one structured-output request and return the raw text.

        Args:
            prompt: Grading instructions.
            pdf_content: PDF attachment.
            schema: JSON schema the reply must follow.

        Returns:
            Raw response text.

        Raises:
            AIServiceError: If the call fails or returns nothing.
        """
        encoded = base64.b64encode(pdf_content).decode("ascii")
        messages: list[dict[str, Any]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "file",
                        "file": {
                            "filename": "submission.pdf",
                            "file_data": f"data:{PDF_MIME_TYPE};base64,{encoded}",
                        },
                    },
                ],
            }
        ]

        logger.debug(
            "Sending grading request to %s (%d byte attachment)",
            self._settings.ai_model,
            len(pdf_content),
        )

        try:
            response = self._client.chat.completions.create(
                model=self._settings.ai_model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self._settings.ai_temperature,
                max_tokens=self._settings.ai_max_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": SCHEMA_NAME, "schema": schema},
                },  # type: ignore[arg-type]
            )

        except APITimeoutError as e:
            raise AITimeoutError(
                f"AI call exceeded {self._settings.ai_timeout_seconds:g}s deadline", cause=e
            ) from e

        except RateLimitError as e:
            raise AIServiceError(f"Rate limit exceeded: {e.message}", cause=e) from e

        except APIConnectionError as e:
            raise AIServiceError(f"Connection failed: {e}", cause=e) from e

        except APIStatusError as e:
            raise AIServiceError(f"API error {e.status_code}: {e.message}", cause=e) from e

        except OpenAIError as e:
            raise AIServiceError(f"Unexpected AI client error: {e}", cause=e) from e

        if response.choices and response.choices[0].message.content:
            return response.choices[0].message.content

        raise AIServiceError("Empty response from AI model")

    def health_check(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API is healthy, False otherwise.
        """
        try:
            response = self._client.chat.completions.create(
                model=self._settings.ai_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=5,
            )
            return bool(response.choices)
        except OpenAIError as e:
            logger.warning("AI health check failed: %s", e)
            return False
