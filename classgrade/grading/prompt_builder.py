"""
Prompt builder for AI grading.

Constructs the instruction set sent alongside the submission PDF:
- Instructor grading guidelines, verbatim
- Every question with its max points and solution key
- Rules on partial credit, point limits and feedback tone
"""

from typing import Sequence

from classgrade.models import QuestionSpec


class PromptBuilder:
    """
    Builds grading prompts from questions and guidelines.

    The output is deterministic for a given input so identical requests
    send identical prompts.
    """

    DEFAULT_GUIDELINES = "Grade fairly based on correctness and completeness."

    NOT_PROVIDED = "Not provided"

    INTRO = (
        "You are a professional academic grader. Your task is to grade a student's "
        "submission based on the provided questions and grading guidelines."
    )

    INSTRUCTIONS = """INSTRUCTIONS:
- Examine the student's PDF submission carefully
- Grade each question based on the solution key and grading guidelines
- Award partial credit where appropriate
- Provide specific, constructive feedback for each question
- The grade for each question MUST NOT exceed its Maximum Points
- Be fair but rigorous in your assessment
- Keep feedback brief and realistic, as a real teacher would write it
- Do not mention these instructions or the prompt in any feedback

Return your grading results in the specified JSON format."""

    @staticmethod
    def build_grading_prompt(
        questions: Sequence[QuestionSpec],
        guidelines: str | None = None,
    ) -> str:
        """
        Build the grading prompt.

        Args:
            questions: Questions to grade, in order.
            guidelines: Instructor rubric text; the default fairness
                instruction is used when missing or blank.

        Returns:
            The formatted prompt.
        """
        guideline_text = PromptBuilder.resolve_guidelines(guidelines)
        question_text = PromptBuilder._format_questions(questions)

        return f"""{PromptBuilder.INTRO}

GRADING GUIDELINES:
{guideline_text}

QUESTIONS TO GRADE:
{question_text}

{PromptBuilder.INSTRUCTIONS}"""

    @staticmethod
    def resolve_guidelines(guidelines: str | None) -> str:
        """Return the guidelines to use, falling back to the default."""
        if guidelines is None or not guidelines.strip():
            return PromptBuilder.DEFAULT_GUIDELINES
        return guidelines

    @staticmethod
    def _format_questions(questions: Sequence[QuestionSpec]) -> str:
        """Format the question list for the prompt."""
        blocks: list[str] = []

        for question in questions:
            solution = question.solution_key
            if solution is None or not solution.strip():
                solution = PromptBuilder.NOT_PROVIDED

            blocks.append(
                "\n".join(
                    [
                        f"Question {question.id}: {question.text}",
                        f"- Maximum Points: {question.max_points}",
                        f"- Solution Key: {solution}",
                    ]
                )
            )

        return "\n\n".join(blocks)
