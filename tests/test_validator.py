"""
Unit tests for grade clamping and total recomputation.
"""

import json
import logging
from decimal import Decimal

import pytest

from classgrade.config import UnknownQuestionPolicy
from classgrade.errors import AIResponseError
from classgrade.grading import GradeValidator, ResponseParser, validate_grading_result
from classgrade.grading.validator import clamp_grade


def _result(grades, total=0):
    payload = {
        "grades": [
            {"question_id": qid, "grade": grade, "feedback": f"Feedback for {qid}"}
            for qid, grade in grades
        ],
        "total_score": total,
        "overall_feedback": "Solid work overall.",
    }
    return ResponseParser().parse(json.dumps(payload))


class TestClampGrade:
    """Tests for clamp_grade."""

    @pytest.mark.parametrize(
        "grade,expected",
        [
            (Decimal("15"), Decimal("10")),
            (Decimal("10"), Decimal("10")),
            (Decimal("7.5"), Decimal("7.5")),
            (Decimal("0"), Decimal("0")),
            (Decimal("-2"), Decimal("0")),
        ],
    )
    def test_clamp(self, grade: Decimal, expected: Decimal) -> None:
        """Test grades are forced into [0, max]."""
        assert clamp_grade(grade, Decimal("10")) == expected


class TestGradeValidator:
    """Tests for GradeValidator."""

    def test_over_max_is_clamped(self, sample_questions) -> None:
        """Test a grade above max becomes max and the total follows it."""
        raw = _result([(1, 15)], total=15)

        report = GradeValidator().validate(raw, sample_questions)

        assert report.result.grades[0].grade == Decimal("10")
        assert report.result.total_score == Decimal("10")
        assert report.clamped_question_ids == (1,)

    def test_negative_is_clamped_to_zero(self, sample_questions) -> None:
        """Test a negative grade becomes zero."""
        raw = _result([(1, 6), (2, -3)], total=3)

        report = GradeValidator().validate(raw, sample_questions)

        assert report.result.grades[1].grade == Decimal("0")
        assert report.result.total_score == Decimal("6")
        assert report.clamped_question_ids == (2,)

    def test_total_is_recomputed(self, sample_questions) -> None:
        """Test the model's arithmetic is never trusted."""
        raw = _result([(1, 8), (2, 4.5)], total=99)

        report = GradeValidator().validate(raw, sample_questions)

        assert report.result.total_score == Decimal("12.5")
        assert report.clamped_question_ids == ()

    def test_feedback_and_order_preserved(self, sample_questions) -> None:
        """Test clamping keeps feedback, order and overall feedback."""
        raw = _result([(2, 9), (1, 3)], total=12)

        result = GradeValidator().validate(raw, sample_questions).result

        assert [g.question_id for g in result.grades] == [2, 1]
        assert result.grades[0].grade == Decimal("5")
        assert result.grades[0].feedback == "Feedback for 2"
        assert result.overall_feedback == "Solid work overall."

    def test_input_not_mutated(self, sample_questions) -> None:
        """Test the validator returns a copy."""
        raw = _result([(1, 15)], total=15)

        GradeValidator().validate(raw, sample_questions)

        assert raw.grades[0].grade == Decimal("15")
        assert raw.total_score == Decimal("15")

    def test_clamp_logs_warning(self, sample_questions, caplog: pytest.LogCaptureFixture) -> None:
        """Test each clamp is logged."""
        raw = _result([(1, 15)], total=15)

        with caplog.at_level(logging.WARNING, logger="classgrade.grading.validator"):
            GradeValidator().validate(raw, sample_questions)

        assert "Clamped grade for question 1" in caplog.text

    def test_unknown_id_passes_by_default(self, sample_questions) -> None:
        """Test unknown ids are kept unchanged under the default policy."""
        raw = _result([(1, 4), (99, 50)], total=54)

        report = GradeValidator().validate(raw, sample_questions)

        assert [g.question_id for g in report.result.grades] == [1, 99]
        assert report.result.grades[1].grade == Decimal("50")
        assert report.result.total_score == Decimal("54")
        assert report.unknown_question_ids == (99,)

    def test_unknown_id_dropped(self, sample_questions) -> None:
        """Test the drop policy removes unknown ids from the result and total."""
        raw = _result([(1, 4), (99, 50)], total=54)

        report = GradeValidator(UnknownQuestionPolicy.DROP).validate(raw, sample_questions)

        assert [g.question_id for g in report.result.grades] == [1]
        assert report.result.total_score == Decimal("4")
        assert report.unknown_question_ids == (99,)

    def test_unknown_id_rejected(self, sample_questions) -> None:
        """Test the reject policy fails the whole result."""
        raw = _result([(1, 4), (99, 50)], total=54)

        with pytest.raises(AIResponseError, match="unknown question id 99"):
            GradeValidator(UnknownQuestionPolicy.REJECT).validate(raw, sample_questions)

    def test_missing_questions_not_invented(self, sample_questions) -> None:
        """Test questions the model skipped stay absent."""
        raw = _result([(1, 4)], total=4)

        result = GradeValidator().validate(raw, sample_questions).result

        assert len(result.grades) == 1

    def test_empty_grades_total_zero(self, sample_questions) -> None:
        """Test an empty result totals zero."""
        raw = _result([], total=7)

        result = validate_grading_result(raw, sample_questions)

        assert result.grades == ()
        assert result.total_score == Decimal("0")

    def test_validate_grading_result_helper(self, sample_questions) -> None:
        """Test the functional wrapper returns the corrected result."""
        raw = _result([(1, 15), (2, 5)], total=20)

        result = validate_grading_result(raw, sample_questions)

        assert result.total_score == Decimal("15")

    def test_policy_accepts_plain_string(self, sample_questions) -> None:
        """Test policies can be given by their configuration value."""
        raw = _result([(1, 4), (99, 50)], total=54)

        result = validate_grading_result(raw, sample_questions, unknown_policy="drop")

        assert [g.question_id for g in result.grades] == [1]

    def test_grades_rounded_to_cents(self, sample_questions) -> None:
        """Test extra decimal places are rounded half up before summing."""
        raw = _result([(1, 1.005), (2, 2.675)], total=3.68)

        result = GradeValidator().validate(raw, sample_questions).result

        assert [g.grade for g in result.grades] == [Decimal("1.01"), Decimal("2.68")]
        assert result.total_score == Decimal("3.69")

    def test_rounding_alone_is_not_a_clamp(self, sample_questions) -> None:
        """Test a grade that rounds onto the max is not reported as clamped."""
        raw = _result([(1, 9.996), (2, 5.004)], total=15)

        report = GradeValidator().validate(raw, sample_questions)

        assert [g.grade for g in report.result.grades] == [Decimal("10.00"), Decimal("5.00")]
        assert report.clamped_question_ids == ()

    def test_rounded_grade_is_clamped(self, sample_questions) -> None:
        """Test a grade that rounds above the max is clamped to the max."""
        raw = _result([(1, 10.005)], total=10.005)

        report = GradeValidator().validate(raw, sample_questions)

        assert report.result.total_score == Decimal("10")
        assert report.clamped_question_ids == (1,)
