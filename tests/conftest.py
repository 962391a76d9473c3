"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import json
from decimal import Decimal
from typing import Any, Generator, NamedTuple
from unittest.mock import MagicMock

import fitz
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from classgrade.config import Settings
from classgrade.db.grading import GradingRepository
from classgrade.db.platform import PlatformRepository
from classgrade.db.session import create_db_engine, create_session_factory, init_db
from classgrade.errors import StorageError
from classgrade.grading.ai_client import AIGradingClient
from classgrade.grading.parser import ResponseParser
from classgrade.models import GradingResult, QuestionSpec


# ==============================================================================
# Fakes
# ==============================================================================


class FakeFileStorage:
    """In-memory FileStorage with switchable failures."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.get_calls: list[str] = []
        self.fail_get = False
        self.fail_delete = False

    def get(self, key: str) -> bytes:
        self.get_calls.append(key)
        if self.fail_get:
            raise StorageError("storage unavailable")
        if key not in self.files:
            raise StorageError(f"File '{key}' does not exist")
        return self.files[key]

    def put(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        self.files[key] = data

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("delete failed")
        self.files.pop(key, None)


class SeededData(NamedTuple):
    """Identifiers of the rows created by the ``seeded`` fixture."""

    instructor_id: int
    student_id: int
    course_id: int
    assignment_id: int
    question_ids: tuple[int, int]
    submission_id: int
    file_key: str


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with mocked values."""
    return Settings(
        ai_api_key="test-api-key-for-testing",
        ai_base_url="https://test.api.local/",
        ai_model="test-model",
        ai_timeout_seconds=30,
        database_url="sqlite://",
        r2_public_url="https://files.test.local/",
        api_key=None,
    )


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database with all tables."""
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return create_session_factory(engine)


@pytest.fixture
def grading_repository(session_factory: sessionmaker) -> GradingRepository:
    return GradingRepository(session_factory)


@pytest.fixture
def platform_repository(session_factory: sessionmaker) -> PlatformRepository:
    return PlatformRepository(session_factory)


@pytest.fixture
def seeded(platform_repository: PlatformRepository) -> SeededData:
    """A course with one assignment, two questions and one submission."""
    instructor_id = platform_repository.create_user(
        "Grace", "Hopper", "grace.hopper@university.edu", "INSTRUCTOR"
    )
    student_id = platform_repository.create_user(
        "Alan", "Turing", "alan.turing@university.edu", "STUDENT"
    )
    course_id = platform_repository.create_course(
        "CS101", "Intro to Computing", "#3366ff", "grace.hopper@university.edu"
    )
    platform_repository.create_enrollment("alan.turing@university.edu", course_id)

    assignment_id = platform_repository.create_assignment(
        course_id,
        "Homework 1",
        submission_type="PDF",
        grading_guidelines="Deduct one point per arithmetic slip.",
    )
    q1 = platform_repository.create_question(
        assignment_id, 1, "What is 2 + 2?", Decimal("10"), solution_key="4"
    )
    q2 = platform_repository.create_question(
        assignment_id, 2, "Explain recursion.", Decimal("5")
    )

    file_key = f"submissions/{assignment_id}/{student_id}/1700000000000.pdf"
    submission = platform_repository.replace_submission(assignment_id, student_id, file_key)

    return SeededData(
        instructor_id=instructor_id,
        student_id=student_id,
        course_id=course_id,
        assignment_id=assignment_id,
        question_ids=(q1, q2),
        submission_id=submission.submission_id,
        file_key=file_key,
    )


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def pdf_bytes() -> bytes:
    """A small, real one-page PDF."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Answer 1: 4\nAnswer 2: A function that calls itself.")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def fake_storage(seeded: SeededData, pdf_bytes: bytes) -> FakeFileStorage:
    """Storage already holding the seeded submission's file."""
    storage = FakeFileStorage()
    storage.put(seeded.file_key, pdf_bytes)
    return storage


# ==============================================================================
# Question and Result Fixtures
# ==============================================================================


@pytest.fixture
def sample_questions() -> tuple[QuestionSpec, ...]:
    return (
        QuestionSpec(id=1, number=1, text="What is 2 + 2?", max_points=Decimal("10"), solution_key="4"),
        QuestionSpec(id=2, number=2, text="Explain recursion.", max_points=Decimal("5")),
    )


def make_ai_payload(grades: list[tuple[int, Any]], total: Any = 0) -> dict[str, Any]:
    return {
        "grades": [
            {"question_id": qid, "grade": grade, "feedback": f"Feedback for {qid}"}
            for qid, grade in grades
        ],
        "total_score": total,
        "overall_feedback": "Solid work overall.",
    }


@pytest.fixture
def sample_ai_response() -> str:
    """Sample model response in JSON format for questions 1 and 2."""
    return json.dumps(make_ai_payload([(1, 8), (2, 4.5)], total=12.5))


@pytest.fixture
def sample_grading_result(sample_ai_response: str) -> GradingResult:
    return ResponseParser().parse(sample_ai_response)


# ==============================================================================
# Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_ai_client() -> MagicMock:
    """AI client double; tests set ``grade.return_value`` or ``side_effect``."""
    client = MagicMock(spec=AIGradingClient)
    client.health_check.return_value = True
    return client


@pytest.fixture
def make_result(seeded: SeededData):
    """Factory building a raw GradingResult for the seeded question ids."""

    def _make(grades: tuple[Any, Any], total: Any = 0) -> GradingResult:
        q1, q2 = seeded.question_ids
        payload = make_ai_payload([(q1, grades[0]), (q2, grades[1])], total=total)
        return ResponseParser().parse(json.dumps(payload))

    return _make
