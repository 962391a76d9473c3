"""
Request and response bodies for the REST API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(ApiModel):
    message: str


# ==============================================================================
# Requests
# ==============================================================================


class UserCreate(ApiModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    account_type: str = Field(default="STUDENT", pattern="^(STUDENT|INSTRUCTOR)$")


class CourseCreate(ApiModel):
    course_code: str = Field(..., min_length=1, max_length=50)
    course_name: str = Field(..., min_length=1, max_length=255)
    color: str | None = None
    email: EmailStr


class EnrollmentCreate(ApiModel):
    email: EmailStr
    course_id: int


class EnrollmentRoleUpdate(ApiModel):
    enrollment_id: int
    new_role: str = Field(..., pattern="^(OWNER|STUDENT)$")


class UserClassesRequest(ApiModel):
    email: EmailStr


class AssignmentCreate(ApiModel):
    course_id: int
    title: str = Field(..., min_length=1, max_length=255)
    submission_type: str | None = None
    due_date: datetime | None = None
    grading_guidelines: str | None = None


class GuidelinesUpdate(ApiModel):
    assignment_id: int
    grading_guidelines: str | None = None


class QuestionCreate(ApiModel):
    assignment_id: int
    question_number: int = Field(..., ge=1)
    question_text: str = Field(..., min_length=1)
    max_points: Decimal = Field(..., ge=0)
    solution_key: str | None = None


class QuestionUpdate(ApiModel):
    question_id: int
    question_number: int = Field(..., ge=1)
    question_text: str = Field(..., min_length=1)
    max_points: Decimal = Field(..., ge=0)
    solution_key: str | None = None


class GradeUpdate(ApiModel):
    grade_id: int
    grade: Decimal
    feedback: str | None = None


# ==============================================================================
# Responses
# ==============================================================================


class CourseAssignment(ApiModel):
    id: int
    title: str
    submission_type: str | None
    due_date: datetime | None
    created_at: datetime | None
    num_submitted: int
    total_students: int


class CourseUser(ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    enrollment_id: int


class CourseDetail(ApiModel):
    course_name: str
    course_code: str
    color: str | None
    assignments: list[CourseAssignment]
    users: list[CourseUser]


class UserClass(ApiModel):
    id: int
    color: str | None
    course_name: str
    course_code: str
    headcount: int
    owner: str


class UserClasses(ApiModel):
    classes: list[UserClass]


class QuestionView(ApiModel):
    id: int
    question_number: int
    question_text: str
    max_points: float
    solution_key: str | None


class AssignmentUser(ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str


class SubmissionSummary(ApiModel):
    id: int
    status: str


class ScoreSummary(ApiModel):
    id: int
    score: float


class AssignmentInfo(ApiModel):
    id: int
    title: str
    submission_type: str | None
    due_date: datetime | None
    grading_guidelines: str | None
    questions: list[QuestionView]
    users_by_id: dict[int, AssignmentUser]
    submissions_by_student_id: dict[int, SubmissionSummary]
    grades_by_student_id: dict[int, ScoreSummary]


class SubmissionUser(ApiModel):
    first_name: str
    last_name: str
    email: str


class SubmissionFile(ApiModel):
    file_url: str | None
    status: str


class SubmissionGrade(ApiModel):
    id: int
    grade: float
    feedback: str | None
    max_points: float
    question_number: int
    question_text: str


class UserSubmission(ApiModel):
    user: SubmissionUser
    submission: SubmissionFile | None
    grades: list[SubmissionGrade]
