"""
Data access for the classroom platform: users, courses, enrollments,
assignments, questions, submissions and manual grade edits.

Read views return plain dictionaries shaped for the HTTP layer.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from classgrade.db.grading import LATEST_SUBMISSION_FIRST, SubmissionRef, latest_submission_ids
from classgrade.db.tables import (
    AccountType,
    Assignment,
    Course,
    Enrollment,
    EnrollmentRole,
    Grade,
    Question,
    Submission,
    SubmissionStatus,
    User,
)
from classgrade.errors import ConflictError, InvalidStateError, NotFoundError, PersistenceError
from classgrade.models import quantize_points

logger = logging.getLogger(__name__)


class PlatformRepository:
    """CRUD operations behind the platform's REST endpoints."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed: %s", e)
            return False

    # ==========================================================================
    # Users, courses and enrollments
    # ==========================================================================

    def create_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        account_type: str = AccountType.STUDENT,
    ) -> int:
        try:
            with self._session_factory.begin() as session:
                user = User(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    account_type=account_type,
                )
                session.add(user)
                session.flush()
                return user.user_id
        except IntegrityError as e:
            raise ConflictError("Email already exists", cause=e) from e

    def create_course(self, course_code: str, course_name: str, colour: str | None, email: str) -> int:
        """Create a course and enroll the user with ``email`` as its owner."""
        with self._session_factory.begin() as session:
            user_id = self._user_id_by_email(session, email)

            course = Course(course_code=course_code, course_name=course_name, colour=colour)
            session.add(course)
            session.flush()

            session.add(
                Enrollment(
                    user_id=user_id,
                    course_id=course.course_id,
                    role=EnrollmentRole.OWNER,
                )
            )
            return course.course_id

    def create_enrollment(self, email: str, course_id: int) -> int:
        try:
            with self._session_factory.begin() as session:
                user_id = self._user_id_by_email(session, email)
                if session.get(Course, course_id) is None:
                    raise NotFoundError("Course not found")

                enrollment = Enrollment(
                    user_id=user_id, course_id=course_id, role=EnrollmentRole.STUDENT
                )
                session.add(enrollment)
                session.flush()
                return enrollment.enrollment_id
        except IntegrityError as e:
            raise ConflictError("User is already enrolled in this course", cause=e) from e

    def get_course_detail(self, course_id: int) -> dict[str, Any]:
        with self._session_factory() as session:
            course = session.get(Course, course_id)
            if course is None:
                raise NotFoundError("Course not found")

            student_count = session.scalar(
                select(func.count(func.distinct(Enrollment.user_id)))
                .join(User, User.user_id == Enrollment.user_id)
                .where(
                    Enrollment.course_id == course_id,
                    User.account_type == AccountType.STUDENT,
                )
            )

            submitted = dict(
                session.execute(
                    select(
                        Submission.assignment_id,
                        func.count(func.distinct(Submission.submission_id)),
                    )
                    .join(Assignment, Assignment.assignment_id == Submission.assignment_id)
                    .where(Assignment.course_id == course_id)
                    .group_by(Submission.assignment_id)
                ).all()
            )

            assignments = session.scalars(
                select(Assignment)
                .where(Assignment.course_id == course_id)
                .order_by(Assignment.due_date.desc().nulls_last(), Assignment.created_at.desc())
            ).all()

            users = session.execute(
                select(User, Enrollment)
                .join(Enrollment, Enrollment.user_id == User.user_id)
                .where(Enrollment.course_id == course_id)
                .order_by(Enrollment.role, User.last_name, User.first_name)
            ).all()

            return {
                "course_name": course.course_name,
                "course_code": course.course_code,
                "color": course.colour,
                "assignments": [
                    {
                        "id": a.assignment_id,
                        "title": a.title,
                        "submission_type": a.submission_type,
                        "due_date": a.due_date,
                        "created_at": a.created_at,
                        "num_submitted": submitted.get(a.assignment_id, 0),
                        "total_students": student_count or 0,
                    }
                    for a in assignments
                ],
                "users": [
                    {
                        "id": user.user_id,
                        "first_name": user.first_name,
                        "last_name": user.last_name,
                        "email": user.email,
                        "role": enrollment.role,
                        "enrollment_id": enrollment.enrollment_id,
                    }
                    for user, enrollment in users
                ],
            }

    def get_user_classes(self, email: str) -> list[dict[str, Any]]:
        """Courses owned by the user with ``email``, newest first, with student headcounts."""
        with self._session_factory() as session:
            owner = session.scalar(select(User).where(User.email == email))
            if owner is None:
                raise NotFoundError("User not found")

            courses = session.scalars(
                select(Course)
                .join(Enrollment, Enrollment.course_id == Course.course_id)
                .where(
                    Enrollment.user_id == owner.user_id,
                    Enrollment.role == EnrollmentRole.OWNER,
                )
                .order_by(Course.created_at.desc(), Course.course_id.desc())
            ).all()

            headcounts = dict(
                session.execute(
                    select(Enrollment.course_id, func.count(func.distinct(Enrollment.user_id)))
                    .join(User, User.user_id == Enrollment.user_id)
                    .where(
                        Enrollment.course_id.in_([c.course_id for c in courses]),
                        Enrollment.role == EnrollmentRole.STUDENT,
                        User.account_type == AccountType.STUDENT,
                    )
                    .group_by(Enrollment.course_id)
                ).all()
            )

            owner_name = f"{owner.first_name} {owner.last_name}"
            return [
                {
                    "id": course.course_id,
                    "color": course.colour,
                    "course_name": course.course_name,
                    "course_code": course.course_code,
                    "headcount": headcounts.get(course.course_id, 0),
                    "owner": owner_name,
                }
                for course in courses
            ]

    def delete_course(self, course_id: int) -> None:
        """Delete a course with its enrollments, assignments, submissions and grades."""
        with self._session_factory.begin() as session:
            course = session.get(Course, course_id)
            if course is None:
                raise NotFoundError("Course not found")
            session.delete(course)
        logger.info("Deleted course %s", course_id)

    def delete_enrollment(self, enrollment_id: int) -> None:
        """
        Remove a user from a course.

        Raises:
            NotFoundError: If the enrollment does not exist.
            InvalidStateError: If it is the course's only owner.
        """
        with self._session_factory.begin() as session:
            enrollment = self._enrollment(session, enrollment_id)
            if enrollment.role == EnrollmentRole.OWNER and self._is_only_owner(session, enrollment):
                raise InvalidStateError(
                    "Cannot delete the only owner of a course. Assign another owner first."
                )
            session.delete(enrollment)

    def update_role(self, enrollment_id: int, role: str) -> None:
        """Change an enrollment's role; a course never loses its last owner."""
        with self._session_factory.begin() as session:
            enrollment = self._enrollment(session, enrollment_id)
            if (
                enrollment.role == EnrollmentRole.OWNER
                and role != EnrollmentRole.OWNER
                and self._is_only_owner(session, enrollment)
            ):
                raise InvalidStateError(
                    "Cannot remove the only owner of a course. Assign another owner first."
                )
            enrollment.role = role

    # ==========================================================================
    # Assignments and questions
    # ==========================================================================

    def create_assignment(
        self,
        course_id: int,
        title: str,
        submission_type: str | None = None,
        due_date: datetime | None = None,
        grading_guidelines: str | None = None,
    ) -> int:
        with self._session_factory.begin() as session:
            if session.get(Course, course_id) is None:
                raise NotFoundError("Course not found")

            assignment = Assignment(
                course_id=course_id,
                title=title,
                submission_type=submission_type,
                due_date=due_date,
                grading_guidelines=grading_guidelines,
            )
            session.add(assignment)
            session.flush()
            return assignment.assignment_id

    def update_grading_guidelines(self, assignment_id: int, grading_guidelines: str | None) -> None:
        with self._session_factory.begin() as session:
            assignment = session.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found")
            assignment.grading_guidelines = grading_guidelines

    def get_assignment_info(self, assignment_id: int) -> dict[str, Any]:
        """
        Assignment details with questions, course users, each student's
        latest submission and the total score of that submission.
        """
        with self._session_factory() as session:
            assignment = session.get(Assignment, assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment not found")

            questions = session.scalars(
                select(Question)
                .where(Question.assignment_id == assignment_id)
                .order_by(Question.question_number, Question.question_id)
            ).all()

            users = session.execute(
                select(User, Enrollment.role)
                .join(Enrollment, Enrollment.user_id == User.user_id)
                .where(Enrollment.course_id == assignment.course_id)
                .order_by(User.last_name, User.first_name)
            ).all()

            latest_ids = latest_submission_ids(assignment_id)
            submissions = session.scalars(
                select(Submission).where(Submission.submission_id.in_(latest_ids))
            ).all()

            scores = session.execute(
                select(Submission.student_id, Submission.submission_id, func.sum(Grade.grade))
                .join(Grade, Grade.submission_id == Submission.submission_id)
                .where(Submission.submission_id.in_(latest_ids))
                .group_by(Submission.student_id, Submission.submission_id)
            ).all()

            return {
                "id": assignment.assignment_id,
                "title": assignment.title,
                "submission_type": assignment.submission_type,
                "due_date": assignment.due_date,
                "grading_guidelines": assignment.grading_guidelines,
                "questions": [_question_view(q) for q in questions],
                "users_by_id": {
                    user.user_id: {
                        "id": user.user_id,
                        "first_name": user.first_name,
                        "last_name": user.last_name,
                        "email": user.email,
                        "role": role,
                    }
                    for user, role in users
                },
                "submissions_by_student_id": {
                    s.student_id: {"id": s.submission_id, "status": s.status} for s in submissions
                },
                "grades_by_student_id": {
                    student_id: {"id": submission_id, "score": Decimal(str(score))}
                    for student_id, submission_id, score in scores
                },
            }

    def create_question(
        self,
        assignment_id: int,
        question_number: int,
        question_text: str,
        max_points: Decimal,
        solution_key: str | None = None,
    ) -> int:
        with self._session_factory.begin() as session:
            if session.get(Assignment, assignment_id) is None:
                raise NotFoundError("Assignment not found")

            question = Question(
                assignment_id=assignment_id,
                question_number=question_number,
                question_text=question_text,
                max_points=max_points,
                solution_key=solution_key,
            )
            session.add(question)
            session.flush()
            return question.question_id

    def update_question(
        self,
        question_id: int,
        question_number: int,
        question_text: str,
        max_points: Decimal,
        solution_key: str | None = None,
    ) -> None:
        with self._session_factory.begin() as session:
            question = session.get(Question, question_id)
            if question is None:
                raise NotFoundError("Question not found")

            question.question_number = question_number
            question.question_text = question_text
            question.max_points = max_points
            question.solution_key = solution_key

    def delete_question(self, question_id: int) -> None:
        with self._session_factory.begin() as session:
            question = session.get(Question, question_id)
            if question is None:
                raise NotFoundError("Question not found")
            session.delete(question)

    # ==========================================================================
    # Submissions and grades
    # ==========================================================================

    def list_submission_file_keys(self, assignment_id: int, student_id: int) -> list[str]:
        with self._session_factory() as session:
            keys = session.scalars(
                select(Submission.file_key).where(
                    Submission.assignment_id == assignment_id,
                    Submission.student_id == student_id,
                )
            ).all()
            return [k for k in keys if k]

    def replace_submission(self, assignment_id: int, student_id: int, file_key: str) -> SubmissionRef:
        """Delete earlier submissions for the pair and record a new one."""
        try:
            with self._session_factory.begin() as session:
                if session.get(Assignment, assignment_id) is None:
                    raise NotFoundError("Assignment not found")
                if session.get(User, student_id) is None:
                    raise NotFoundError("User not found")

                old = session.scalars(
                    select(Submission).where(
                        Submission.assignment_id == assignment_id,
                        Submission.student_id == student_id,
                    )
                ).all()
                for submission in old:
                    session.delete(submission)

                submission = Submission(
                    assignment_id=assignment_id,
                    student_id=student_id,
                    file_key=file_key,
                    status=SubmissionStatus.SUBMITTED,
                )
                session.add(submission)
                session.flush()

                return SubmissionRef(
                    submission_id=submission.submission_id,
                    assignment_id=assignment_id,
                    student_id=student_id,
                    file_key=file_key,
                    status=submission.status,
                )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to save submission", cause=e) from e

    def get_user_submission(self, assignment_id: int, student_id: int) -> dict[str, Any]:
        """User info, latest submission and its grades with question details."""
        with self._session_factory() as session:
            user = session.get(User, student_id)
            if user is None:
                raise NotFoundError("User not found")

            submission = session.scalars(
                select(Submission)
                .where(
                    Submission.assignment_id == assignment_id,
                    Submission.student_id == student_id,
                )
                .order_by(*LATEST_SUBMISSION_FIRST)
                .limit(1)
            ).first()

            grades: list[dict[str, Any]] = []
            if submission is not None:
                rows = session.execute(
                    select(Grade, Question)
                    .join(Question, Question.question_id == Grade.question_id)
                    .where(Grade.submission_id == submission.submission_id)
                    .order_by(Question.question_number)
                ).all()
                grades = [
                    {
                        "id": grade.grade_id,
                        "grade": grade.grade,
                        "feedback": grade.feedback,
                        "max_points": question.max_points,
                        "question_number": question.question_number,
                        "question_text": question.question_text,
                    }
                    for grade, question in rows
                ]

            return {
                "user": {
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "email": user.email,
                },
                "submission": (
                    {"file_key": submission.file_key, "status": submission.status}
                    if submission is not None
                    else None
                ),
                "grades": grades,
            }

    def update_grade(self, grade_id: int, grade: Decimal, feedback: str | None) -> None:
        """Manually override one grade; it must stay within the question's range."""
        with self._session_factory.begin() as session:
            row = session.get(Grade, grade_id)
            if row is None:
                raise NotFoundError("Grade not found")

            max_points = row.question.max_points
            grade = quantize_points(grade)
            if grade < 0 or grade > max_points:
                raise InvalidStateError(f"Grade must be between 0 and {max_points}")

            row.grade = grade
            row.feedback = feedback

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _user_id_by_email(session, email: str) -> int:
        user_id = session.scalar(select(User.user_id).where(User.email == email))
        if user_id is None:
            raise NotFoundError("User not found")
        return user_id

    @staticmethod
    def _enrollment(session, enrollment_id: int) -> Enrollment:
        enrollment = session.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        return enrollment

    @staticmethod
    def _is_only_owner(session, enrollment: Enrollment) -> bool:
        # Owner rows stay locked until the caller's transaction ends.
        owner_ids = session.scalars(
            select(Enrollment.enrollment_id)
            .where(
                Enrollment.course_id == enrollment.course_id,
                Enrollment.role == EnrollmentRole.OWNER,
            )
            .with_for_update()
        ).all()
        return list(owner_ids) == [enrollment.enrollment_id]


def _question_view(question: Question) -> dict[str, Any]:
    return {
        "id": question.question_id,
        "question_number": question.question_number,
        "question_text": question.question_text,
        "max_points": question.max_points,
        "solution_key": question.solution_key,
    }
