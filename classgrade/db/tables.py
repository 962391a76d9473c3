"""
SQLAlchemy ORM tables.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class AccountType:
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"


class EnrollmentRole:
    OWNER = "OWNER"
    STUDENT = "STUDENT"


class SubmissionStatus:
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    account_type = Column(String(20), nullable=False, default=AccountType.STUDENT)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")


class Course(Base):
    __tablename__ = "courses"

    course_id = Column(Integer, primary_key=True)
    course_code = Column(String(50), nullable=False)
    course_name = Column(String(255), nullable=False)
    colour = Column(String(20))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    enrollments = relationship(
        "Enrollment", back_populates="course", cascade="all, delete-orphan"
    )
    assignments = relationship(
        "Assignment", back_populates="course", cascade="all, delete-orphan"
    )


class Enrollment(Base):
    __tablename__ = "course_enrollments"

    enrollment_id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id = Column(
        Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False, default=EnrollmentRole.STUDENT)

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")


class Assignment(Base):
    __tablename__ = "assignments"

    assignment_id = Column(Integer, primary_key=True)
    course_id = Column(
        Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    submission_type = Column(String(50))
    due_date = Column(DateTime(timezone=True))
    grading_guidelines = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", back_populates="assignments")
    questions = relationship(
        "Question",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="Question.question_number",
    )
    submissions = relationship(
        "Submission", back_populates="assignment", cascade="all, delete-orphan"
    )


class Question(Base):
    __tablename__ = "questions"

    question_id = Column(Integer, primary_key=True)
    assignment_id = Column(
        Integer,
        ForeignKey("assignments.assignment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_number = Column(Integer, nullable=False)
    question_text = Column(Text, nullable=False)
    max_points = Column(Numeric(8, 2), nullable=False)
    solution_key = Column(Text)

    assignment = relationship("Assignment", back_populates="questions")
    grades = relationship("Grade", back_populates="question", cascade="all, delete-orphan")


class Submission(Base):
    __tablename__ = "submissions"

    submission_id = Column(Integer, primary_key=True)
    assignment_id = Column(
        Integer,
        ForeignKey("assignments.assignment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_key = Column(String(512))
    status = Column(String(20), nullable=False, default=SubmissionStatus.SUBMITTED)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("User")
    grades = relationship("Grade", back_populates="submission", cascade="all, delete-orphan")


class Grade(Base):
    __tablename__ = "grades"

    grade_id = Column(Integer, primary_key=True)
    submission_id = Column(
        Integer,
        ForeignKey("submissions.submission_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), nullable=False
    )
    grade = Column(Numeric(8, 2), nullable=False)
    feedback = Column(Text)

    submission = relationship("Submission", back_populates="grades")
    question = relationship("Question", back_populates="grades")
