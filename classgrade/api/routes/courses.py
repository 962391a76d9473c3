"""
Users, courses and enrollments.
"""

from fastapi import APIRouter, Depends

from classgrade.api.dependencies import get_platform_repository
from classgrade.api.schemas import (
    CourseCreate,
    CourseDetail,
    EnrollmentCreate,
    EnrollmentRoleUpdate,
    MessageResponse,
    UserClasses,
    UserClassesRequest,
    UserCreate,
)
from classgrade.db.platform import PlatformRepository

router = APIRouter(tags=["courses"])


@router.post("/users", response_model=MessageResponse)
def create_user(
    body: UserCreate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.create_user(body.first_name, body.last_name, body.email, body.account_type)
    return MessageResponse(message="User created successfully")


@router.post("/users/classes", response_model=UserClasses)
def list_user_classes(
    body: UserClassesRequest, repository: PlatformRepository = Depends(get_platform_repository)
) -> UserClasses:
    """Courses the user owns, newest first."""
    return UserClasses.model_validate({"classes": repository.get_user_classes(body.email)})


@router.post("/courses", response_model=MessageResponse)
def create_course(
    body: CourseCreate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    """Create a course owned by the user with the given email."""
    repository.create_course(body.course_code, body.course_name, body.color, body.email)
    return MessageResponse(message="Course created successfully")


@router.get("/courses/{course_id}", response_model=CourseDetail)
def get_course_detail(
    course_id: int, repository: PlatformRepository = Depends(get_platform_repository)
) -> CourseDetail:
    return CourseDetail.model_validate(repository.get_course_detail(course_id))


@router.delete("/courses/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: int, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.delete_course(course_id)
    return MessageResponse(message="Course and all related data deleted successfully")


@router.post("/enrollments", response_model=MessageResponse)
def create_enrollment(
    body: EnrollmentCreate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.create_enrollment(body.email, body.course_id)
    return MessageResponse(message="Created enrollment successfully")


@router.put("/enrollments/role", response_model=MessageResponse)
def update_enrollment_role(
    body: EnrollmentRoleUpdate, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    repository.update_role(body.enrollment_id, body.new_role)
    return MessageResponse(message="Role updated successfully")


@router.delete("/enrollments/{enrollment_id}", response_model=MessageResponse)
def delete_enrollment(
    enrollment_id: int, repository: PlatformRepository = Depends(get_platform_repository)
) -> MessageResponse:
    """Remove a user from a course; the only owner cannot be removed."""
    repository.delete_enrollment(enrollment_id)
    return MessageResponse(message="Enrollment deleted successfully")
