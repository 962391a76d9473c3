"""
FastAPI dependencies resolving the collaborators stored on ``app.state``.
"""

from fastapi import Request

from classgrade.config import Settings
from classgrade.db.platform import PlatformRepository
from classgrade.errors import StorageError
from classgrade.grading.engine import GradingService
from classgrade.storage import FileStorage
from classgrade.submissions import SubmissionService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_platform_repository(request: Request) -> PlatformRepository:
    return request.app.state.platform_repository


def get_storage(request: Request) -> FileStorage:
    storage = request.app.state.storage
    if storage is None:
        raise StorageError("File storage is not configured")
    return storage


def get_grading_service(request: Request) -> GradingService:
    state = request.app.state
    # A missing store is reported by the service, after its lookups.
    return GradingService(
        repository=state.grading_repository,
        storage=state.storage,
        ai_client=state.ai_client,
        settings=state.settings,
    )


def get_submission_service(request: Request) -> SubmissionService:
    state = request.app.state
    return SubmissionService(
        repository=state.platform_repository,
        storage=get_storage(request),
        settings=state.settings,
    )
