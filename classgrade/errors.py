"""
Error taxonomy for classgrade.

Every failure the service reports to a caller is one of these exceptions.
Each carries the HTTP status code it maps to and a message that is safe to
show to the client; server-side detail travels in ``cause`` and in the logs.
"""


class ClassgradeError(Exception):
    """Base class for all expected classgrade failures."""

    status_code: int = 500
    public_message: str | None = None

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)

    @property
    def client_message(self) -> str:
        """Message returned in the ``error`` field of the response."""
        return self.public_message or str(self)


class NotFoundError(ClassgradeError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class InvalidStateError(ClassgradeError):
    """Raised when an entity exists but cannot be used as requested."""

    status_code = 400


class ConflictError(ClassgradeError):
    """Raised when a write would violate a uniqueness constraint."""

    status_code = 409


class StorageError(ClassgradeError):
    """Raised when the file storage collaborator fails."""

    status_code = 500
    public_message = "Failed to retrieve submission file"


class AIServiceError(ClassgradeError):
    """Raised when the upstream AI call itself fails."""

    status_code = 500
    public_message = "AI grading service failed"


class AITimeoutError(AIServiceError):
    """Raised when the AI call exceeds its deadline."""

    status_code = 504
    public_message = "AI grading timed out"


class AIResponseError(ClassgradeError):
    """Raised when the AI response cannot be decoded into a grading result."""

    status_code = 500
    public_message = "AI grading returned an invalid response"

    def __init__(
        self, message: str, raw_response: str | None = None, cause: Exception | None = None
    ):
        self.raw_response = raw_response
        super().__init__(message, cause=cause)


class PersistenceError(ClassgradeError):
    """Raised when a database write fails and has been rolled back."""

    status_code = 500
    public_message = "Failed to save grades"
