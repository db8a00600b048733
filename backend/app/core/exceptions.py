class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None, status_code: int = 400):
        super().__init__(message, status_code=status_code, details=details)

class InvalidIntervalError(SchedulerError):
    """Raised when an interval-bearing input has start >= end or an unusable span."""
    def __init__(self, message: str = "Start must be before end", details: dict = None):
        super().__init__(message, details=details)

class InvalidTemplateError(SchedulerError):
    """Raised when a weekly template cannot be accepted or expanded."""

class InvalidStatusTransitionError(SchedulerError):
    """Raised when an event status change is not allowed."""

class ConflictError(SchedulerError):
    """Raised when a proposal collides with existing events on a blocking scope."""
    def __init__(self, message: str, conflicts: list[dict] | None = None):
        super().__init__(message, details={"conflicts": conflicts or []}, status_code=409)

class ScopeMismatchError(SchedulerError):
    """Raised when teacher, subject, batch or plan references do not belong together."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details, status_code=422)

class PersistenceError(AppError):
    """Raised when the event store fails to read or write."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
