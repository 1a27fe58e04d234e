"""Task module exceptions.

Domain errors raised by the task services. Each carries a stable ``code``
that the transport layer maps to an HTTP status; resolution misses are not
errors and never surface here directly.
"""


class TaskError(Exception):
    """Base exception for task-related errors."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class TaskNotFoundError(TaskError):
    """No task matched the supplied identifier and none could be materialized.

    Raised for plain custom tasks with an unknown id; catalog-derived tasks
    are created on first touch instead.
    """

    def __init__(self, task_id: str, project_id: str | None = None):
        self.task_id = task_id
        self.project_id = project_id
        super().__init__(message="Task not found", code="NOT_FOUND")


class ProjectNotFoundError(TaskError):
    """Referenced project does not exist."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(message="Project not found", code="NOT_FOUND")


class TaskUpdateFailedError(TaskError):
    """The task was resolved but the write affected no rows.

    Usually means the row was deleted concurrently between lookup and
    update.
    """

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            message=f"Failed to update task '{task_id}'",
            code="UPDATE_FAILED",
        )


class TaskStoreError(TaskError):
    """The task store raised an error (connectivity, constraint violation)."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(
            message=f"Task store error during {operation}",
            code="INTERNAL_ERROR",
        )


class TaskValidationError(TaskError):
    """A create payload failed domain validation."""

    def __init__(self, message: str):
        super().__init__(message=message, code="VALIDATION_ERROR")
