"""Custom exceptions for Flatshare."""


class FlatshareError(Exception):
    """Base exception for all Flatshare errors."""

    pass


class ConfigurationError(FlatshareError):
    """Raised when configuration is invalid or missing."""

    pass


class RotationError(FlatshareError):
    """Base class for rejected rotation task transitions."""

    def __init__(self, task_id: str, message: str):
        self.task_id = task_id
        super().__init__(message)


class TaskInactiveError(RotationError):
    """Raised when a transition is requested on a deactivated task."""

    def __init__(self, task_id: str, message: str | None = None):
        super().__init__(task_id, message or f"Task {task_id} is inactive")


class NotAssigneeError(RotationError):
    """Raised when someone other than the assignee completes or skips a task."""

    def __init__(self, task_id: str, user_id: str, assignee_id: str | None):
        self.user_id = user_id
        self.assignee_id = assignee_id
        super().__init__(
            task_id,
            f"Only the assigned person ({assignee_id}) can do this for task "
            f"{task_id}, not {user_id}",
        )


class TaskNotDueError(RotationError):
    """Raised when a task is acted on before its allowed window opens."""

    def __init__(self, task_id: str, due_at: str):
        self.due_at = due_at
        super().__init__(task_id, f"Task {task_id} is not due yet (due {due_at})")


class InvalidTakeoverError(RotationError):
    """Raised when a takeover request cannot be accepted."""

    pass


class InvalidRotationOrderError(RotationError):
    """Raised when a reordered rotation is not a permutation of the current one."""

    pass
