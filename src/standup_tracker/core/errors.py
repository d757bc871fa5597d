# src/standup_tracker/core/errors.py

"""
Error taxonomy of the sync engine.

- NotAuthenticated: no owner identity; fatal to the operation, raised to the caller.
- ReadFailure: storage could not be read; callers get empty lists plus a notice.
- WriteFailure: a write in a mutation batch failed; drives rollback-and-reload.
- InvalidGesture: nothing valid to do; ignored without a notice.
"""

from __future__ import annotations


class StandupError(RuntimeError):
    """Base class for engine errors."""


class NotAuthenticated(StandupError):
    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class ReadFailure(StandupError):
    pass


class WriteFailure(StandupError):
    def __init__(self, message: str, *, task_ids: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.task_ids = task_ids


class InvalidGesture(StandupError):
    pass


class TaskBusy(InvalidGesture):
    """The gesture touches a task that another in-flight gesture is still persisting."""

    def __init__(self, task_ids: set[str]) -> None:
        super().__init__(f"tasks busy: {', '.join(sorted(task_ids))}")
        self.task_ids = frozenset(task_ids)
