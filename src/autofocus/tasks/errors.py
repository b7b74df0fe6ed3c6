# src/autofocus/tasks/errors.py

from __future__ import annotations


class NotebookError(ValueError):
    """Base class for recoverable notebook errors (state is left unchanged)."""


class ValidationError(NotebookError):
    pass


class NotFoundError(NotebookError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class MalformedImportError(NotebookError):
    pass
