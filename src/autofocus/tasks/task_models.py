# src/autofocus/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar

DEFAULT_PAGE_SIZE = 5
DEFAULT_FONT_SIZE = 18

# Data written before capacities were snapshotted per page used a fixed size of 5.
LEGACY_PAGE_SIZE = 5


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    active -> completed and active -> dismissed are the only transitions;
    both terminal states are final.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    DISMISSED = "dismissed"

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus:
        if not isinstance(raw, str):
            raise ValueError(f"invalid task status: {raw!r}")
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValueError(f"invalid task status: {raw!r}") from None


@dataclass(frozen=True, slots=True)
class Active:
    status: ClassVar[TaskStatus] = TaskStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class Completed:
    at: int
    status: ClassVar[TaskStatus] = TaskStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class Dismissed:
    at: int
    status: ClassVar[TaskStatus] = TaskStatus.DISMISSED


TaskState = Active | Completed | Dismissed

ACTIVE = Active()


def build_state(
    status: TaskStatus,
    *,
    completed_at: int | None = None,
    dismissed_at: int | None = None,
    fallback_at: int,
) -> TaskState:
    """
    Build the state variant from flat storage fields.

    A terminal status without its timestamp takes fallback_at; the timestamp
    belonging to the other terminal status is dropped.
    """
    if status == TaskStatus.COMPLETED:
        return Completed(at=completed_at if completed_at is not None else fallback_at)
    if status == TaskStatus.DISMISSED:
        return Dismissed(at=dismissed_at if dismissed_at is not None else fallback_at)
    return ACTIVE


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    text: str
    page_index: int
    created_at: int
    state: TaskState = ACTIVE
    details: str | None = None
    updated_at: int | None = None

    @property
    def status(self) -> TaskStatus:
        return self.state.status

    @property
    def is_active(self) -> bool:
        return isinstance(self.state, Active)

    @property
    def completed_at(self) -> int | None:
        return self.state.at if isinstance(self.state, Completed) else None

    @property
    def dismissed_at(self) -> int | None:
        return self.state.at if isinstance(self.state, Dismissed) else None


@dataclass(slots=True)
class NotebookSettings:
    """
    User-facing notebook settings plus the per-page overrides.

    page_capacities freezes the capacity of a page when it is created
    (or when it was the last page during a resize). closed_pages is kept
    ordered and free of duplicates.
    """

    page_size: int = DEFAULT_PAGE_SIZE
    font_size: int = DEFAULT_FONT_SIZE
    page_capacities: dict[int, int] = field(default_factory=dict)
    closed_pages: list[int] = field(default_factory=list)

    def copy(self) -> NotebookSettings:
        return NotebookSettings(
            page_size=self.page_size,
            font_size=self.font_size,
            page_capacities=dict(self.page_capacities),
            closed_pages=list(self.closed_pages),
        )
