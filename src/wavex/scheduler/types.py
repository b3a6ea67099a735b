"""Scheduler domain types for findings, tasks and waves."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

WAVE_LETTERS: tuple[str, ...] = ("A", "B", "C", "D", "E", "F")
BACKLOG_SCHEMA_VERSION = "wavex.backlog.v1"

EQUAL_PRIORITY_UNRESOLVED = "unresolved"
EQUAL_PRIORITY_DECLARATION_ORDER = "declaration_order"
EQUAL_PRIORITY_POLICIES: tuple[str, ...] = (
    EQUAL_PRIORITY_UNRESOLVED,
    EQUAL_PRIORITY_DECLARATION_ORDER,
)


class Priority(str, Enum):
    """Finding priority tier, Critical highest."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Position in the total order (0 = Critical)."""
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, value: object) -> Priority:
        """Parse a priority label case-insensitively."""
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"priority must be one of {[m.value for m in cls]}, got `{value}`")


class Size(str, Enum):
    """Estimated size. XL must be split before scheduling."""

    S = "S"
    M = "M"
    L = "L"
    XL = "XL"

    @classmethod
    def parse(cls, value: object) -> Size:
        """Parse a size label case-insensitively."""
        text = str(value).strip().upper()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"size must be one of {[m.value for m in cls]}, got `{value}`")


_PRIORITY_RANK = {member: idx for idx, member in enumerate(Priority)}

TASK_SIZES: tuple[Size, ...] = (Size.S, Size.M, Size.L)


class ConflictResolution(str, Enum):
    """Outcome of a file-touch overlap between two findings."""

    ORDERED = "auto_ordered"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Finding:
    """A discovered unit of work prior to scheduling."""

    key: str
    title: str
    priority: Priority
    size: Size
    depends_on: tuple[str, ...] = ()  # Keys of prerequisites
    touches: tuple[str, ...] = ()  # Resource identifiers, e.g. file paths
    split_from: str | None = None  # Retired XL key for chain elements


@dataclass(frozen=True)
class SplitPart:
    """One caller-supplied element of an XL decomposition."""

    key: str
    size: Size
    title: str | None = None
    touches: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConflictDiagnostic:
    """Recorded overlap of touched resources between two findings."""

    first: str
    second: str
    shared: tuple[str, ...]
    resolution: ConflictResolution
    dependent: str | None = None
    prerequisite: str | None = None
    reason: str = ""


@dataclass(frozen=True)
class SchedulerPolicy:
    """Configurable scheduling knobs."""

    equal_priority_conflicts: str
    max_tasks_per_wave: int | None
    conflict_ignore: tuple[str, ...]


@dataclass(frozen=True)
class Task:
    """A scheduled finding with its assigned wave and ID."""

    id: str  # e.g., A1
    key: str
    wave: str
    sequence: int
    priority: Priority
    size: Size
    level: int
    dependencies: tuple[str, ...]  # Task IDs
    title: str
    touches: tuple[str, ...] = ()
    split_from: str | None = None


@dataclass(frozen=True)
class Wave:
    """Ordered partition of tasks sharing one execution tier."""

    letter: str
    tasks: tuple[Task, ...]


@dataclass(frozen=True)
class Backlog:
    """Complete scheduler output."""

    waves: tuple[Wave, ...]
    diagnostics: tuple[ConflictDiagnostic, ...] = ()
    retired_ids: tuple[str, ...] = ()
    input_hash: str = ""

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(task for wave in self.waves for task in wave.tasks)

    def task_index(self) -> dict[str, Task]:
        return {task.id: task for task in self.tasks}

    def task_ids_for_key(self, key: str) -> tuple[str, ...]:
        """IDs of tasks derived from ``key`` (itself or its split chain)."""
        return tuple(
            task.id for task in self.tasks if task.key == key or task.split_from == key
        )


@dataclass(frozen=True)
class PriorAssignment:
    """Task IDs issued by a previous run, supplied read-only."""

    ids: dict[str, str] = field(default_factory=dict)  # finding key -> task ID
    retired: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.ids and not self.retired
