"""Wave/dependency scheduler for discovered findings."""

from wavex.scheduler.errors import (
    CyclicDependencyError,
    DuplicateFindingError,
    FindingRecordError,
    InvariantViolationError,
    SchedulerError,
    UnknownDependencyError,
    UnresolvedSplitError,
    WaveOverflowError,
)
from wavex.scheduler.pipeline import schedule_backlog
from wavex.scheduler.registry import FindingRegistry, registry_from_records
from wavex.scheduler.types import (
    Backlog,
    ConflictDiagnostic,
    ConflictResolution,
    Finding,
    Priority,
    PriorAssignment,
    SchedulerPolicy,
    Size,
    SplitPart,
    Task,
    Wave,
)

__all__ = [
    "Backlog",
    "ConflictDiagnostic",
    "ConflictResolution",
    "CyclicDependencyError",
    "DuplicateFindingError",
    "Finding",
    "FindingRecordError",
    "FindingRegistry",
    "InvariantViolationError",
    "PriorAssignment",
    "Priority",
    "SchedulerError",
    "SchedulerPolicy",
    "Size",
    "SplitPart",
    "Task",
    "UnknownDependencyError",
    "UnresolvedSplitError",
    "Wave",
    "WaveOverflowError",
    "registry_from_records",
    "schedule_backlog",
]
