"""Fatal scheduling errors with stable reason codes."""

from __future__ import annotations

from typing import Any

REASON_DUPLICATE_FINDING = "DUPLICATE_FINDING_KEY"
REASON_INVALID_RECORD = "INVALID_FINDING_RECORD"
REASON_UNKNOWN_DEPENDENCY = "UNKNOWN_DEPENDENCY"
REASON_CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
REASON_SPLIT_MISSING = "SPLIT_MISSING"
REASON_SPLIT_EMPTY = "SPLIT_EMPTY"
REASON_SPLIT_STILL_XL = "SPLIT_STILL_XL"
REASON_SPLIT_KEY_COLLISION = "SPLIT_KEY_COLLISION"
REASON_SPLIT_TOUCHES_MISMATCH = "SPLIT_TOUCHES_MISMATCH"
REASON_SPLIT_UNKNOWN_FINDING = "SPLIT_UNKNOWN_FINDING"
REASON_SPLIT_NOT_REQUIRED = "SPLIT_NOT_REQUIRED"
REASON_WAVE_OVERFLOW = "WAVE_OVERFLOW"
REASON_INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
REASON_PRIOR_INVALID = "PRIOR_ASSIGNMENT_INVALID"


class SchedulerError(ValueError):
    """Base class for errors that abort a scheduling run."""

    default_reason_code = "SCHEDULER_ERROR"

    def __init__(self, message: str, *, reason_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason_code = reason_code or self.default_reason_code

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error": type(self).__name__,
            "reason_code": self.reason_code,
            "message": self.message,
        }
        details = self.details()
        if details:
            data["detail"] = details
        return data


class DuplicateFindingError(SchedulerError):
    default_reason_code = REASON_DUPLICATE_FINDING

    def __init__(self, key: str) -> None:
        super().__init__(f"Duplicate finding key `{key}`")
        self.key = key

    def details(self) -> dict[str, Any]:
        return {"key": self.key}


class FindingRecordError(SchedulerError):
    """A finding record could not be normalized."""

    default_reason_code = REASON_INVALID_RECORD


class UnknownDependencyError(SchedulerError):
    default_reason_code = REASON_UNKNOWN_DEPENDENCY

    def __init__(self, finding_key: str, missing_key: str) -> None:
        super().__init__(
            f"Finding `{finding_key}` depends on unknown finding `{missing_key}`"
        )
        self.finding_key = finding_key
        self.missing_key = missing_key

    def details(self) -> dict[str, Any]:
        return {"finding": self.finding_key, "missing": self.missing_key}


class CyclicDependencyError(SchedulerError):
    """Raised with the full cycle, closing on its first key."""

    default_reason_code = REASON_CYCLIC_DEPENDENCY

    def __init__(self, cycle: list[str], *, stage: str) -> None:
        super().__init__(f"Dependency cycle detected ({stage}): {' -> '.join(cycle)}")
        self.cycle = list(cycle)
        self.stage = stage

    def details(self) -> dict[str, Any]:
        return {"cycle": list(self.cycle), "stage": self.stage}


class UnresolvedSplitError(SchedulerError):
    default_reason_code = REASON_SPLIT_MISSING

    def __init__(self, finding_key: str, message: str, *, reason_code: str) -> None:
        super().__init__(message, reason_code=reason_code)
        self.finding_key = finding_key

    def details(self) -> dict[str, Any]:
        return {"finding": self.finding_key}


class WaveOverflowError(SchedulerError):
    default_reason_code = REASON_WAVE_OVERFLOW

    def __init__(self, unplaced: list[str]) -> None:
        super().__init__(
            f"Waves A-F exhausted with {len(unplaced)} finding(s) unplaced: "
            + ", ".join(unplaced)
        )
        self.unplaced = list(unplaced)

    def details(self) -> dict[str, Any]:
        return {"unplaced": list(self.unplaced)}


class InvariantViolationError(SchedulerError):
    default_reason_code = REASON_INVARIANT_VIOLATION

    def __init__(self, violations: list[str], *, reason_code: str | None = None) -> None:
        summary = "; ".join(violations[:5])
        if len(violations) > 5:
            summary += f"; ... ({len(violations)} total)"
        super().__init__(f"Backlog invariant violated: {summary}", reason_code=reason_code)
        self.violations = list(violations)

    def details(self) -> dict[str, Any]:
        return {"violations": list(self.violations)}
