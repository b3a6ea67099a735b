"""Load and validate scheduler policy configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]

from wavex.scheduler.types import (
    EQUAL_PRIORITY_POLICIES,
    EQUAL_PRIORITY_UNRESOLVED,
    SchedulerPolicy,
)

if TYPE_CHECKING:
    from pathlib import Path

# Keep this literal deterministic and sorted in write path.
SCHEDULER_CONFIG_TEMPLATE: dict[str, Any] = {
    "conflicts": {
        "equal_priority": EQUAL_PRIORITY_UNRESOLVED,
        "ignore": [],
    },
    "waves": {
        "max_tasks_per_wave": None,
    },
}

CONFIG_REASON_PARSE_ERROR = "CONFIG_PARSE_ERROR"
CONFIG_REASON_SCHEMA_INVALID = "CONFIG_SCHEMA_INVALID"


class ConfigError(ValueError):
    """Scheduler configuration validation error."""

    reason_code: str

    def __init__(self, message: str, reason_code: str = CONFIG_REASON_SCHEMA_INVALID) -> None:
        super().__init__(message)
        self.reason_code = reason_code


def config_path_for_repo(repo_root: Path) -> Path:
    """Return canonical scheduler config path for a repository."""
    return repo_root.resolve() / ".wavex" / "scheduler.yaml"


def ensure_default_config(repo_root: Path, *, force: bool = False) -> Path:
    """Create default scheduler YAML deterministically."""
    output_path = config_path_for_repo(repo_root)
    if output_path.exists() and not force:
        raise FileExistsError(f"Scheduler config already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    rendered = yaml.safe_dump(SCHEDULER_CONFIG_TEMPLATE, sort_keys=True)
    output_path.write_text(rendered, encoding="utf-8")
    return output_path


def load_scheduler_policy(repo_root: Path) -> SchedulerPolicy:
    """Load the repository policy, falling back to defaults when absent."""
    path = config_path_for_repo(repo_root)
    if not path.exists():
        return default_scheduler_policy()
    return load_policy_file(path)


def load_policy_file(path: Path) -> SchedulerPolicy:
    """Parse and normalize one scheduler YAML file."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"{path.name} parse error: {exc}", CONFIG_REASON_PARSE_ERROR) from exc
    if raw is None:
        return default_scheduler_policy()
    if not isinstance(raw, dict):
        raise ConfigError(
            f"{path.name} parse error: expected mapping at top level",
            CONFIG_REASON_PARSE_ERROR,
        )
    return normalize_policy(raw)


def normalize_policy(raw: dict[str, Any]) -> SchedulerPolicy:
    """Normalize scheduler policy with deterministic defaults."""
    conflicts_raw = raw.get("conflicts", {})
    waves_raw = raw.get("waves", {})
    if not isinstance(conflicts_raw, dict):
        raise ConfigError("`conflicts` must be a mapping")
    if not isinstance(waves_raw, dict):
        raise ConfigError("`waves` must be a mapping")

    equal_priority = str(conflicts_raw.get("equal_priority", EQUAL_PRIORITY_UNRESOLVED)).strip().lower()
    if equal_priority not in EQUAL_PRIORITY_POLICIES:
        raise ConfigError(
            f"conflicts.equal_priority must be one of {EQUAL_PRIORITY_POLICIES}, got `{equal_priority}`"
        )

    ignore = conflicts_raw.get("ignore", [])
    if ignore is None:
        ignore = []
    if not isinstance(ignore, list) or not all(isinstance(item, str) for item in ignore):
        raise ConfigError("conflicts.ignore must be a list of strings")

    capacity = waves_raw.get("max_tasks_per_wave")
    if capacity is not None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigError("waves.max_tasks_per_wave must be a positive integer or null")

    return SchedulerPolicy(
        equal_priority_conflicts=equal_priority,
        max_tasks_per_wave=capacity,
        conflict_ignore=tuple(sorted({item.strip() for item in ignore if item.strip()})),
    )


DEFAULT_SCHEDULER_POLICY = normalize_policy(SCHEDULER_CONFIG_TEMPLATE)


def default_scheduler_policy() -> SchedulerPolicy:
    """Return the deterministic default scheduler policy."""

    return DEFAULT_SCHEDULER_POLICY
