"""Final invariant checks over a materialized backlog."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wavex.scheduler.errors import InvariantViolationError
from wavex.scheduler.ids import TASK_ID_PATTERN, parse_task_id
from wavex.scheduler.types import TASK_SIZES, WAVE_LETTERS, Priority

if TYPE_CHECKING:
    from wavex.scheduler.types import Backlog, Task


def validate_backlog(backlog: Backlog, *, require_contiguous_ids: bool = False) -> None:
    """Raise InvariantViolationError listing every violated invariant."""
    violations = collect_violations(backlog, require_contiguous_ids=require_contiguous_ids)
    if violations:
        raise InvariantViolationError(violations)


def collect_violations(backlog: Backlog, *, require_contiguous_ids: bool = False) -> list[str]:
    """Return human-readable invariant violations (empty when valid)."""
    violations: list[str] = []

    letters = [wave.letter for wave in backlog.waves]
    unknown = [letter for letter in letters if letter not in WAVE_LETTERS]
    if unknown:
        violations.append(f"unknown wave letter(s): {', '.join(unknown)}")
    known = [letter for letter in letters if letter in WAVE_LETTERS]
    if known != sorted(set(known), key=WAVE_LETTERS.index):
        violations.append("waves are duplicated or out of order")

    tasks: dict[str, Task] = {}
    for wave in backlog.waves:
        for task in wave.tasks:
            if task.id in tasks:
                violations.append(f"task ID `{task.id}` is used more than once")
                continue
            tasks[task.id] = task
            violations.extend(_task_shape_violations(task, wave.letter))

    for task in tasks.values():
        for dep in task.dependencies:
            prereq = tasks.get(dep)
            if prereq is None:
                violations.append(f"task `{task.id}` depends on missing task `{dep}`")
                continue
            if _wave_rank(prereq.wave) > _wave_rank(task.wave):
                violations.append(
                    f"task `{task.id}` (wave {task.wave}) depends on later task `{dep}` (wave {prereq.wave})"
                )

    stuck = _unsortable(tasks)
    if stuck:
        violations.append(f"dependency cycle among tasks: {', '.join(stuck)}")

    live_retired = sorted(set(backlog.retired_ids) & set(tasks))
    if live_retired:
        violations.append(f"retired ID(s) still in use: {', '.join(live_retired)}")

    if require_contiguous_ids:
        for wave in backlog.waves:
            numbers = sorted(
                parse_task_id(task.id)[1] for task in wave.tasks if TASK_ID_PATTERN.match(task.id)
            )
            if numbers != list(range(1, len(wave.tasks) + 1)):
                violations.append(f"wave {wave.letter} IDs are not sequential from 1")

    return violations


def _task_shape_violations(task: Task, container: str) -> list[str]:
    problems: list[str] = []
    if task.wave != container:
        problems.append(f"task `{task.id}` claims wave {task.wave} but sits in wave {container}")
    match = TASK_ID_PATTERN.match(task.id)
    if match is None:
        problems.append(f"task ID `{task.id}` is malformed")
    elif match.group(1) != container:
        problems.append(f"task ID `{task.id}` does not belong to wave {container}")
    if task.size not in TASK_SIZES:
        problems.append(f"task `{task.id}` is still {task.size.value}")
    if container == "A":
        if task.priority is not Priority.CRITICAL:
            problems.append(f"wave A task `{task.id}` is {task.priority.value}, not Critical")
        if task.dependencies:
            problems.append(f"wave A task `{task.id}` has dependencies")
    return problems


def _wave_rank(letter: str) -> int:
    return WAVE_LETTERS.index(letter) if letter in WAVE_LETTERS else len(WAVE_LETTERS)


def _unsortable(tasks: dict[str, Task]) -> list[str]:
    """Task IDs left over after a topological sort (those on or behind a cycle)."""
    remaining: dict[str, int] = {}
    dependents: dict[str, list[str]] = {task_id: [] for task_id in tasks}
    for task_id, task in tasks.items():
        prereqs = {dep for dep in task.dependencies if dep in tasks}
        remaining[task_id] = len(prereqs)
        for dep in prereqs:
            dependents[dep].append(task_id)

    ready = [task_id for task_id, count in remaining.items() if count == 0]
    while ready:
        task_id = ready.pop()
        del remaining[task_id]
        for follower in dependents[task_id]:
            remaining[follower] -= 1
            if remaining[follower] == 0:
                ready.append(follower)
    return sorted(remaining)
