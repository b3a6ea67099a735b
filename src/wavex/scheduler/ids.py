"""Stable task ID assignment."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from wavex.scheduler.errors import REASON_PRIOR_INVALID, InvariantViolationError
from wavex.scheduler.types import WAVE_LETTERS, PriorAssignment

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wavex.scheduler.waves import WaveAssignment

TASK_ID_PATTERN = re.compile(r"^([A-Z])([1-9][0-9]*)$")


def parse_task_id(task_id: str) -> tuple[str, int]:
    """Split ``B12`` into ``("B", 12)``."""
    match = TASK_ID_PATTERN.match(task_id)
    if match is None:
        raise ValueError(f"Invalid task ID `{task_id}`")
    return match.group(1), int(match.group(2))


def task_id_sort_key(task_id: str) -> tuple[int, int]:
    letter, number = parse_task_id(task_id)
    return ord(letter), number


def sort_task_ids(task_ids: Iterable[str]) -> list[str]:
    return sorted(set(task_ids), key=task_id_sort_key)


def assign_ids(
    assignment: WaveAssignment,
    prior: PriorAssignment | None = None,
) -> tuple[dict[str, str], tuple[str, ...]]:
    """Assign ``<wave><n>`` IDs and return (key -> ID, retired IDs).

    Without history, IDs run 1..n per wave in placement order. A finding
    whose prior ID is in its current wave keeps it; new IDs continue after
    the highest number ever issued in that wave, so an ID once retired is
    never handed to another finding.
    """
    prior = prior or PriorAssignment()
    _check_prior(prior)

    issued_high: dict[str, int] = {}
    for task_id in (*prior.ids.values(), *prior.retired):
        letter, number = parse_task_id(task_id)
        issued_high[letter] = max(issued_high.get(letter, 0), number)

    assigned: dict[str, str] = {}
    for letter in WAVE_LETTERS:
        placements = assignment.waves.get(letter, ())
        next_number = issued_high.get(letter, 0) + 1
        for placement in placements:
            key = placement.finding.key
            previous = prior.ids.get(key)
            if previous is not None and parse_task_id(previous)[0] == letter:
                assigned[key] = previous
                continue
            assigned[key] = f"{letter}{next_number}"
            next_number += 1

    retired = set(prior.retired)
    for key, previous in prior.ids.items():
        if assigned.get(key) != previous:
            retired.add(previous)

    return assigned, tuple(sort_task_ids(retired))


def _check_prior(prior: PriorAssignment) -> None:
    violations: list[str] = []
    owners: dict[str, str] = {}
    for key in sorted(prior.ids):
        task_id = prior.ids[key]
        if TASK_ID_PATTERN.match(task_id) is None:
            violations.append(f"prior ID `{task_id}` of `{key}` is malformed")
            continue
        if task_id in owners:
            violations.append(f"prior ID `{task_id}` is assigned to both `{owners[task_id]}` and `{key}`")
            continue
        owners[task_id] = key

    for task_id in prior.retired:
        if TASK_ID_PATTERN.match(task_id) is None:
            violations.append(f"retired ID `{task_id}` is malformed")
        elif task_id in owners:
            violations.append(f"retired ID `{task_id}` is still assigned to `{owners[task_id]}`")

    if violations:
        raise InvariantViolationError(violations, reason_code=REASON_PRIOR_INVALID)
