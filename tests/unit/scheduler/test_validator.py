"""Backlog invariant checks against hand-built backlogs."""

from __future__ import annotations

import pytest

from wavex.scheduler import Backlog, InvariantViolationError, Priority, Size, Task, Wave
from wavex.scheduler.validator import collect_violations, validate_backlog


def _task(
    task_id: str,
    priority: str = "Critical",
    *,
    wave: str | None = None,
    dependencies: tuple[str, ...] = (),
    size: str = "M",
) -> Task:
    return Task(
        id=task_id,
        key=f"k-{task_id}",
        wave=wave or task_id[0],
        sequence=int(task_id[1:]) if task_id[1:].isdigit() else 0,
        priority=Priority.parse(priority),
        size=Size.parse(size),
        level=len(dependencies),
        dependencies=dependencies,
        title=task_id,
    )


def _backlog(*waves: tuple[str, list[Task]], retired: tuple[str, ...] = ()) -> Backlog:
    return Backlog(
        waves=tuple(Wave(letter=letter, tasks=tuple(tasks)) for letter, tasks in waves),
        retired_ids=retired,
    )


def test_valid_backlog_has_no_violations() -> None:
    backlog = _backlog(
        ("A", [_task("A1"), _task("A2")]),
        ("B", [_task("B1", "High", dependencies=("A1",)), _task("B2", "High", dependencies=("B1",))]),
    )

    assert collect_violations(backlog, require_contiguous_ids=True) == []
    validate_backlog(backlog)


@pytest.mark.parametrize(
    ("backlog", "fragment"),
    [
        (_backlog(("A", [_task("A1", "High")])), "not Critical"),
        (_backlog(("A", [_task("A1"), _task("A2", dependencies=("A1",))])), "has dependencies"),
        (_backlog(("B", [_task("B1", size="XL")])), "still XL"),
        (_backlog(("B", [_task("B1", dependencies=("B9",))])), "missing task `B9`"),
        (
            _backlog(("B", [_task("B1", dependencies=("C1",))]), ("C", [_task("C1")])),
            "depends on later task",
        ),
        (
            _backlog(("B", [_task("B1", dependencies=("B2",)), _task("B2", dependencies=("B1",))])),
            "dependency cycle",
        ),
        (_backlog(("B", [_task("B1"), _task("B1")])), "used more than once"),
        (_backlog(("B", [_task("C1")])), "sits in wave B"),
        (_backlog(("B", [_task("C1", wave="B")])), "does not belong to wave B"),
        (_backlog(("B", [_task("b1", wave="B")])), "malformed"),
        (_backlog(("C", [_task("C1")]), ("B", [_task("B1")])), "out of order"),
        (_backlog(("G", [_task("G1")])), "unknown wave letter"),
        (_backlog(("B", [_task("B1")]), retired=("B1",)), "retired ID(s) still in use"),
    ],
)
def test_each_broken_invariant_is_reported(backlog: Backlog, fragment: str) -> None:
    violations = collect_violations(backlog)

    assert any(fragment in violation for violation in violations), violations
    with pytest.raises(InvariantViolationError) as excinfo:
        validate_backlog(backlog)
    assert excinfo.value.reason_code == "INVARIANT_VIOLATION"


def test_gaps_in_ids_only_matter_without_history() -> None:
    backlog = _backlog(("B", [_task("B1"), _task("B3")]))

    assert collect_violations(backlog) == []
    assert collect_violations(backlog, require_contiguous_ids=True) == [
        "wave B IDs are not sequential from 1"
    ]


def test_cycle_report_names_tasks_on_and_behind_the_cycle() -> None:
    backlog = _backlog(
        (
            "B",
            [
                _task("B1"),
                _task("B2", dependencies=("B3",)),
                _task("B3", dependencies=("B2",)),
                _task("B4", dependencies=("B3", "B1")),
            ],
        )
    )

    assert "dependency cycle among tasks: B2, B3, B4" in collect_violations(backlog)


def test_long_dependency_chain_validates() -> None:
    chain = [_task("B1")] + [
        _task(f"B{n}", dependencies=(f"B{n - 1}",)) for n in range(2, 5001)
    ]

    assert collect_violations(_backlog(("B", chain)), require_contiguous_ids=True) == []
