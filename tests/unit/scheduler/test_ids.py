"""Task ID assignment tests."""

from __future__ import annotations

import pytest

from backlog_test_utils import make_finding, make_registry
from wavex.scheduler import InvariantViolationError, PriorAssignment
from wavex.scheduler.ids import assign_ids, parse_task_id, sort_task_ids
from wavex.scheduler.waves import assign_waves


def _assign(*findings, prior: PriorAssignment | None = None):
    return assign_ids(assign_waves(make_registry(*findings)), prior)


def test_fresh_run_numbers_each_wave_from_one() -> None:
    ids, retired = _assign(
        make_finding("F1", "Critical"),
        make_finding("F2", "High", depends_on=("F1",)),
        make_finding("F3", "Critical"),
        make_finding("F4", "High"),
    )

    assert ids == {"F1": "A1", "F3": "A2", "F4": "B1", "F2": "B2"}
    assert retired == ()


def test_prior_ids_survive_a_new_higher_ranked_finding() -> None:
    prior = PriorAssignment(ids={"F1": "A1", "F2": "A2"})

    ids, retired = _assign(
        make_finding("F0", "Critical"),
        make_finding("F1", "Critical"),
        make_finding("F2", "Critical"),
        prior=prior,
    )

    assert ids == {"F0": "A3", "F1": "A1", "F2": "A2"}
    assert retired == ()


def test_finding_that_changes_wave_retires_its_old_id() -> None:
    prior = PriorAssignment(ids={"F1": "A1", "F2": "B1"})

    ids, retired = _assign(
        make_finding("F1", "Critical"),
        make_finding("F2", "Critical"),
        prior=prior,
    )

    assert ids == {"F1": "A1", "F2": "A2"}
    assert retired == ("B1",)


def test_retired_ids_are_never_reissued() -> None:
    prior = PriorAssignment(ids={"F1": "A1"}, retired=("B1", "B2"))

    ids, retired = _assign(
        make_finding("F1", "Critical"),
        make_finding("F4", "High"),
        prior=prior,
    )

    assert ids["F4"] == "B3"
    assert retired == ("B1", "B2")


def test_removed_finding_id_is_retired() -> None:
    prior = PriorAssignment(ids={"F1": "A1", "F2": "A2"})

    ids, retired = _assign(make_finding("F1", "Critical"), prior=prior)

    assert ids == {"F1": "A1"}
    assert retired == ("A2",)


@pytest.mark.parametrize(
    "prior",
    [
        PriorAssignment(ids={"F1": "a1"}),
        PriorAssignment(ids={"F1": "A1", "F2": "A1"}),
        PriorAssignment(ids={"F1": "A1"}, retired=("A1",)),
        PriorAssignment(retired=("A0",)),
    ],
)
def test_inconsistent_prior_table_is_rejected(prior: PriorAssignment) -> None:
    with pytest.raises(InvariantViolationError) as excinfo:
        _assign(make_finding("F1", "Critical"), prior=prior)

    assert excinfo.value.reason_code == "PRIOR_ASSIGNMENT_INVALID"


def test_task_ids_sort_numerically_within_wave() -> None:
    assert parse_task_id("B12") == ("B", 12)
    assert sort_task_ids(["B10", "A2", "B9", "A2"]) == ["A2", "B9", "B10"]
    with pytest.raises(ValueError):
        parse_task_id("B01")
