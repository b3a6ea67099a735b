"""Size splitter tests."""

from __future__ import annotations

import pytest

from backlog_test_utils import make_finding, make_registry, part
from wavex.scheduler import Size, UnresolvedSplitError
from wavex.scheduler.splitter import split_oversized


def test_xl_finding_is_replaced_by_chain_in_place() -> None:
    registry = make_registry(
        make_finding("F0", "Critical"),
        make_finding("F1", "High", "XL", depends_on=("F0",), touches=("x", "y"), title="Rewrite parser"),
        make_finding("F2", "Medium", depends_on=("F1",)),
    )

    split = split_oversized(registry, {"F1": [part("F1a", "M", "x"), part("F1b", "L", "y")]})

    assert split.keys() == ("F0", "F1a", "F1b", "F2")
    first, last = split.get("F1a"), split.get("F1b")
    assert first.depends_on == ("F0",)
    assert last.depends_on == ("F1a",)
    assert split.get("F2").depends_on == ("F1b",)
    assert {first.priority, last.priority} == {registry.get("F1").priority}
    assert (first.size, last.size) == (Size.M, Size.L)
    assert first.split_from == last.split_from == "F1"
    assert first.title == "Rewrite parser (1/2)"
    assert set(first.touches) | set(last.touches) == {"x", "y"}
    assert "F1" not in split


def test_parts_without_touches_inherit_the_original_set() -> None:
    registry = make_registry(make_finding("F1", size="XL", touches=("x", "y")))

    split = split_oversized(registry, {"F1": [part("F1a"), part("F1b")]})

    assert split.get("F1a").touches == ("x", "y")
    assert split.get("F1b").touches == ("x", "y")


def test_findings_that_are_not_xl_pass_through() -> None:
    registry = make_registry(make_finding("F1"), make_finding("F2", depends_on=("F1",)))

    assert split_oversized(registry, {}) is registry


@pytest.mark.parametrize(
    ("splits", "reason_code"),
    [
        ({}, "SPLIT_MISSING"),
        ({"F1": []}, "SPLIT_EMPTY"),
        ({"F1": [part("F1a", "XL", "x", "y")]}, "SPLIT_STILL_XL"),
        ({"F1": [part("F2", "M", "x", "y")]}, "SPLIT_KEY_COLLISION"),
        ({"F1": [part("F1a", "M", "x"), part("F1a", "M", "y")]}, "SPLIT_KEY_COLLISION"),
        ({"F1": [part("F1a", "M", "x")]}, "SPLIT_TOUCHES_MISMATCH"),
        ({"F1": [part("F1a", "M", "x", "y", "z")]}, "SPLIT_TOUCHES_MISMATCH"),
        ({"F1": [part("F1a", "M", "x", "y")], "F9": [part("F9a")]}, "SPLIT_UNKNOWN_FINDING"),
        ({"F1": [part("F1a", "M", "x", "y")], "F2": [part("F2a")]}, "SPLIT_NOT_REQUIRED"),
    ],
)
def test_invalid_decompositions_are_refused(splits: dict, reason_code: str) -> None:
    registry = make_registry(
        make_finding("F1", size="XL", touches=("x", "y")),
        make_finding("F2"),
    )

    with pytest.raises(UnresolvedSplitError) as excinfo:
        split_oversized(registry, splits)

    assert excinfo.value.reason_code == reason_code
