"""Backlog payload, refusal report and explain output tests."""

from __future__ import annotations

import pytest

from wavex.reporting import (
    REFUSAL_SCHEMA_VERSION,
    backlog_from_dict,
    backlog_to_dict,
    explain_task,
    prior_assignment_from_dict,
    refusal_to_dict,
)
from wavex.scheduler import (
    CyclicDependencyError,
    Finding,
    FindingRegistry,
    Priority,
    Size,
    SplitPart,
    schedule_backlog,
)
from wavex.scheduler.types import BACKLOG_SCHEMA_VERSION


def _sample_backlog():
    registry = FindingRegistry(
        [
            Finding("auth", "Patch token check", Priority.CRITICAL, Size.S, touches=("auth.py",)),
            Finding("session", "Expire sessions", Priority.HIGH, Size.M, depends_on=("auth",)),
            Finding("cleanup", "Remove dead code", Priority.LOW, Size.S, touches=("auth.py",)),
            Finding("big", "Rewrite store", Priority.MEDIUM, Size.XL, touches=("store.py",)),
        ]
    )
    splits = {"big": [SplitPart("big-1", Size.M), SplitPart("big-2", Size.S)]}
    return schedule_backlog(registry, splits=splits)


def test_backlog_payload_shape() -> None:
    payload = backlog_to_dict(_sample_backlog())

    assert payload["schema_version"] == BACKLOG_SCHEMA_VERSION
    assert payload["status"] == "ok"
    assert [wave["wave"] for wave in payload["waves"]] == ["A", "B", "D", "E", "F"]
    first = payload["waves"][0]["tasks"][0]
    assert first == {
        "id": "A1",
        "key": "auth",
        "wave": "A",
        "sequence": 1,
        "priority": "Critical",
        "size": "S",
        "level": 0,
        "dependencies": [],
        "title": "Patch token check",
        "touches": ["auth.py"],
    }
    split_task = payload["waves"][2]["tasks"][0]
    assert split_task["split_from"] == "big"
    assert split_task["title"] == "Rewrite store (1/2)"

    (diagnostic,) = payload["diagnostics"]
    assert diagnostic["resolution"] == "auto_ordered"
    assert diagnostic["dependent"] == "cleanup"
    assert diagnostic["tasks"] == {"auth": ["A1"], "cleanup": ["F1"]}


def test_payload_loads_back_into_the_same_backlog() -> None:
    backlog = _sample_backlog()

    assert backlog_from_dict(backlog_to_dict(backlog)) == backlog


def test_prior_assignment_is_read_from_payload() -> None:
    payload = backlog_to_dict(_sample_backlog())
    payload["retired_ids"] = ["B7"]

    prior = prior_assignment_from_dict(payload)

    assert prior.ids["auth"] == "A1"
    assert prior.ids["big-2"] == "E1"
    assert prior.retired == ("B7",)


def test_refusal_report_carries_reason_and_detail() -> None:
    report = refusal_to_dict(CyclicDependencyError(["F1", "F2", "F1"], stage="pre-split"))

    assert report["schema_version"] == REFUSAL_SCHEMA_VERSION
    assert report["status"] == "refused"
    assert report["refusal"]["reason_code"] == "CYCLIC_DEPENDENCY"
    assert report["refusal"]["detail"] == {"cycle": ["F1", "F2", "F1"], "stage": "pre-split"}


def test_explain_lists_dependencies_dependents_and_conflicts() -> None:
    backlog = _sample_backlog()

    text = explain_task(backlog, "A1")

    assert text.splitlines()[:4] == ["task: A1", "key: auth", "title: Patch token check", "wave: A"]
    assert "dependencies:\n- none" in text
    assert "dependents:\n- B1\n- F1" in text
    assert "conflicts:\n- auth / cleanup: auto_ordered" in text


def test_explain_split_task_names_its_origin() -> None:
    text = explain_task(_sample_backlog(), "E1")

    assert "split_from: big" in text
    assert "- D1 (big-1)" in text


def test_explain_unknown_task_raises_key_error() -> None:
    with pytest.raises(KeyError):
        explain_task(_sample_backlog(), "Z9")
