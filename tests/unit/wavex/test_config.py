"""Scheduler policy configuration tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml  # type: ignore[import-untyped]

from wavex.config import (
    CONFIG_REASON_PARSE_ERROR,
    CONFIG_REASON_SCHEMA_INVALID,
    SCHEDULER_CONFIG_TEMPLATE,
    ConfigError,
    config_path_for_repo,
    default_scheduler_policy,
    ensure_default_config,
    load_policy_file,
    load_scheduler_policy,
    normalize_policy,
)


def test_default_config_is_written_once(tmp_path: Path) -> None:
    path = ensure_default_config(tmp_path)

    assert path == config_path_for_repo(tmp_path)
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == SCHEDULER_CONFIG_TEMPLATE
    with pytest.raises(FileExistsError):
        ensure_default_config(tmp_path)

    path.write_text("conflicts: {equal_priority: declaration_order}\n", encoding="utf-8")
    ensure_default_config(tmp_path, force=True)
    assert load_scheduler_policy(tmp_path) == default_scheduler_policy()


def test_missing_or_empty_config_falls_back_to_defaults(tmp_path: Path) -> None:
    assert load_scheduler_policy(tmp_path) == default_scheduler_policy()

    path = config_path_for_repo(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("", encoding="utf-8")
    assert load_scheduler_policy(tmp_path) == default_scheduler_policy()


def test_policy_values_are_normalized() -> None:
    policy = normalize_policy(
        {
            "conflicts": {"equal_priority": " Declaration_Order ", "ignore": ["*.lock", " docs/* ", "*.lock"]},
            "waves": {"max_tasks_per_wave": 4},
        }
    )

    assert policy.equal_priority_conflicts == "declaration_order"
    assert policy.conflict_ignore == ("*.lock", "docs/*")
    assert policy.max_tasks_per_wave == 4


@pytest.mark.parametrize(
    "raw",
    [
        {"conflicts": "yes"},
        {"waves": []},
        {"conflicts": {"equal_priority": "coin_flip"}},
        {"conflicts": {"ignore": "*.lock"}},
        {"waves": {"max_tasks_per_wave": 0}},
        {"waves": {"max_tasks_per_wave": True}},
    ],
)
def test_invalid_policy_values_are_rejected(raw: dict) -> None:
    with pytest.raises(ConfigError) as excinfo:
        normalize_policy(raw)

    assert excinfo.value.reason_code == CONFIG_REASON_SCHEMA_INVALID


def test_unparseable_config_reports_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "scheduler.yaml"
    path.write_text("conflicts: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError) as excinfo:
        load_policy_file(path)
    assert excinfo.value.reason_code == CONFIG_REASON_PARSE_ERROR

    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_policy_file(path)
    assert excinfo.value.reason_code == CONFIG_REASON_PARSE_ERROR


def test_non_utf8_config_reports_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "scheduler.yaml"
    path.write_bytes(b"conflicts:\n  ignore: ['\xff']\n")

    with pytest.raises(ConfigError) as excinfo:
        load_policy_file(path)

    assert excinfo.value.reason_code == CONFIG_REASON_PARSE_ERROR
