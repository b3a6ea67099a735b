"""Read findings, prior backlogs and written backlogs from disk."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]

from wavex.reporting import backlog_from_dict, prior_assignment_from_dict
from wavex.scheduler.registry import registry_from_records
from wavex.schemas.validator import validate_data

if TYPE_CHECKING:
    from pathlib import Path

    from wavex.scheduler.registry import FindingRegistry
    from wavex.scheduler.types import Backlog, PriorAssignment, SplitPart


class InputFileError(ValueError):
    """An input document is unreadable or fails its schema."""


def load_findings(path: Path) -> tuple[FindingRegistry, dict[str, tuple[SplitPart, ...]]]:
    """Load a findings file (YAML or JSON) into a registry and its splits.

    The document is either a mapping with a ``findings`` list or a bare
    list of finding records.
    """
    document = _read_document(path)
    if isinstance(document, list):
        document = {"findings": document}
    _validate(document, "findings", path)
    return registry_from_records(document["findings"])


def load_prior(path: Path) -> PriorAssignment:
    """Load the ID history from a previously written BACKLOG.json."""
    return prior_assignment_from_dict(_load_backlog_payload(path))


def load_backlog(path: Path) -> Backlog:
    """Load a written BACKLOG.json."""
    return backlog_from_dict(_load_backlog_payload(path))


def _load_backlog_payload(path: Path) -> dict[str, Any]:
    payload = _read_document(path)
    _validate(payload, "backlog", path)
    return payload


def _read_document(path: Path) -> Any:
    if not path.exists():
        raise InputFileError(f"File not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InputFileError(f"Not valid UTF-8: {path} ({exc})") from exc
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise InputFileError(f"Malformed document at {path}: {exc}") from exc


def _validate(document: Any, schema_name: str, path: Path) -> None:
    ok, errors = validate_data(document, schema_name, strict=False)
    if not ok:
        raise InputFileError(
            f"{path} does not match the {schema_name} schema:\n"
            + "\n".join(f"  - {msg}" for msg in errors)
        )
