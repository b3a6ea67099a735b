"""Canonical JSON and deterministic artifact writers for scheduler runs."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

from wavex.reporting import backlog_to_dict, refusal_to_dict

if TYPE_CHECKING:
    from pathlib import Path

    from wavex.scheduler.errors import SchedulerError
    from wavex.scheduler.types import Backlog

ARTIFACT_INDEX_SCHEMA_VERSION = "wavex.artifacts.v1"
BACKLOG_FILENAME = "BACKLOG.json"
REFUSAL_FILENAME = "REFUSAL_REPORT.json"
INDEX_FILENAME = "ARTIFACT_INDEX.json"


def canonical_dumps(obj: Any) -> str:
    """Serialize a JSON-compatible object with stable canonical formatting."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def pretty_dumps(obj: Any) -> str:
    """Stable, human-diffable JSON used for written artifacts."""
    return json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def sha256_text(text: str) -> str:
    """Compute SHA-256 for UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def write_json(path: Path, obj: Any) -> str:
    """Write stable JSON as UTF-8 and return the SHA-256 of what was written."""
    text = pretty_dumps(obj)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return sha256_text(text)


def write_backlog_artifacts(out_dir: Path, backlog: Backlog) -> dict[str, Any]:
    """Write BACKLOG.json plus its artifact index and return the index payload.

    A stale refusal report from an earlier run is removed.
    """
    stale = out_dir / REFUSAL_FILENAME
    if stale.exists():
        stale.unlink()
    digest = write_json(out_dir / BACKLOG_FILENAME, backlog_to_dict(backlog))
    return _write_index(out_dir, [(BACKLOG_FILENAME, digest)])


def write_refusal_report(out_dir: Path, error: SchedulerError) -> dict[str, Any]:
    """Write REFUSAL_REPORT.json; any earlier BACKLOG.json is left untouched."""
    digest = write_json(out_dir / REFUSAL_FILENAME, refusal_to_dict(error))
    return _write_index(out_dir, [(REFUSAL_FILENAME, digest)])


def _write_index(out_dir: Path, artifacts: list[tuple[str, str]]) -> dict[str, Any]:
    index_payload: dict[str, Any] = {
        "schema_version": ARTIFACT_INDEX_SCHEMA_VERSION,
        "artifacts": [
            {"name": name, "path": name, "sha256": digest} for name, digest in artifacts
        ],
    }
    write_json(out_dir / INDEX_FILENAME, index_payload)
    return index_payload
