"""Finding registry and record normalization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from wavex.scheduler.errors import DuplicateFindingError, FindingRecordError
from wavex.scheduler.types import Finding, Priority, Size, SplitPart

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class FindingRegistry:
    """Immutable, ordered set of findings with unique keys.

    Declaration order is preserved and used as the final tie-break
    everywhere ordering matters.
    """

    def __init__(self, findings: Iterable[Finding] = ()) -> None:
        ordered: list[Finding] = []
        index: dict[str, int] = {}
        for finding in findings:
            if finding.key in index:
                raise DuplicateFindingError(finding.key)
            index[finding.key] = len(ordered)
            ordered.append(finding)
        self._findings = tuple(ordered)
        self._index = index

    @property
    def findings(self) -> tuple[Finding, ...]:
        return self._findings

    def keys(self) -> tuple[str, ...]:
        return tuple(finding.key for finding in self._findings)

    def get(self, key: str) -> Finding:
        return self._findings[self._index[key]]

    def position(self, key: str) -> int:
        return self._index[key]

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __iter__(self) -> Iterator[Finding]:
        return iter(self._findings)

    def __len__(self) -> int:
        return len(self._findings)

    def __repr__(self) -> str:
        return f"FindingRegistry({len(self._findings)} findings)"


def finding_from_record(record: Mapping[str, Any]) -> Finding:
    """Normalize one plain mapping into a Finding."""
    if not isinstance(record, dict):
        raise FindingRecordError(f"finding record must be a mapping, got {type(record).__name__}")

    key = _required_string(record, "key", "finding")
    try:
        priority = Priority.parse(record.get("priority", ""))
        size = Size.parse(record.get("size", ""))
    except ValueError as exc:
        raise FindingRecordError(f"finding `{key}`: {exc}") from exc

    return Finding(
        key=key,
        title=str(record.get("title", "")).strip(),
        priority=priority,
        size=size,
        depends_on=tuple(
            _normalize_string_list_preserve_order(
                record.get("depends_on"), f"findings.{key}.depends_on"
            )
        ),
        touches=tuple(_normalize_string_list(record.get("touches"), f"findings.{key}.touches")),
    )


def split_parts_from_record(record: Mapping[str, Any]) -> tuple[SplitPart, ...]:
    """Read the optional nested ``split`` list of a finding record."""
    raw_parts = record.get("split")
    if raw_parts is None:
        return ()
    key = str(record.get("key", "")).strip()
    if not isinstance(raw_parts, list):
        raise FindingRecordError(f"findings.{key}.split must be a list of mappings")

    parts: list[SplitPart] = []
    for raw in raw_parts:
        if not isinstance(raw, dict):
            raise FindingRecordError(f"findings.{key}.split must be a list of mappings")
        part_key = _required_string(raw, "key", f"split part of `{key}`")
        try:
            size = Size.parse(raw.get("size", ""))
        except ValueError as exc:
            raise FindingRecordError(f"split part `{part_key}`: {exc}") from exc
        title = raw.get("title")
        parts.append(
            SplitPart(
                key=part_key,
                size=size,
                title=str(title).strip() if title is not None else None,
                touches=tuple(
                    _normalize_string_list(raw.get("touches"), f"split.{part_key}.touches")
                ),
            )
        )
    return tuple(parts)


def registry_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[FindingRegistry, dict[str, tuple[SplitPart, ...]]]:
    """Build a registry plus the XL decompositions declared inline."""
    findings: list[Finding] = []
    splits: dict[str, tuple[SplitPart, ...]] = {}
    for record in records:
        finding = finding_from_record(record)
        findings.append(finding)
        parts = split_parts_from_record(record)
        if parts:
            splits[finding.key] = parts
    return FindingRegistry(findings), splits


def finding_to_record(finding: Finding) -> dict[str, Any]:
    """Convert a finding to a deterministic JSON-compatible mapping."""
    record: dict[str, Any] = {
        "key": finding.key,
        "title": finding.title,
        "priority": finding.priority.value,
        "size": finding.size.value,
        "depends_on": list(finding.depends_on),
        "touches": list(finding.touches),
    }
    if finding.split_from is not None:
        record["split_from"] = finding.split_from
    return record


def _required_string(record: Mapping[str, Any], field_name: str, context: str) -> str:
    value = record.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise FindingRecordError(f"{context} requires a non-empty string `{field_name}`")
    return value.strip()


def _normalize_string_list(value: Any, field_name: str) -> list[str]:
    """Normalize a list of strings with stable ordering."""
    return sorted(set(_normalize_string_list_preserve_order(value, field_name)))


def _normalize_string_list_preserve_order(value: Any, field_name: str) -> list[str]:
    """Normalize list of strings while preserving declaration order."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise FindingRecordError(f"{field_name} must be a list of strings")

    normalized: list[str] = []
    seen: set[str] = set()
    for item in value:
        if not isinstance(item, str):
            raise FindingRecordError(f"{field_name} must be a list of strings")
        cleaned = item.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            normalized.append(cleaned)

    return normalized
