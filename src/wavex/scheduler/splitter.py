"""Replace XL findings with caller-supplied chains of task-sized findings."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from wavex.scheduler.errors import (
    REASON_SPLIT_EMPTY,
    REASON_SPLIT_KEY_COLLISION,
    REASON_SPLIT_MISSING,
    REASON_SPLIT_NOT_REQUIRED,
    REASON_SPLIT_STILL_XL,
    REASON_SPLIT_TOUCHES_MISMATCH,
    REASON_SPLIT_UNKNOWN_FINDING,
    UnresolvedSplitError,
)
from wavex.scheduler.registry import FindingRegistry
from wavex.scheduler.types import Finding, Size, SplitPart

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)


def split_oversized(
    registry: FindingRegistry,
    splits: Mapping[str, Sequence[SplitPart]],
) -> FindingRegistry:
    """Return a registry with every XL finding replaced by its chain.

    The chain keeps the original's declaration position. Its first element
    inherits the original prerequisites; anything that depended on the
    original now depends on the last element.
    """
    for key in splits:
        if key not in registry:
            raise UnresolvedSplitError(
                key,
                f"Decomposition supplied for unknown finding `{key}`",
                reason_code=REASON_SPLIT_UNKNOWN_FINDING,
            )

    taken = set(registry.keys())
    chains: dict[str, list[Finding]] = {}
    for finding in registry:
        parts = splits.get(finding.key)
        if finding.size is not Size.XL:
            if parts:
                raise UnresolvedSplitError(
                    finding.key,
                    f"Finding `{finding.key}` has size {finding.size.value}; only XL findings are split",
                    reason_code=REASON_SPLIT_NOT_REQUIRED,
                )
            continue
        if parts is None:
            raise UnresolvedSplitError(
                finding.key,
                f"Finding `{finding.key}` is XL and no decomposition was supplied",
                reason_code=REASON_SPLIT_MISSING,
            )
        chains[finding.key] = _build_chain(finding, parts, taken)

    if not chains:
        return registry

    last_of = {key: chain[-1].key for key, chain in chains.items()}
    rewritten: list[Finding] = []
    for finding in registry:
        depends_on = _redirect(finding.depends_on, last_of)
        chain = chains.get(finding.key)
        if chain is None:
            rewritten.append(replace(finding, depends_on=depends_on))
            continue
        rewritten.append(replace(chain[0], depends_on=depends_on))
        rewritten.extend(chain[1:])
        logger.info(
            "Split %s into %s",
            finding.key,
            " -> ".join(element.key for element in chain),
        )

    return FindingRegistry(rewritten)


def _build_chain(finding: Finding, parts: Sequence[SplitPart], taken: set[str]) -> list[Finding]:
    if not parts:
        raise UnresolvedSplitError(
            finding.key,
            f"Decomposition of `{finding.key}` is empty",
            reason_code=REASON_SPLIT_EMPTY,
        )

    inherit_touches = all(not part.touches for part in parts)
    covered: set[str] = set()
    chain: list[Finding] = []
    for position, part in enumerate(parts, start=1):
        if part.size is Size.XL:
            raise UnresolvedSplitError(
                finding.key,
                f"Split element `{part.key}` of `{finding.key}` is still XL",
                reason_code=REASON_SPLIT_STILL_XL,
            )
        if part.key in taken:
            raise UnresolvedSplitError(
                finding.key,
                f"Split element key `{part.key}` of `{finding.key}` is already in use",
                reason_code=REASON_SPLIT_KEY_COLLISION,
            )
        taken.add(part.key)

        touches = finding.touches if inherit_touches else part.touches
        covered.update(touches)
        chain.append(
            Finding(
                key=part.key,
                title=part.title or f"{finding.title} ({position}/{len(parts)})",
                priority=finding.priority,
                size=part.size,
                depends_on=(chain[-1].key,) if chain else (),
                touches=touches,
                split_from=finding.key,
            )
        )

    if covered != set(finding.touches):
        missing = sorted(set(finding.touches) - covered)
        extra = sorted(covered - set(finding.touches))
        raise UnresolvedSplitError(
            finding.key,
            f"Split of `{finding.key}` does not cover the same resources "
            f"(missing: {missing or 'none'}, unexpected: {extra or 'none'})",
            reason_code=REASON_SPLIT_TOUCHES_MISMATCH,
        )
    return chain


def _redirect(depends_on: tuple[str, ...], last_of: Mapping[str, str]) -> tuple[str, ...]:
    redirected: list[str] = []
    for key in depends_on:
        target = last_of.get(key, key)
        if target not in redirected:
            redirected.append(target)
    return tuple(redirected)
