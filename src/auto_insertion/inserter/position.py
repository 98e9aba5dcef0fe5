"""Insertion point calculation.

This is the single implementation of position math. The build-time inserter
and the view-time orchestrator both call ``compute_insertion_point``.

    forward:  target = position
    reverse:  target = element_count - position

A target past the end is resolved by the overflow policy, a negative target
clamps to 0. ``target < element_count`` means "insert before element
``target``", otherwise the CTA is appended after the last element. With
``reverse`` and ``position=1`` the CTA lands before the last element.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.common.models import (
    InsertionDirection,
    OverflowPolicy,
    parse_overflow_policy,
)


@dataclass(frozen=True)
class InsertionPoint:
    """Result of a position calculation."""
    index: Optional[int] = None
    skip: bool = False

    def is_append(self, element_count: int) -> bool:
        """True when the CTA goes after the last element."""
        return not self.skip and self.index is not None and self.index >= element_count


SKIP = InsertionPoint(index=None, skip=True)


def compute_insertion_point(
    element_count: int,
    direction: InsertionDirection | str,
    position: int,
    overflow_policy: OverflowPolicy | str,
) -> InsertionPoint:
    """Compute where a CTA goes among ``element_count`` content elements.

    Args:
        element_count: Number of countable content elements
        direction: forward (from the start) or reverse (from the end)
        position: 1-based count of elements from the chosen end
        overflow_policy: skip or clamp-to-end when position exceeds the content

    Returns:
        InsertionPoint with the target index, or a skip decision
    """
    if element_count <= 0:
        return SKIP

    direction = InsertionDirection(direction)
    policy = parse_overflow_policy(overflow_policy)

    if direction == InsertionDirection.FORWARD:
        target = position
    else:
        target = element_count - position

    if target > element_count:
        if policy == OverflowPolicy.SKIP:
            return SKIP
        target = element_count

    if target < 0:
        target = 0

    return InsertionPoint(index=target, skip=False)
