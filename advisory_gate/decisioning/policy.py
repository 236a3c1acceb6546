"""
Operator policy applied on top of classified advisories.

Two transformations run in a fixed order: escalation first, then the
emergency unsafe downgrade. Downgrading last means allow_unsafe always has
the final word, including over advisories that escalation just raised.
"""
from dataclasses import dataclass, replace
from typing import List, Optional

from ..models import Advisory, LEVEL_FATAL, LEVEL_WARN


@dataclass(frozen=True)
class PolicyConfig:
    """Operator-controlled behaviour switches, immutable for a scan."""
    block_min_level: str = LEVEL_FATAL  # fatal | warn
    allow_unsafe: bool = False


def apply_policy(advisories: List[Advisory], config: Optional[PolicyConfig]) -> List[Advisory]:
    """
    Return a new advisory list with policy applied.

    The input list and its advisories are never mutated. A missing config
    is an identity transform.
    """
    if config is None:
        return list(advisories)

    result = list(advisories)

    if config.block_min_level == LEVEL_WARN:
        result = [_with_level(a, LEVEL_FATAL) if a.level == LEVEL_WARN else a for a in result]

    if config.allow_unsafe:
        result = [_with_level(a, LEVEL_WARN) if a.level == LEVEL_FATAL else a for a in result]

    return result


def _with_level(advisory: Advisory, level: str) -> Advisory:
    return replace(advisory, level=level)
