"""
Stale lockfile detection.

Compares the coordinates recorded in the lockfile against the packages the
installer says it is about to install. Any difference means the scan may have
looked at the wrong dependency set.
"""
from typing import Iterable, Optional, Set

from ..models import Advisory, DependencyCoordinate, LEVEL_WARN
from .explainer import AdvisoryExplainer

DEFAULT_SOURCE_NAME = "bun.lock"


def coordinate_keys(coordinates: Iterable[DependencyCoordinate]) -> Set[str]:
    return {coordinate.key for coordinate in coordinates}


def detect_drift(
    authoritative: Set[str],
    provided: Set[str],
    source_name: str = DEFAULT_SOURCE_NAME,
    explainer: Optional[AdvisoryExplainer] = None,
) -> Optional[Advisory]:
    """
    Return a warn advisory when the two "name@version" sets differ.

    The advisory names the authoritative source itself, not any single
    dependency. Identical sets yield None.
    """
    if set(authoritative) == set(provided):
        return None

    explainer = explainer or AdvisoryExplainer()
    return Advisory(
        level=LEVEL_WARN,
        package=source_name,
        url=None,
        description=explainer.explain('LOCKFILE_DRIFT', {'source': source_name}),
    )
