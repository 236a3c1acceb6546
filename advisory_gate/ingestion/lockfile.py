"""
bun.lock reading and coordinate extraction.

bun.lock is JSON with trailing commas, so it is parsed leniently. Host
supplied package lists are converted with the same coordinate shape for
installs that have no lockfile yet.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import LockfileParseError, LockfileReadError, PackageMetadataError
from ..models import DependencyCoordinate, ECOSYSTEM_NPM

logger = logging.getLogger(__name__)

DEFAULT_LOCKFILE = "bun.lock"

PARSE_ERROR_INVALID_DOCUMENT = "invalid-document"
PARSE_ERROR_MISSING_PACKAGES = "missing-packages"

JSON_WHITESPACE = " \n\r\t"


def parse_lenient_json(text: str) -> Any:
    """
    Parse JSON, tolerating trailing commas outside string literals.

    Raises:
        json.JSONDecodeError: If the text is invalid even after sanitizing
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return json.loads(strip_trailing_commas(text))


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing ] or } (ignoring whitespace)."""
    builder = []
    in_string = False
    escaped = False
    length = len(text)

    for index, char in enumerate(text):
        if in_string:
            builder.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            builder.append(char)
            continue

        if char == ",":
            next_index = index + 1
            while next_index < length and text[next_index] in JSON_WHITESPACE:
                next_index += 1
            if next_index < length and text[next_index] in "}]":
                continue

        builder.append(char)

    return "".join(builder)


def read_lockfile(path: Union[str, Path]) -> Any:
    """
    Load and decode a lockfile.

    Raises:
        FileNotFoundError: If the lockfile does not exist
        LockfileReadError: If it cannot be read or is not JSON
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise LockfileReadError(str(e)) from e

    try:
        return parse_lenient_json(text)
    except json.JSONDecodeError as e:
        raise LockfileReadError(str(e)) from e


def parse_bun_lock(document: Any) -> List[DependencyCoordinate]:
    """
    Extract npm coordinates from a decoded bun.lock document.

    Each value in "packages" is an array whose first element is a
    "name@version" spec. Malformed entries are skipped and duplicates on
    name@version are dropped, first occurrence wins.

    Raises:
        LockfileParseError: If the document or its packages map is missing
    """
    if not isinstance(document, dict):
        raise LockfileParseError(PARSE_ERROR_INVALID_DOCUMENT)

    packages = document.get("packages")
    if not isinstance(packages, dict):
        raise LockfileParseError(PARSE_ERROR_MISSING_PACKAGES)

    seen = set()
    coordinates: List[DependencyCoordinate] = []
    for entry in packages.values():
        if not isinstance(entry, list) or not entry:
            continue
        spec = entry[0]
        if not isinstance(spec, str) or not spec:
            continue

        coordinate = spec_to_coordinate(spec)
        if coordinate is not None and coordinate.key not in seen:
            seen.add(coordinate.key)
            coordinates.append(coordinate)

    return coordinates


def spec_to_coordinate(spec: str) -> Optional[DependencyCoordinate]:
    """Convert "oxlint@1.19.0" or "@scope/pkg@1.0.0" into a coordinate."""
    at_index = spec.rfind("@")
    if at_index <= 0 or at_index == len(spec) - 1:
        return None

    return DependencyCoordinate(
        name=spec[:at_index],
        version=spec[at_index + 1:],
        ecosystem=ECOSYSTEM_NPM,
    )


def packages_to_coordinates(packages: Iterable[Any]) -> List[DependencyCoordinate]:
    """
    Convert host-supplied packages ({name, version, ...}) into coordinates.

    Duplicates on name@version are dropped, first occurrence wins.

    Raises:
        PackageMetadataError: On the first package missing a name or version
    """
    seen = set()
    coordinates: List[DependencyCoordinate] = []

    for package in packages:
        name = _field(package, "name")
        version = _field(package, "version")

        if not isinstance(name, str) or not name:
            raise PackageMetadataError("Package missing name field")
        if not isinstance(version, str) or not version:
            raise PackageMetadataError(f"Package {name} missing version field")

        key = f"{name}@{version}"
        if key in seen:
            continue
        seen.add(key)

        coordinates.append(DependencyCoordinate(name=name, version=version, ecosystem=ECOSYSTEM_NPM))

    return coordinates


def _field(package: Any, name: str) -> Any:
    if isinstance(package, dict):
        return package.get(name)
    return getattr(package, name, None)
