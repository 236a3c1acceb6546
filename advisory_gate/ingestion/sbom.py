"""
Minimal CycloneDX SBOM generation for feeding osv-scanner.
"""
import json
from typing import Any, Dict, List
from urllib.parse import quote

from ..models import DependencyCoordinate

SBOM_FORMAT_CYCLONEDX = "CycloneDX"
SBOM_SPEC_VERSION = "1.4"
SBOM_COMPONENT_TYPE_LIBRARY = "library"


def to_package_url(ecosystem: str, name: str, version: str) -> str:
    """Encode a coordinate as a purl, keeping the scope separator unescaped."""
    encoded_name = "/".join(quote(part, safe="") for part in name.split("/"))
    return f"pkg:{ecosystem}/{encoded_name}@{version}"


def generate_cyclonedx_sbom(coordinates: List[DependencyCoordinate]) -> Dict[str, Any]:
    return {
        "bomFormat": SBOM_FORMAT_CYCLONEDX,
        "specVersion": SBOM_SPEC_VERSION,
        "version": 1,
        "components": [
            {
                "type": SBOM_COMPONENT_TYPE_LIBRARY,
                "name": coordinate.name,
                "version": coordinate.version,
                "purl": coordinate.purl or to_package_url(
                    coordinate.ecosystem, coordinate.name, coordinate.version
                ),
            }
            for coordinate in coordinates
        ],
    }


def serialize_sbom(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2)
