"""
Ingestion layer for the install-time advisory gate.

Provides the collaborators that feed the decisioning core:
- bun.lock reading and host package conversion
- OSV REST API adapter
- osv-scanner CLI adapter (with CycloneDX SBOM generation)
- OSV payload normalization
"""
from .base_adapter import BaseAdapter, SourceHealth
from .lockfile import packages_to_coordinates, parse_bun_lock, parse_lenient_json, read_lockfile
from .osv_api_adapter import OsvApiAdapter
from .osv_cli_adapter import OsvCliAdapter
from .osv_normalizer import normalize_vulnerability, parse_scan_results
from .sbom import generate_cyclonedx_sbom

__all__ = [
    "BaseAdapter",
    "SourceHealth",
    "OsvApiAdapter",
    "OsvCliAdapter",
    "generate_cyclonedx_sbom",
    "normalize_vulnerability",
    "packages_to_coordinates",
    "parse_bun_lock",
    "parse_lenient_json",
    "parse_scan_results",
    "read_lockfile",
]
