"""
OSV REST API adapter.

Looks up coordinates with POST /v1/querybatch (following page tokens),
then fetches each distinct vulnerability once from GET /v1/vulns/{id}.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from ..errors import OsvSourceError
from ..models import DependencyCoordinate, PackageFinding, VulnerabilityRecord
from .base_adapter import BaseAdapter
from .http_client import DEFAULT_TIMEOUT_SECONDS, HttpClient
from .osv_normalizer import normalize_vulnerability

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.osv.dev"
DEFAULT_BATCH_SIZE = 32


@dataclass
class _QueryEntry:
    coordinate: DependencyCoordinate
    vulnerability_ids: List[str] = field(default_factory=list)


class OsvApiAdapter(BaseAdapter):
    """Vulnerability source backed by the public OSV REST API."""

    def __init__(self, config: Dict[str, Any], client: Optional[HttpClient] = None):
        super().__init__(config)
        self.source_id = "osv_api"
        self.base_url = str(config.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self.batch_size = int(config.get("batch_size") or DEFAULT_BATCH_SIZE)
        self._owns_client = client is None
        self.client = client or HttpClient(
            source_id=self.source_id,
            timeout_seconds=config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        )

    def scan(self, coordinates: List[DependencyCoordinate]) -> List[PackageFinding]:
        """Query OSV for every coordinate and return non-empty findings."""
        self._last_fetch = datetime.utcnow()

        try:
            findings = self._scan(coordinates)
        except OsvSourceError as e:
            self._record_failure(e)
            logger.error(f"OSV API scan failed: {e}")
            raise
        finally:
            # Injected clients belong to the caller
            if self._owns_client:
                self.client.close()

        self._record_success(findings)
        return findings

    def _scan(self, coordinates: List[DependencyCoordinate]) -> List[PackageFinding]:
        if not coordinates:
            return []

        entries = self._collect_vulnerability_ids(coordinates)
        unique_ids = list(dict.fromkeys(
            vuln_id for entry in entries for vuln_id in entry.vulnerability_ids
        ))
        logger.info(f"OSV querybatch matched {len(unique_ids)} distinct vulnerabilities")

        details = {vuln_id: self._fetch_vulnerability(vuln_id) for vuln_id in unique_ids}

        findings: List[PackageFinding] = []
        for entry in entries:
            if not entry.vulnerability_ids:
                continue
            vulnerabilities = []
            for vuln_id in entry.vulnerability_ids:
                record = details.get(vuln_id)
                if record is None:
                    raise OsvSourceError(f"Missing OSV vulnerability detail for id {vuln_id}")
                vulnerabilities.append(record)
            findings.append(PackageFinding(coordinate=entry.coordinate, vulnerabilities=vulnerabilities))

        return findings

    def _collect_vulnerability_ids(self, coordinates: List[DependencyCoordinate]) -> List[_QueryEntry]:
        """
        Run querybatch over all coordinates, re-queuing paginated results.

        Returns one entry per distinct coordinate in first-seen order with
        de-duplicated vulnerability ids.
        """
        pending: List[Tuple[DependencyCoordinate, Optional[str]]] = [(c, None) for c in coordinates]
        entries: Dict[str, _QueryEntry] = {}

        while pending:
            batch = pending[:self.batch_size]
            pending = pending[self.batch_size:]

            payload = {"queries": [self._to_query(c, token) for c, token in batch]}
            response = self._call(self.client.post_json, f"{self.base_url}/v1/querybatch", payload)

            results = response.get("results") if isinstance(response, dict) else None
            if not isinstance(results, list) or len(results) != len(batch):
                raise OsvSourceError("OSV querybatch response structure did not match request")

            for (coordinate, _), result in zip(batch, results):
                key = self._coordinate_key(coordinate)
                entry = entries.setdefault(key, _QueryEntry(coordinate=coordinate))

                result = result if isinstance(result, dict) else {}
                for vuln in result.get("vulns") or []:
                    vuln_id = vuln.get("id") if isinstance(vuln, dict) else None
                    if vuln_id and vuln_id not in entry.vulnerability_ids:
                        entry.vulnerability_ids.append(vuln_id)

                next_token = result.get("next_page_token")
                if next_token:
                    pending.append((coordinate, next_token))

        return list(entries.values())

    def _fetch_vulnerability(self, vuln_id: str) -> VulnerabilityRecord:
        url = f"{self.base_url}/v1/vulns/{quote(vuln_id, safe='')}"
        document = self._call(self.client.get_json, url)
        record = normalize_vulnerability(document)
        if record is None:
            raise OsvSourceError(f"Invalid OSV vulnerability document for id {vuln_id}")
        if not record.id:
            record.id = vuln_id
        return record

    @staticmethod
    def _call(method, *args) -> Any:
        """Invoke a client method, translating transport failures."""
        try:
            return method(*args)
        except requests.exceptions.JSONDecodeError as e:
            raise OsvSourceError("Failed to parse OSV API response JSON") from e
        except requests.HTTPError as e:
            raise OsvSourceError(str(e)) from e
        except requests.RequestException as e:
            raise OsvSourceError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise OsvSourceError("Failed to parse OSV API response JSON") from e

    @staticmethod
    def _to_query(coordinate: DependencyCoordinate, page_token: Optional[str]) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "package": {"name": coordinate.name, "ecosystem": coordinate.ecosystem},
            "version": coordinate.version,
        }
        if page_token:
            query["page_token"] = page_token
        return query

    @staticmethod
    def _coordinate_key(coordinate: DependencyCoordinate) -> str:
        return f"{coordinate.ecosystem}::{coordinate.name}@{coordinate.version}"
