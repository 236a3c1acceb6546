"""
Base adapter interface for vulnerability sources.

Defines the contract that the OSV REST and osv-scanner CLI adapters
implement, plus shared health bookkeeping.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import DependencyCoordinate, PackageFinding


@dataclass
class SourceHealth:
    """Health status of a source adapter."""
    source_id: str
    is_healthy: bool
    last_fetch: Optional[datetime]
    records_fetched: int
    error_message: Optional[str] = None


class BaseAdapter(ABC):
    """
    Abstract base class for vulnerability source adapters.

    Adapters must implement scan(). Unlike a best-effort data feed, a
    failed scan must raise OsvSourceError so the install is blocked.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.source_id: str = ""
        self._last_fetch: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._records_fetched: int = 0

    @abstractmethod
    def scan(self, coordinates: List[DependencyCoordinate]) -> List[PackageFinding]:
        """
        Look up vulnerabilities for the given coordinates.

        Returns:
            One PackageFinding per coordinate with at least one vulnerability

        Raises:
            OsvSourceError: If the source cannot be queried or decoded
        """
        pass

    def get_health(self) -> SourceHealth:
        """Return health status of this adapter."""
        return SourceHealth(
            source_id=self.source_id,
            is_healthy=self._last_error is None,
            last_fetch=self._last_fetch,
            records_fetched=self._records_fetched,
            error_message=self._last_error
        )

    def _record_success(self, findings: List[PackageFinding]) -> None:
        self._records_fetched = len(findings)
        self._last_error = None

    def _record_failure(self, error: Exception) -> None:
        self._records_fetched = 0
        self._last_error = str(error)
