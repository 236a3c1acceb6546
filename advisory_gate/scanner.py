"""
Scan orchestrator for the install-time advisory gate.

Coordinates one scan of the packages an installer is about to install:
1. Resolution: Read bun.lock (or fall back to the host package list)
2. Lookup: Fetch OSV findings from the configured source
3. Classification: Classify each finding and build advisories
4. Drift: Warn when bun.lock disagrees with the host package list
5. Policy: Apply escalation, then the unsafe downgrade
6. Metrics: Record what happened

The orchestrator fails closed: if any collaborator fails, the scan returns
a single fatal advisory describing the failure instead of an empty list.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .config import MODE_CLI, ScannerConfig
from .decisioning import (
    AdvisoryExplainer,
    RuleEngine,
    apply_policy,
    build_advisories,
    coordinate_keys,
    detect_drift,
)
from .errors import (
    ConfigError,
    LockfileParseError,
    LockfileReadError,
    OsvSourceError,
    PackageMetadataError,
    ScannerError,
)
from .ingestion import BaseAdapter, OsvApiAdapter, OsvCliAdapter
from .ingestion.lockfile import packages_to_coordinates, parse_bun_lock, read_lockfile
from .models import Advisory, DependencyCoordinate, LEVEL_FATAL, PackageFinding
from .observability import ScanMetrics

logger = logging.getLogger(__name__)

LockReader = Callable[[str], Any]


def build_adapter(config: ScannerConfig) -> BaseAdapter:
    """Create the vulnerability source adapter selected by config.mode."""
    if config.mode == MODE_CLI:
        return OsvCliAdapter(config.source_config())
    return OsvApiAdapter(config.source_config())


class SecurityScanner:
    """
    Orchestrates lockfile resolution, OSV lookup and advisory decisions.

    Collaborators can be injected for testing; by default they are built
    from the ScannerConfig.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        adapter: Optional[BaseAdapter] = None,
        engine: Optional[RuleEngine] = None,
        explainer: Optional[AdvisoryExplainer] = None,
        lock_reader: Optional[LockReader] = None,
    ):
        self.config = config or ScannerConfig()
        self.adapter = adapter or build_adapter(self.config)
        self.engine = engine or RuleEngine()
        self.explainer = explainer or AdvisoryExplainer()
        self.lock_reader = lock_reader or read_lockfile
        self.lockfile_name = Path(self.config.lockfile).name
        self.last_metrics: Optional[ScanMetrics] = None

    def scan(self, packages: Optional[Iterable[Any]]) -> List[Advisory]:
        """
        Scan the packages the host is about to install.

        Args:
            packages: Host package entries with at least name and version

        Returns:
            Advisories in final order. Never raises; failures become one
            fatal advisory.
        """
        packages = list(packages or [])
        metrics = ScanMetrics(
            run_id=f"run_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}",
            started_at=datetime.utcnow()
        )
        self.last_metrics = metrics

        if not packages:
            logger.info("No packages to scan")
            metrics.completed_at = datetime.utcnow()
            return []

        logger.info(f"=== Starting Scan: {metrics.run_id} ({len(packages)} packages) ===")

        try:
            advisories = self._run(packages, metrics)
        except ScannerError as e:
            metrics.record_error(str(e), {"error_type": type(e).__name__})
            logger.error(f"Scan failed: {e}")
            advisories = [self.failure_advisory(e)]
        except Exception as e:
            metrics.record_error(str(e), {"error_type": type(e).__name__})
            logger.error(f"Scan failed unexpectedly: {e}", exc_info=True)
            advisories = [self.failure_advisory(e)]

        metrics.record_advisories(advisories)
        metrics.completed_at = datetime.utcnow()

        logger.info(f"=== Scan Complete: {metrics.advisories_total} advisories ({metrics.level_counts}) ===")
        return advisories

    def _run(self, packages: List[Any], metrics: ScanMetrics) -> List[Advisory]:
        logger.info("Stage 1: Resolving dependency coordinates")
        requested = packages_to_coordinates(packages)
        coordinates, lockfile_found = self._resolve_coordinates(requested)
        metrics.packages_scanned = len(coordinates)

        logger.info(f"Stage 2: Looking up {len(coordinates)} coordinates via {self.config.mode}")
        findings = self._lookup(coordinates, metrics)
        metrics.findings_total = len(findings)

        logger.info("Stage 3: Classifying findings")
        advisories = build_advisories(findings, lambda f: self._classify(f, metrics))

        logger.info("Stage 4: Checking lockfile drift")
        if lockfile_found and advisories:
            drift = detect_drift(
                coordinate_keys(coordinates),
                coordinate_keys(requested),
                source_name=self.lockfile_name,
                explainer=self.explainer,
            )
            if drift is not None:
                logger.warning(f"{self.lockfile_name} does not match the packages being installed")
                metrics.drift_detected = True
                advisories.append(drift)

        logger.info("Stage 5: Applying policy")
        final = apply_policy(advisories, self.config.policy)
        metrics.record_policy(advisories, final)

        return final

    def _resolve_coordinates(
        self,
        requested: List[DependencyCoordinate]
    ) -> Tuple[List[DependencyCoordinate], bool]:
        """
        Coordinates from the lockfile, or the host's own list if there is none.

        Returns:
            (coordinates, lockfile_found)
        """
        try:
            document = self.lock_reader(self.config.lockfile)
        except FileNotFoundError:
            logger.warning(
                f"{self.config.lockfile} not found, scanning the {len(requested)} packages supplied by the installer"
            )
            return requested, False

        return parse_bun_lock(document), True

    def _lookup(self, coordinates: List[DependencyCoordinate], metrics: ScanMetrics) -> List[PackageFinding]:
        try:
            return self.adapter.scan(coordinates)
        finally:
            health = self.adapter.get_health()
            metrics.source_health[health.source_id or self.config.mode] = {
                "healthy": health.is_healthy,
                "records": health.records_fetched,
                "error": health.error_message
            }

    def _classify(self, finding: PackageFinding, metrics: ScanMetrics) -> Optional[str]:
        decision = self.engine.decide(finding)
        if decision is None:
            return None
        metrics.record_rule_fired(decision.reason_code)
        return decision.level

    def failure_advisory(self, error: Exception) -> Advisory:
        """Fatal advisory describing why the scan could not complete."""
        return Advisory(
            level=LEVEL_FATAL,
            package=self.lockfile_name,
            url=None,
            description=describe_error(error, self.explainer, self.lockfile_name),
        )


def describe_error(
    error: Exception,
    explainer: Optional[AdvisoryExplainer] = None,
    source: str = "bun.lock",
) -> str:
    """Human-readable description of a scan failure."""
    explainer = explainer or AdvisoryExplainer()

    if isinstance(error, ConfigError):
        return explainer.explain('INVALID_ARGUMENTS', {'message': str(error)})
    if isinstance(error, LockfileReadError):
        return explainer.explain('LOCK_READ_ERROR', {'source': source, 'message': str(error)})
    if isinstance(error, LockfileParseError):
        return explainer.explain('LOCK_PARSE_ERROR', {'source': source, 'code': error.code})
    if isinstance(error, PackageMetadataError):
        return explainer.explain('PACKAGE_METADATA_ERROR', {'message': str(error)})
    if isinstance(error, OsvSourceError):
        return explainer.explain('OSV_SCAN_ERROR', {'message': str(error)})
    return explainer.explain('SCAN_ERROR', {'message': f"{type(error).__name__}: {error}"})


def config_error_advisories(error: ConfigError, lockfile: str = "bun.lock") -> List[Advisory]:
    """Advisory list returned when the scanner could not even be configured."""
    return [Advisory(
        level=LEVEL_FATAL,
        package=Path(lockfile).name,
        url=None,
        description=describe_error(error, source=Path(lockfile).name),
    )]
