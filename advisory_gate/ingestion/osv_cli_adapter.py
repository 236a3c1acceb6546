"""
Adapter for the local osv-scanner CLI.

Writes a CycloneDX SBOM for the coordinates to a temporary file, runs
osv-scanner against it and normalizes the JSON report.
"""
import json
import logging
import os
import subprocess
import tempfile
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..errors import OsvSourceError
from ..models import DependencyCoordinate, PackageFinding
from .base_adapter import BaseAdapter
from .osv_normalizer import parse_scan_results
from .sbom import generate_cyclonedx_sbom, serialize_sbom

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ["osv-scanner", "scan", "source", "--format", "json", "-L"]

# osv-scanner exit codes
EXIT_CLEAN = 0
EXIT_VULNERABILITIES_FOUND = 1
EXIT_NO_PACKAGES = 128

CommandRunner = Callable[[List[str], Optional[str]], subprocess.CompletedProcess]


def run_command(command: List[str], cwd: Optional[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        command,
        cwd=cwd,
        capture_output=True,
        text=True
    )


class OsvCliAdapter(BaseAdapter):
    """Vulnerability source backed by the osv-scanner executable."""

    def __init__(self, config: Dict[str, Any], runner: Optional[CommandRunner] = None):
        super().__init__(config)
        self.source_id = "osv_cli"
        self.command = list(config.get("command") or DEFAULT_COMMAND)
        self.working_directory = config.get("working_directory")
        self.temp_directory = config.get("temp_directory")
        self.runner = runner or run_command

    def scan(self, coordinates: List[DependencyCoordinate]) -> List[PackageFinding]:
        """Run osv-scanner over an SBOM of the coordinates."""
        self._last_fetch = datetime.utcnow()

        try:
            findings = self._scan(coordinates)
        except OsvSourceError as e:
            self._record_failure(e)
            logger.error(f"osv-scanner failed: {e}")
            raise

        self._record_success(findings)
        return findings

    def _scan(self, coordinates: List[DependencyCoordinate]) -> List[PackageFinding]:
        sbom_json = serialize_sbom(generate_cyclonedx_sbom(coordinates))
        sbom_path = self._write_temp_sbom(sbom_json)

        try:
            command = self.command + [sbom_path]
            logger.info(f"Running {' '.join(command)}")
            try:
                execution = self.runner(command, self.working_directory)
            except OSError as e:
                raise OsvSourceError(f"Unable to run {self.command[0]}: {e}") from e
        finally:
            try:
                os.unlink(sbom_path)
            except FileNotFoundError:
                pass

        if execution.returncode == EXIT_NO_PACKAGES:
            logger.info("osv-scanner found no packages to scan")
            return []

        if execution.returncode not in (EXIT_CLEAN, EXIT_VULNERABILITIES_FOUND):
            stderr = (execution.stderr or "").strip()
            stdout = (execution.stdout or "").strip()
            raise OsvSourceError(
                stderr or stdout or f"osv-scanner exited with code {execution.returncode}"
            )

        return parse_scan_results(self._parse_json_output(execution.stdout or ""))

    def _write_temp_sbom(self, contents: str) -> str:
        try:
            handle = tempfile.NamedTemporaryFile(
                "w",
                prefix="osv-sbom-",
                suffix=".cdx.json",
                dir=self.temp_directory,
                delete=False,
                encoding="utf-8",
            )
        except OSError as e:
            raise OsvSourceError(f"Unable to write SBOM file: {e}") from e

        try:
            with handle:
                handle.write(contents)
        except OSError as e:
            try:
                os.unlink(handle.name)
            except FileNotFoundError:
                pass
            raise OsvSourceError(f"Unable to write SBOM file: {e}") from e

        return handle.name

    @staticmethod
    def _parse_json_output(stdout: str) -> Dict[str, Any]:
        """Decode the JSON report, skipping any log lines printed before it."""
        json_start = stdout.find("{")
        if json_start < 0:
            raise OsvSourceError("osv-scanner did not return JSON output")

        try:
            body = json.loads(stdout[json_start:])
        except json.JSONDecodeError as e:
            raise OsvSourceError(f"failed to parse osv-scanner JSON output: {e}") from e

        if not isinstance(body, dict):
            raise OsvSourceError("osv-scanner JSON output is not an object")
        return body
