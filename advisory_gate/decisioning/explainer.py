"""
Explanation generator for synthetic advisories.

Produces the fixed, human-readable descriptions used when the scanner itself
emits an advisory (lockfile drift, collaborator failures) rather than
deriving it from a vulnerability record.
"""
from typing import Dict, Any, Optional
import logging


logger = logging.getLogger(__name__)


class AdvisoryExplainer:
    """
    Generates descriptions for scanner-originated advisories.

    Uses templates with evidence-based substitution to create
    consistent messages the host can show verbatim.
    """

    DEFAULT_TEMPLATES = {
        'LOCKFILE_DRIFT': (
            "{source} does not match the packages being installed. "
            "The lockfile may be stale; results may not reflect the final install."
        ),
        'INVALID_ARGUMENTS': (
            "Invalid scanner arguments: {message}"
        ),
        'LOCK_READ_ERROR': (
            "Failed to read {source}: {message}"
        ),
        'LOCK_PARSE_ERROR': (
            "Failed to parse {source}: {code}"
        ),
        'PACKAGE_METADATA_ERROR': (
            "Invalid package metadata: {message}"
        ),
        'OSV_SCAN_ERROR': (
            "OSV scanner failed: {message}"
        ),
        'SCAN_ERROR': (
            "Security scan failed: {message}"
        ),
        'DEFAULT': (
            "Security scan could not complete."
        )
    }

    def __init__(self, templates: Optional[Dict[str, str]] = None):
        """
        Initialize explainer with templates.

        Args:
            templates: Custom templates by reason code.
                      If None, uses default templates.
        """
        self.templates = templates or self.DEFAULT_TEMPLATES

    def explain(self, reason_code: str, evidence: Dict[str, Any]) -> str:
        """
        Generate description from reason code and evidence.

        Args:
            reason_code: Reason code (e.g., 'LOCK_READ_ERROR')
            evidence: Evidence dictionary with substitution values

        Returns:
            Human-readable description string
        """
        template = self.templates.get(reason_code, self.templates.get('DEFAULT', ''))
        values = self._prepare_values(evidence)

        try:
            return template.format(**values).strip()
        except KeyError as e:
            logger.warning(
                f"Missing template variable {e} for reason code {reason_code}"
            )
            return f"Security scan could not complete. Reason: {reason_code}."

    def _prepare_values(self, evidence: Dict[str, Any]) -> Dict[str, str]:
        """Stringify evidence and fill defaults for the known template variables."""
        values = {}

        for key, value in evidence.items():
            values[key] = 'unknown' if value is None else str(value)

        defaults = {
            'source': 'bun.lock',
            'message': 'Unknown error',
            'code': 'unknown',
        }

        for key, default in defaults.items():
            if key not in values:
                values[key] = default

        return values
