"""
Exceptions raised by the scanner's collaborators.

The decisioning core never raises. Everything that talks to the outside world
(configuration, lockfile, vulnerability sources) raises a ScannerError subclass,
which the orchestrator turns into a single fatal advisory.
"""


class ScannerError(RuntimeError):
    """Base class for failures that must block the install."""


class ConfigError(ScannerError):
    """Raised when CLI flags, environment or config file are invalid."""


class LockfileReadError(ScannerError):
    """Raised when the lockfile cannot be read or decoded as JSON."""


class LockfileParseError(ScannerError):
    """Raised when the lockfile JSON does not have the expected structure."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class PackageMetadataError(ScannerError):
    """Raised when host-supplied package metadata is missing required fields."""


class OsvSourceError(ScannerError):
    """Raised when the OSV REST API or osv-scanner CLI fails."""
