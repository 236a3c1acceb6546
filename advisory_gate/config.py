"""
Scanner configuration.

Configuration is built once at startup and passed explicitly to the
scanner; nothing below this module reads the environment. Sources are
layered, lowest precedence first:
1. Built-in defaults
2. YAML config file (--config)
3. Environment (BUN_OSV_BLOCK_MIN_LEVEL, BUN_OSV_SCANNER_ALLOW_UNSAFE)
4. Command-line flags
"""
import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .decisioning.policy import PolicyConfig
from .errors import ConfigError
from .ingestion.lockfile import DEFAULT_LOCKFILE
from .ingestion.osv_api_adapter import DEFAULT_BASE_URL, DEFAULT_BATCH_SIZE
from .ingestion.http_client import DEFAULT_TIMEOUT_SECONDS
from .models import ADVISORY_LEVELS, LEVEL_FATAL

MODE_REST = "rest"
MODE_CLI = "cli"
SCANNER_MODES = (MODE_REST, MODE_CLI)

ENV_BLOCK_MIN_LEVEL = "BUN_OSV_BLOCK_MIN_LEVEL"
ENV_ALLOW_UNSAFE = "BUN_OSV_SCANNER_ALLOW_UNSAFE"


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = DEFAULT_BASE_URL
    batch_size: int = DEFAULT_BATCH_SIZE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CliConfig:
    command: Optional[List[str]] = None
    working_directory: Optional[str] = None
    temp_directory: Optional[str] = None


@dataclass(frozen=True)
class ScannerConfig:
    """Complete runtime configuration for one scanner process."""
    mode: str = MODE_REST
    lockfile: str = DEFAULT_LOCKFILE
    api: ApiConfig = field(default_factory=ApiConfig)
    cli: CliConfig = field(default_factory=CliConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)

    def source_config(self) -> Dict[str, Any]:
        """Adapter config dict for the selected mode."""
        if self.mode == MODE_CLI:
            return {
                "command": self.cli.command,
                "working_directory": self.cli.working_directory,
                "temp_directory": self.cli.temp_directory,
            }
        return {
            "base_url": self.api.base_url,
            "batch_size": self.api.batch_size,
            "timeout_seconds": self.api.timeout_seconds,
        }


class _RaisingArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises ConfigError instead of exiting."""

    def error(self, message):
        raise ConfigError(message)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = _RaisingArgumentParser(
        prog="advisory-gate",
        description="Check resolved dependencies against OSV before install"
    )
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--packages", help="JSON file with the packages being installed ('-' for stdin)")
    parser.add_argument("--report", help="Directory to write a Markdown scan report to")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--mode", type=str.lower, help="Vulnerability source: rest or cli")
    parser.add_argument("--lockfile", help=f"Path to lockfile (default: {DEFAULT_LOCKFILE})")
    parser.add_argument("--api-base-url", help=f"OSV API base URL (default: {DEFAULT_BASE_URL})")
    parser.add_argument("--api-batch-size", help=f"OSV querybatch size (default: {DEFAULT_BATCH_SIZE})")
    parser.add_argument("--cli-command", action="append", help="osv-scanner command token (repeatable)")
    parser.add_argument("--cli-cwd", help="Working directory for osv-scanner")
    parser.add_argument("--cli-temp-dir", help="Directory for temporary SBOM files")
    parser.add_argument("--block-min-level", type=str.lower, help="Lowest advisory level that blocks: fatal or warn")
    parser.add_argument("--allow-unsafe", action="store_true", default=None,
                        help="Downgrade every fatal advisory to warn")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Raises:
        ConfigError: For unknown options or missing values
    """
    return build_arg_parser().parse_args(list(argv) if argv is not None else None)


def load_config(
    args: Optional[argparse.Namespace] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ScannerConfig:
    """
    Build the scanner configuration from file, environment and flags.

    Args:
        args: Parsed command-line arguments (None for defaults only)
        env: Environment mapping; defaults to os.environ

    Raises:
        ConfigError: If any value is invalid
    """
    env = os.environ if env is None else env
    file_config = _load_yaml(getattr(args, "config", None))

    scanner_section = _section(file_config, "scanner")
    sources = _section(file_config, "sources")
    api_section = _section(sources, "osv_api")
    cli_section = _section(sources, "osv_cli")
    policy_section = _section(file_config, "policy")

    mode = _pick(getattr(args, "mode", None), scanner_section.get("mode"), MODE_REST)
    mode = str(mode).lower()
    if mode not in SCANNER_MODES:
        raise ConfigError(f"invalid mode '{mode}'")

    api = ApiConfig(
        base_url=str(_pick(getattr(args, "api_base_url", None), api_section.get("base_url"), DEFAULT_BASE_URL)),
        batch_size=_positive_int(
            _pick(getattr(args, "api_batch_size", None), api_section.get("batch_size"), DEFAULT_BATCH_SIZE),
            "batch size",
        ),
        timeout_seconds=_positive_float(
            api_section.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS), "timeout"
        ),
    )

    command = _pick(getattr(args, "cli_command", None), cli_section.get("command"), None)
    if command is not None and (not isinstance(command, list) or not all(isinstance(c, str) for c in command)):
        raise ConfigError("osv-scanner command must be a list of strings")

    cli = CliConfig(
        command=list(command) if command else None,
        working_directory=_pick(getattr(args, "cli_cwd", None), cli_section.get("working_directory"), None),
        temp_directory=_pick(getattr(args, "cli_temp_dir", None), cli_section.get("temp_directory"), None),
    )

    policy = PolicyConfig(
        block_min_level=_block_min_level(
            getattr(args, "block_min_level", None),
            env.get(ENV_BLOCK_MIN_LEVEL),
            policy_section.get("block_min_level"),
        ),
        allow_unsafe=_allow_unsafe(
            getattr(args, "allow_unsafe", None),
            env.get(ENV_ALLOW_UNSAFE),
            policy_section.get("allow_unsafe"),
        ),
    )

    return ScannerConfig(
        mode=mode,
        lockfile=str(_pick(getattr(args, "lockfile", None), scanner_section.get("lockfile"), DEFAULT_LOCKFILE)),
        api=api,
        cli=cli,
        policy=policy,
    )


def _load_yaml(config_path: Optional[str]) -> Dict[str, Any]:
    if not config_path:
        return {}

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def _section(mapping: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = mapping.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section '{key}' must be a mapping")
    return value


def _pick(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _positive_int(value: Any, label: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid {label} '{value}'")
    if isinstance(value, bool) or parsed <= 0:
        raise ConfigError(f"invalid {label} '{value}'")
    return parsed


def _positive_float(value: Any, label: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid {label} '{value}'")
    if parsed <= 0:
        raise ConfigError(f"invalid {label} '{value}'")
    return parsed


def _block_min_level(flag: Optional[str], env_value: Optional[str], file_value: Any) -> str:
    if flag is not None:
        if flag not in ADVISORY_LEVELS:
            raise ConfigError(f"invalid block level '{flag}'")
        return flag

    # Environment only opts in to "warn"; any other value keeps the default.
    if env_value is not None:
        return env_value if env_value == "warn" else LEVEL_FATAL

    if file_value is not None:
        level = str(file_value).lower()
        if level not in ADVISORY_LEVELS:
            raise ConfigError(f"invalid block level '{file_value}'")
        return level

    return LEVEL_FATAL


def _allow_unsafe(flag: Optional[bool], env_value: Optional[str], file_value: Any) -> bool:
    if flag:
        return True
    if env_value is not None:
        return env_value == "1"
    if file_value is None:
        return False
    if not isinstance(file_value, bool):
        raise ConfigError(f"invalid allow_unsafe '{file_value}'")
    return file_value
