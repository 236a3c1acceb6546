"""
Tests for configuration layering: defaults < YAML < environment < flags.
"""
import pytest

from advisory_gate.config import (
    ENV_ALLOW_UNSAFE,
    ENV_BLOCK_MIN_LEVEL,
    MODE_CLI,
    MODE_REST,
    load_config,
    parse_args,
)
from advisory_gate.errors import ConfigError
from advisory_gate.models import LEVEL_FATAL, LEVEL_WARN


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "scanner:\n"
        "  mode: cli\n"
        "  lockfile: deps/bun.lock\n"
        "sources:\n"
        "  osv_api:\n"
        "    batch_size: 8\n"
        "  osv_cli:\n"
        "    command: [osv-scanner, --format, json, -L]\n"
        "policy:\n"
        "  block_min_level: warn\n"
        "  allow_unsafe: false\n"
    )
    return path


class TestDefaults:
    """Test configuration with no inputs."""

    def test_defaults(self):
        config = load_config(parse_args([]), env={})

        assert config.mode == MODE_REST
        assert config.lockfile == "bun.lock"
        assert config.api.base_url == "https://api.osv.dev"
        assert config.api.batch_size == 32
        assert config.policy.block_min_level == LEVEL_FATAL
        assert config.policy.allow_unsafe is False

    def test_no_args(self):
        assert load_config(None, env={}).mode == MODE_REST


class TestYamlConfig:
    """Test values loaded from the config file."""

    def test_file_values(self, config_file):
        """YAML values override defaults."""
        config = load_config(parse_args(["--config", str(config_file)]), env={})

        assert config.mode == MODE_CLI
        assert config.lockfile == "deps/bun.lock"
        assert config.api.batch_size == 8
        assert config.cli.command == ["osv-scanner", "--format", "json", "-L"]
        assert config.policy.block_min_level == LEVEL_WARN
        assert config.source_config()["command"] == ["osv-scanner", "--format", "json", "-L"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(parse_args(["--config", str(tmp_path / "nope.yaml")]), env={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(parse_args(["--config", str(path)]), env={})


class TestEnvironment:
    """Test BUN_OSV_* variables."""

    def test_warn_level_from_env(self):
        """BUN_OSV_BLOCK_MIN_LEVEL=warn opts in to escalation."""
        config = load_config(parse_args([]), env={ENV_BLOCK_MIN_LEVEL: "warn"})

        assert config.policy.block_min_level == LEVEL_WARN

    def test_other_env_level_keeps_fatal(self, config_file):
        """An unrecognised env value resets to fatal, overriding the file."""
        args = parse_args(["--config", str(config_file)])

        config = load_config(args, env={ENV_BLOCK_MIN_LEVEL: "WARN"})

        assert config.policy.block_min_level == LEVEL_FATAL

    @pytest.mark.parametrize("value,expected", [("1", True), ("true", False), ("0", False)])
    def test_allow_unsafe_env(self, value, expected):
        """Only the literal value 1 enables the unsafe override."""
        config = load_config(parse_args([]), env={ENV_ALLOW_UNSAFE: value})

        assert config.policy.allow_unsafe is expected


class TestFlags:
    """Test command-line overrides."""

    def test_flags_beat_env_and_file(self, config_file):
        """Command-line flags have the final word."""
        args = parse_args([
            "--config", str(config_file),
            "--mode", "REST",
            "--block-min-level", "fatal",
            "--allow-unsafe",
            "--api-batch-size", "4",
            "--lockfile", "other.lock",
        ])

        config = load_config(args, env={ENV_BLOCK_MIN_LEVEL: "warn", ENV_ALLOW_UNSAFE: "0"})

        assert config.mode == MODE_REST
        assert config.policy.block_min_level == LEVEL_FATAL
        assert config.policy.allow_unsafe is True
        assert config.api.batch_size == 4
        assert config.lockfile == "other.lock"

    def test_repeated_cli_command(self):
        args = parse_args(["--cli-command", "osv-scanner", "--cli-command", "-L"])

        assert load_config(args, env={}).cli.command == ["osv-scanner", "-L"]

    def test_unknown_option(self):
        """Unknown flags raise instead of exiting."""
        with pytest.raises(ConfigError, match="--unknown"):
            parse_args(["--unknown"])

    def test_invalid_mode(self):
        with pytest.raises(ConfigError, match="invalid mode 'grpc'"):
            load_config(parse_args(["--mode", "grpc"]), env={})

    @pytest.mark.parametrize("value", ["0", "-3", "many"])
    def test_invalid_batch_size(self, value):
        with pytest.raises(ConfigError, match="invalid batch size"):
            load_config(parse_args([f"--api-batch-size={value}"]), env={})

    def test_invalid_block_level_flag(self):
        with pytest.raises(ConfigError, match="invalid block level"):
            load_config(parse_args(["--block-min-level", "info"]), env={})


class TestFileValidation:
    """Test rejection of malformed config files."""

    @pytest.mark.parametrize("value", ['"false"', '"no"', '"0"', "1"])
    def test_allow_unsafe_must_be_boolean(self, tmp_path, value):
        """A quoted "false" must never switch the unsafe override on."""
        path = tmp_path / "config.yaml"
        path.write_text(f"policy:\n  allow_unsafe: {value}\n")

        with pytest.raises(ConfigError, match="invalid allow_unsafe"):
            load_config(parse_args(["--config", str(path)]), env={})

    def test_allow_unsafe_boolean_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("policy:\n  allow_unsafe: true\n")

        config = load_config(parse_args(["--config", str(path)]), env={})

        assert config.policy.allow_unsafe is True

    @pytest.mark.parametrize("text,section", [
        ("sources: osv\n", "sources"),
        ("scanner: [rest]\n", "scanner"),
        ("sources:\n  osv_api: 5\n", "osv_api"),
        ("policy: strict\n", "policy"),
    ])
    def test_sections_must_be_mappings(self, tmp_path, text, section):
        path = tmp_path / "config.yaml"
        path.write_text(text)

        with pytest.raises(ConfigError, match=f"config section '{section}' must be a mapping"):
            load_config(parse_args(["--config", str(path)]), env={})

    def test_empty_sections_use_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scanner:\nsources:\n  osv_api:\npolicy:\n")

        config = load_config(parse_args(["--config", str(path)]), env={})

        assert config.mode == MODE_REST
        assert config.api.batch_size == 32
