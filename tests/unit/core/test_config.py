"""
Tests for configuration models and loading.

Organization
------------
- TestModels: defaults and validators
- TestToOptions: MassHashConfig -> HasherOptions
- TestLoadConfig: YAML files, ${VAR} expansion, MASSHASH_* overrides
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from masshash.core.config import HashingConfig, LoggingConfig, MassHashConfig
from masshash.core.config_loaders import expand_env_vars, load_config
from masshash.core.digest import sha1_hex
from masshash.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from MASSHASH_* variables and a local masshash.yaml."""
    for name in (
        "MASSHASH_WORKERS",
        "MASSHASH_ALGORITHM",
        "MASSHASH_TIMEOUT_SEC",
        "MASSHASH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestModels:
    """Tests for the pydantic models."""

    def test_defaults(self):
        """Test zero-config defaults."""
        config = MassHashConfig()

        assert config.hashing.workers is None
        assert config.hashing.algorithm == "sha1"
        assert config.hashing.timeout_sec is None
        assert config.hashing.extensions == []
        assert config.logging.level == "INFO"

    def test_extensions_normalized(self):
        """Test that extensions gain a dot and are lowercased."""
        config = HashingConfig(extensions=["PAK", ".Png"])

        assert config.extensions == [".pak", ".png"]

    def test_unknown_algorithm(self):
        """Test that unknown algorithms fail validation."""
        with pytest.raises(ValidationError):
            HashingConfig(algorithm="md17")

    def test_non_positive_timeout(self):
        """Test that timeouts must be positive."""
        with pytest.raises(ValidationError):
            HashingConfig(timeout_sec=0)

    def test_log_level_uppercased(self):
        """Test that log levels are normalized."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_log_level(self):
        """Test that unknown log levels fail validation."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


class TestToOptions:
    """Tests for MassHashConfig.to_options."""

    def test_defaults(self):
        """Test options built from defaults."""
        options = MassHashConfig().to_options()

        assert options.workers is None
        assert options.predicate is None
        assert options.digest is sha1_hex

    def test_extension_predicate(self):
        """Test that extensions become a suffix filter."""
        config = MassHashConfig(hashing=HashingConfig(extensions=["pak"]))

        predicate = config.to_options().predicate

        assert predicate(Path("mods/a.PAK"))
        assert not predicate(Path("mods/a.txt"))

    def test_predicates_combined(self):
        """Test that an explicit predicate is ANDed with the suffix filter."""
        config = MassHashConfig(hashing=HashingConfig(extensions=[".pak"]))

        predicate = config.to_options(
            predicate=lambda path: not path.name.startswith("_")
        ).predicate

        assert predicate(Path("a.pak"))
        assert not predicate(Path("_a.pak"))
        assert not predicate(Path("a.txt"))

    def test_algorithm_and_workers(self):
        """Test that hashing settings flow into the options."""
        config = MassHashConfig(
            hashing=HashingConfig(workers=3, algorithm="sha256", timeout_sec=5)
        )

        options = config.to_options()

        assert options.workers == 3
        assert options.timeout_sec == 5
        assert len(options.digest(b"test")) == 64


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_file(self):
        """Test that defaults are used without a config file."""
        assert load_config() == MassHashConfig()

    def test_explicit_file(self, tmp_path):
        """Test loading an explicit YAML file."""
        path = tmp_path / "custom.yaml"
        path.write_text("hashing:\n  workers: 2\n  extensions: [png]\n")

        config = load_config(path)

        assert config.hashing.workers == 2
        assert config.hashing.extensions == [".png"]

    def test_default_file_in_cwd(self, tmp_path):
        """Test that masshash.yaml in the working directory is picked up."""
        (tmp_path / "masshash.yaml").write_text("logging:\n  level: debug\n")

        assert load_config().logging.level == "DEBUG"

    def test_missing_explicit_file(self, tmp_path):
        """Test that a missing explicit file is an error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test that malformed YAML is a ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("hashing: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        """Test that a top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        """Test that validation errors become ConfigurationError."""
        path = tmp_path / "invalid.yaml"
        path.write_text("hashing:\n  algorithm: nope\n")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(path)

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        """Test ${VAR} and ${VAR:default} references."""
        monkeypatch.setenv("HASH_ALGO", "sha256")
        path = tmp_path / "env.yaml"
        path.write_text(
            "hashing:\n  algorithm: ${HASH_ALGO}\n"
            "logging:\n  level: ${UNSET_LEVEL_VAR:warning}\n"
        )

        config = load_config(path)

        assert config.hashing.algorithm == "sha256"
        assert config.logging.level == "WARNING"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Test that MASSHASH_* variables win over file values."""
        path = tmp_path / "file.yaml"
        path.write_text("hashing:\n  workers: 2\n")
        monkeypatch.setenv("MASSHASH_WORKERS", "6")
        monkeypatch.setenv("MASSHASH_TIMEOUT_SEC", "1.5")

        config = load_config(path)

        assert config.hashing.workers == 6
        assert config.hashing.timeout_sec == 1.5

    def test_invalid_env_override(self, monkeypatch):
        """Test that a bad override value is a ConfigurationError."""
        monkeypatch.setenv("MASSHASH_WORKERS", "many")

        with pytest.raises(ConfigurationError):
            load_config()


class TestExpandEnvVars:
    """Tests for expand_env_vars."""

    def test_nested(self, monkeypatch):
        """Test expansion inside dicts and lists."""
        monkeypatch.setenv("EXT", ".pak")

        result = expand_env_vars({"a": ["${EXT}", 3], "b": {"c": "x${EXT}"}})

        assert result == {"a": [".pak", 3], "b": {"c": "x.pak"}}

    def test_missing_without_default(self, monkeypatch):
        """Test that unset variables without default expand to empty."""
        monkeypatch.delenv("SURELY_UNSET_VAR", raising=False)

        assert expand_env_vars("${SURELY_UNSET_VAR}") == ""
