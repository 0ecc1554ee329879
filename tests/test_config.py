"""Tests for tally.config."""

import stat
from pathlib import Path

import pytest

from tally.config import (
    Config,
    ConfigError,
    create_default_config,
    get_config_path,
    load_config,
    parse_config,
    read_config,
    resolve_path,
)


class TestParseConfig:
    """Tests for parse_config."""

    def test_empty_table_gives_defaults(self) -> None:
        """Should fall back to defaults for every missing key."""
        config = parse_config({})

        assert config.server.port == 8080
        assert config.server.read_timeout == 15.0
        assert config.logging.level == "INFO"
        assert config.database.migration_dir is None

    def test_reads_values(self, tmp_path: Path) -> None:
        """Should read every section."""
        config = parse_config(
            {
                "server": {"port": 9000, "read_timeout": 5, "write_timeout": 2.5},
                "database": {"path": str(tmp_path / "t.db"), "host": "db", "port": 5432, "sslmode": "require"},
                "logging": {"level": "debug", "json": True},
            }
        )

        assert config.server.port == 9000
        assert config.server.read_timeout == 5.0
        assert config.database.path == tmp_path / "t.db"
        assert config.database.sslmode == "require"
        assert config.logging.level == "DEBUG"
        assert config.logging.json

    def test_reports_every_problem(self) -> None:
        """Should collect all violations into one error."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config(
                {
                    "server": {"port": 80, "read_timeout": 0},
                    "database": {"sslmode": "sometimes", "name": ""},
                    "logging": {"level": "LOUD"},
                }
            )

        problems = exc_info.value.problems
        assert len(problems) == 5
        assert any("server.port" in problem for problem in problems)
        assert any("timeouts" in problem for problem in problems)
        assert any("sslmode" in problem for problem in problems)
        assert any("database.name must not be empty" in problem for problem in problems)
        assert any("logging.level" in problem for problem in problems)

    def test_wrong_types(self) -> None:
        """Should reject values of the wrong type, booleans included."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"server": {"port": True}, "logging": {"json": "yes"}, "gpt": "key"})

        assert exc_info.value.problems == [
            "server.port has the wrong type",
            "[gpt] must be a table",
            "logging.json has the wrong type",
        ]

    def test_secrets_not_in_repr(self) -> None:
        """Should keep the password and api key out of repr."""
        config = parse_config({"database": {"password": "hunter2"}, "gpt": {"api_key": "sk-123"}})

        assert "hunter2" not in repr(config)
        assert "sk-123" not in repr(config)


class TestResolvePath:
    """Tests for resolve_path."""

    def test_plain_path(self, tmp_path: Path) -> None:
        """Should accept a plain filesystem path."""
        assert resolve_path(str(tmp_path / "c.toml")) == tmp_path / "c.toml"

    def test_file_uri(self) -> None:
        """Should accept a file:// URI."""
        assert resolve_path("file:///etc/tally/config%20main.toml") == Path("/etc/tally/config main.toml")

    def test_other_scheme(self) -> None:
        """Should reject remote locations."""
        with pytest.raises(ConfigError, match="Unsupported config location scheme 'https'"):
            resolve_path("https://example.org/config.toml")


class TestConfigFile:
    """Tests for creating, reading and loading the config file."""

    def test_default_location(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should place the config under XDG_CONFIG_HOME."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_path() == tmp_path / "tally" / "config.toml"

    def test_create_default(self, tmp_path: Path) -> None:
        """Should write a readable default config only its owner can access."""
        config_path = tmp_path / "tally" / "config.toml"

        create_default_config(config_path)

        assert stat.S_IMODE(config_path.stat().st_mode) == 0o600
        assert read_config(config_path)["server"]["port"] == 8080
        assert load_config(config_path).logging.level == "INFO"

    def test_missing_default_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should use defaults when the default config file doesn't exist."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert load_config() == Config()

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        """Should fail for an explicitly given file that doesn't exist."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_bad_toml(self, tmp_path: Path) -> None:
        """Should report a file that isn't TOML."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("[server\nport = ")

        with pytest.raises(ConfigError):
            load_config(f"file://{config_path}")
