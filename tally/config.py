"""Configuration file management for tally."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import tomli_w

from tally.store.schema import get_db_path

SSL_MODES = ("disable", "require", "verify-ca", "verify-full")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MIN_SERVER_PORT = 1024


class ConfigError(Exception):
    """Configuration is unreadable or invalid.

    Attributes:
        problems: Every violation found, one message each.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


@dataclass(frozen=True)
class ServerConfig:
    port: int = 8080
    read_timeout: float = 15.0
    write_timeout: float = 15.0
    max_header_bytes: int = 1 << 20


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the data lives.

    path is the sqlite file. The network settings are kept for deployments
    that front the file with a database server and are validated when set.
    """

    path: Path = field(default_factory=get_db_path)
    name: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    host: str | None = None
    port: int | None = None
    sslmode: str | None = None
    migration_dir: Path | None = None


@dataclass(frozen=True)
class GptConfig:
    api_key: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    gpt: GptConfig = field(default_factory=GptConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_xdg_config_home() -> Path:
    """Get XDG config directory, with fallback to ~/.config."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def get_config_path() -> Path:
    """Get the config file path (XDG compliant).

    Returns:
        Path to the config file.
    """
    return get_xdg_config_home() / "tally" / "config.toml"


def resolve_path(location: str | Path) -> Path:
    """Turn a plain path or a file:// URI into a Path.

    Raises:
        ConfigError: If location is a URI with any other scheme.
    """
    if isinstance(location, Path):
        return location.expanduser()
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ConfigError([f"Unsupported config location scheme '{parsed.scheme}' in {location}"])
    return Path(location).expanduser()


def create_default_config(config_path: Path | None = None) -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    defaults = Config()
    default_config: dict[str, Any] = {
        "server": {
            "port": defaults.server.port,
            "read_timeout": defaults.server.read_timeout,
            "write_timeout": defaults.server.write_timeout,
            "max_header_bytes": defaults.server.max_header_bytes,
        },
        "database": {"path": str(defaults.database.path)},
        "logging": {"level": defaults.logging.level, "json": defaults.logging.json},
    }

    save_config(default_config, config_path)


def read_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load the raw configuration table from a TOML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigError: If the file is not valid TOML.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as err:
            raise ConfigError([f"{config_path}: {err}"]) from err


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration dictionary.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(config_path, 0o600)


def _section(raw: dict[str, Any], name: str, problems: list[str]) -> dict[str, Any]:
    section = raw.get(name, {})
    if not isinstance(section, dict):
        problems.append(f"[{name}] must be a table")
        return {}
    return section


def _typed(section: dict[str, Any], key: str, kinds: type | tuple[type, ...], where: str, problems: list[str]) -> Any:
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, bool) and bool not in (kinds if isinstance(kinds, tuple) else (kinds,)):
        problems.append(f"{where}.{key} has the wrong type")
        return None
    if not isinstance(value, kinds):
        problems.append(f"{where}.{key} has the wrong type")
        return None
    if isinstance(value, str) and not value.strip():
        problems.append(f"{where}.{key} must not be empty")
        return None
    return value


def parse_config(raw: dict[str, Any]) -> Config:
    """Build and validate a Config from a raw configuration table.

    Raises:
        ConfigError: Listing every invalid key.
    """
    problems: list[str] = []

    server_raw = _section(raw, "server", problems)
    server_defaults = ServerConfig()
    port = _typed(server_raw, "port", int, "server", problems)
    read_timeout = _typed(server_raw, "read_timeout", (int, float), "server", problems)
    write_timeout = _typed(server_raw, "write_timeout", (int, float), "server", problems)
    max_header_bytes = _typed(server_raw, "max_header_bytes", int, "server", problems)
    server = ServerConfig(
        port=port if port is not None else server_defaults.port,
        read_timeout=float(read_timeout) if read_timeout is not None else server_defaults.read_timeout,
        write_timeout=float(write_timeout) if write_timeout is not None else server_defaults.write_timeout,
        max_header_bytes=max_header_bytes if max_header_bytes is not None else server_defaults.max_header_bytes,
    )
    if not MIN_SERVER_PORT <= server.port <= 65535:
        problems.append(f"server.port must be between {MIN_SERVER_PORT} and 65535, got {server.port}")
    if server.read_timeout <= 0 or server.write_timeout <= 0:
        problems.append("server timeouts must be positive")
    if server.max_header_bytes <= 0:
        problems.append("server.max_header_bytes must be positive")

    database_raw = _section(raw, "database", problems)
    path = _typed(database_raw, "path", str, "database", problems)
    migration_dir = _typed(database_raw, "migration_dir", str, "database", problems)
    database = DatabaseConfig(
        path=resolve_path(path) if path is not None else get_db_path(),
        name=_typed(database_raw, "name", str, "database", problems),
        username=_typed(database_raw, "username", str, "database", problems),
        password=_typed(database_raw, "password", str, "database", problems),
        host=_typed(database_raw, "host", str, "database", problems),
        port=_typed(database_raw, "port", int, "database", problems),
        sslmode=_typed(database_raw, "sslmode", str, "database", problems),
        migration_dir=resolve_path(migration_dir) if migration_dir is not None else None,
    )
    if database.port is not None and not 0 < database.port <= 65535:
        problems.append(f"database.port must be between 1 and 65535, got {database.port}")
    if database.sslmode is not None and database.sslmode not in SSL_MODES:
        problems.append(f"database.sslmode must be one of {', '.join(SSL_MODES)}, got '{database.sslmode}'")

    gpt_raw = _section(raw, "gpt", problems)
    gpt = GptConfig(api_key=_typed(gpt_raw, "api_key", str, "gpt", problems))

    logging_raw = _section(raw, "logging", problems)
    level = _typed(logging_raw, "level", str, "logging", problems)
    json_output = _typed(logging_raw, "json", bool, "logging", problems)
    logging_config = LoggingConfig(
        level=level.upper() if level is not None else "INFO",
        json=json_output if json_output is not None else False,
    )
    if logging_config.level not in LOG_LEVELS:
        problems.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got '{level}'")

    if problems:
        raise ConfigError(problems)
    return Config(server=server, database=database, gpt=gpt, logging=logging_config)


def load_config(location: str | Path | None = None) -> Config:
    """Load and validate configuration.

    Args:
        location: Path or file:// URI of the config file. If None, uses the
            default location, falling back to defaults when it doesn't exist.

    Returns:
        Validated configuration.

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist.
        ConfigError: If the configuration is invalid.
    """
    if location is None:
        config_path = get_config_path()
        if not config_path.exists():
            return Config()
    else:
        config_path = resolve_path(location)

    return parse_config(read_config(config_path))
