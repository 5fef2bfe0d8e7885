"""Config loading for the recovery service.

Reads `.recovery/config.yaml` (or `~/.recovery/config.yaml`).
Raises SystemExit on parse errors or missing `version` field.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. RECOVERY_CONFIG environment variable (if set)
  3. `.recovery/config.yaml` (working directory — for development)
  4. `~/.recovery/config.yaml` (home directory — for production deployments)

Example file:

    version: 1
    recovery:
      content_type: application/json
      response_status: 500
      stack_size: 8192
      expose_trace: false
    server:
      host: 127.0.0.1
      port: 8080

Environment variable overrides (applied after the file):
  RECOVERY_PORT            — overrides server.port
  RECOVERY_RESPONSE_STATUS — overrides recovery.response_status
  RECOVERY_STACK_SIZE      — overrides recovery.stack_size
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional

import yaml

from recovery import policy
from recovery.constants import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_RESPONSE_STATUS,
    MINIMUM_STACK_SIZE,
)
from recovery.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# Default config search paths (RECOVERY_CONFIG env var prepended at runtime)
DEFAULT_CONFIG_PATHS = [
    ".recovery/config.yaml",
    os.path.expanduser("~/.recovery/config.yaml"),
]

# Env var → (section, field) for integer overrides
_INT_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RECOVERY_PORT": ("server", "port"),
    "RECOVERY_RESPONSE_STATUS": ("recovery", "response_status"),
    "RECOVERY_STACK_SIZE": ("recovery", "stack_size"),
}


def _fail(msg: str) -> NoReturn:
    print(msg, file=sys.stderr)
    raise SystemExit(1)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class RecoverySettings:
    """Policy values for the panic recovery middleware.

    stack_size values at or below MINIMUM_STACK_SIZE are accepted here but
    have no effect once turned into options (the middleware keeps its floor).
    expose_trace swaps the default handler for one that returns the
    diagnostic in the response body. Development only.
    """

    content_type: str = DEFAULT_CONTENT_TYPE
    response_status: int = DEFAULT_RESPONSE_STATUS
    stack_size: int = MINIMUM_STACK_SIZE
    expose_trace: bool = False

    def to_options(self, log: Optional[policy.Logger] = None) -> list[policy.Option]:
        """Translate the settings into middleware options.

        Args:
            log: Diagnostic sink to install; the policy default when None.
        """
        options = [
            policy.content_type(self.content_type),
            policy.response_status(self.response_status),
            policy.stack_size(self.stack_size),
        ]
        if log is not None:
            options.append(policy.logger(log))
        if self.expose_trace:
            options.append(policy.error_handler(policy.json_error_handler))
        return options


@dataclass
class ServerConfig:
    """Uvicorn binding configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class Config:
    """Root configuration object populated from .recovery/config.yaml.

    All fields have safe defaults — the service can start without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    recovery: RecoverySettings = field(default_factory=RecoverySettings)
    server: ServerConfig = field(default_factory=ServerConfig)
    path: Optional[str] = None

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On a section that is not a mapping or a value of the wrong type.
        """
        recovery_raw = _section(raw, "recovery")
        recovery = RecoverySettings(
            content_type=_typed(recovery_raw, "recovery.content_type", DEFAULT_CONTENT_TYPE, str),
            response_status=_status(
                _typed(recovery_raw, "recovery.response_status", DEFAULT_RESPONSE_STATUS, int)
            ),
            stack_size=_typed(recovery_raw, "recovery.stack_size", MINIMUM_STACK_SIZE, int),
            expose_trace=_typed(recovery_raw, "recovery.expose_trace", False, bool),
        )

        server_raw = _section(raw, "server")
        server = ServerConfig(
            host=_typed(server_raw, "server.host", "127.0.0.1", str),
            port=_typed(server_raw, "server.port", 8080, int),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            recovery=recovery,
            server=server,
            path=path,
        )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        _fail(f"CONFIG ERROR: '{name}' must be a mapping, got {type(value).__name__}.")
    return value


def _typed(section: dict, dotted: str, default: Any, kind: type) -> Any:
    value = section.get(dotted.rsplit(".", 1)[-1], default)
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        _fail(
            f"CONFIG ERROR: {dotted} must be of type {kind.__name__}, "
            f"got {value!r}."
        )
    return value


def _status(value: int) -> int:
    if not 100 <= value <= 599:
        _fail(f"CONFIG ERROR: recovery.response_status must be a valid HTTP status, got {value}.")
    return value


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate the recovery service configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).
    Env var overrides are applied in both cases.

    Raises:
        SystemExit(1): On YAML parse error, missing or unsupported ``version``,
                       wrongly-typed values, or a non-integer env override.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("RECOVERY_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.recovery.stack_size < MINIMUM_STACK_SIZE:
        logger.warning(
            "recovery.stack_size is below the minimum — ignored",
            stack_size=config.recovery.stack_size,
            minimum=MINIMUM_STACK_SIZE,
        )
    if config.recovery.expose_trace:
        logger.warning(
            "recovery.expose_trace is enabled — tracebacks are sent to clients. "
            "Never enable this in production."
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        response_status=config.recovery.response_status,
        stack_size=config.recovery.stack_size,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply integer environment variable overrides to a Config in-place.

    Raises:
        SystemExit(1): If an override is set but not a valid integer.
    """
    for env_name, (section, name) in _INT_ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value is None:
            continue
        try:
            setattr(getattr(config, section), name, int(env_value))
        except ValueError:
            _fail(
                f"CONFIG ERROR: {env_name} environment variable is not a valid "
                f"integer: '{env_value}'"
            )
    _status(config.recovery.response_status)
