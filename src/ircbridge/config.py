"""Configuration: YAML + env overlay."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ircbridge.errors import ConfigurationError
from ircbridge.irc.models import ConnectionParams

DEFAULT_PORT = 6667
DEFAULT_MODE = "+B"

# env var -> (section, key, converter)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "IRC_HOSTNAME": ("host", "hostname", str),
    "IRC_PORT": ("host", "port", int),
    "IRC_SSL": ("host", "ssl", bool),
    "IRC_SKIP_CERT_VALIDATION": ("host", "skip_cert_validation", bool),
    "IRC_USERNAME": ("irc", "username", str),
    "IRC_NICKNAME": ("irc", "nickname", str),
    "IRC_CHANNEL": ("irc", "channel", str),
}


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Nested dict of values set through IRC_* environment variables."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for name, (section, key, kind) in _ENV_OVERRIDES.items():
        raw = environ.get(name)
        if not raw:
            continue
        try:
            value: object = _as_bool(raw) if kind is bool else kind(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid value for {name}: {raw!r}", original_error=exc) from exc
        overrides.setdefault(section, {})[key] = value
    return overrides


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}", original_error=exc) from exc
    return data if isinstance(data, dict) else {}


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML and overlay IRC_* environment values.

    Loads .env via python-dotenv when present (cwd).
    """
    from dotenv import load_dotenv

    load_dotenv()
    return _deep_update(load_config(path), _env_overrides())


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}

    def reload(self, data: dict[str, Any]) -> None:
        """Replace config data."""
        self._data = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'host.hostname')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    @property
    def hostname(self) -> str | None:
        value = self.get("host.hostname")
        return str(value) if value else None

    @property
    def port(self) -> int:
        try:
            return int(self.get("host.port", DEFAULT_PORT))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"host.port must be an integer, got {self.get('host.port')!r}") from exc

    @property
    def use_tls(self) -> bool:
        return _as_bool(self.get("host.ssl", False))

    @property
    def skip_cert_validation(self) -> bool:
        """Accept any server certificate. Only for local/test servers."""
        return _as_bool(self.get("host.skip_cert_validation", False))

    @property
    def nickname(self) -> str | None:
        value = self.get("irc.nickname")
        return str(value) if value else None

    @property
    def username(self) -> str | None:
        """Defaults to the nickname."""
        value = self.get("irc.username")
        return str(value) if value else self.nickname

    @property
    def channel(self) -> str | None:
        value = self.get("irc.channel")
        return str(value) if value else None

    @property
    def mode(self) -> str | None:
        """User mode set on welcome; empty string disables it."""
        value = self.get("irc.mode", DEFAULT_MODE)
        return str(value) if value else None

    @property
    def connect_commands(self) -> list[str]:
        """Raw lines sent after registration, before joining the channel."""
        commands = self.get("irc.connect_commands")
        return [str(c) for c in commands] if isinstance(commands, list) else []

    @property
    def log_raw(self) -> bool:
        return _as_bool(self.get("irc.log_raw", False))

    @property
    def strict(self) -> bool:
        """Drop the connection on the first malformed server line."""
        return _as_bool(self.get("irc.strict", False))

    def connection_params(self) -> ConnectionParams:
        """Validated ConnectionParams; raises ConfigurationError on missing keys."""
        missing = [
            key
            for key, value in (("host.hostname", self.hostname), ("irc.nickname", self.nickname))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required config: {', '.join(missing)}",
                code="missing_keys",
                details={"missing": missing},
            )
        port = self.port
        if not 0 < port < 65536:
            raise ConfigurationError(f"host.port out of range: {port}")
        return ConnectionParams(
            host=self.hostname or "",
            port=port,
            username=self.username or "",
            nickname=self.nickname or "",
            use_tls=self.use_tls,
            skip_cert_validation=self.skip_cert_validation,
        )


# Global config instance (set by __main__)
cfg: Config = Config({})
