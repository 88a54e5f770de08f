"""Configuration helpers for the spxp CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spxp_cli.store import IdentityContext, validate_identity_name

DEFAULT_CONFIG_PATH = Path.home() / ".spxp" / "config.toml"
DEFAULT_IDENTITIES_DIR = Path.home() / ".spxp" / "identities"
DEFAULT_IDENTITY = "default"
IDENTITIES_DIR_ENV_VAR = "SPXP_IDENTITIES_DIR"
IDENTITY_ENV_VAR = "SPXP_IDENTITY"


@dataclass(frozen=True)
class CLIConfig:
    identities_dir: str = str(DEFAULT_IDENTITIES_DIR)
    default_identity: str = DEFAULT_IDENTITY
    timeout: float = 10.0
    retries: int = 0
    device_id: str | None = None


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _to_positive_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number") from exc
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be > 0")
    return parsed


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{field_name} must be an integer >= 0")
    return value


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        parsed = _load_toml(config_path)
    else:
        parsed = {}
    section = parsed.get("cli")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[cli] must be a table")

    env_identities_dir = os.getenv(IDENTITIES_DIR_ENV_VAR)
    configured_identities_dir = str(
        source.get("identities_dir", DEFAULT_IDENTITIES_DIR)
    ).strip()
    identities_dir = (
        env_identities_dir.strip() if env_identities_dir else configured_identities_dir
    )
    if not identities_dir:
        raise ConfigError("identities_dir must not be empty")
    identities_dir = str(Path(identities_dir).expanduser())

    env_identity = os.getenv(IDENTITY_ENV_VAR)
    configured_identity = str(source.get("default_identity", DEFAULT_IDENTITY)).strip()
    default_identity = env_identity.strip() if env_identity else configured_identity
    if not default_identity:
        raise ConfigError("default_identity must not be empty")

    timeout = _to_positive_float(source.get("timeout", 10.0), "timeout")
    retries = _to_non_negative_int(source.get("retries", 0), "retries")

    device_id_raw = source.get("device_id")
    if device_id_raw is None:
        device_id = None
    else:
        device_id = str(device_id_raw).strip() or None

    return CLIConfig(
        identities_dir=identities_dir,
        default_identity=default_identity,
        timeout=timeout,
        retries=retries,
        device_id=device_id,
    )


def resolve_identity_context(config: CLIConfig, identity: str | None = None) -> IdentityContext:
    name = validate_identity_name(identity or config.default_identity)
    return IdentityContext(name=name, identities_dir=Path(config.identities_dir))
