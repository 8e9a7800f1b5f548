from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from girdeps.prober import DEFAULT_ESCALATORS
from girdeps.terminal import DEFAULT_TERMINALS, TERMINALS

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


@dataclass
class CatalogConfig:
    """Extra catalog files merged over the built-in one."""

    extra: list[str] = field(default_factory=list)


@dataclass
class InstallConfig:
    """Installer tool discovery settings."""

    escalators: list[str] = field(default_factory=lambda: list(DEFAULT_ESCALATORS))
    use_packagekit: bool = True


@dataclass
class TerminalConfig:
    """Terminal emulators to try, in order."""

    preference: list[str] = field(default_factory=lambda: list(DEFAULT_TERMINALS))


@dataclass
class PlatformConfig:
    """Where OS identification is read from (None for the standard paths)."""

    os_release: str | None = None


@dataclass
class DebugConfig:
    """Debug mode settings."""

    enabled: bool = False
    trace: bool = False
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level configuration aggregating all subsections."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    install: InstallConfig = field(default_factory=InstallConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    platform: PlatformConfig = field(default_factory=PlatformConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _section(raw: dict, name: str) -> dict:
    # `or {}` fallback handles YAML null values for optional sections
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _string_list(section: str, key: str, value: object) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigError(f"{section}.{key} must be a list of strings")
    return list(value)


def _bool(section: str, key: str, raw: dict, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be true or false")
    return value


def load_config(path: str | None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Every section is optional; omitted values keep their defaults.
    Relative catalog paths are resolved against the config file's
    directory.

    Args:
        path: Filesystem path to the YAML file, or None for defaults.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ConfigError: If the file does not exist, is not valid YAML, or
            holds values of the wrong type.
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping")

    catalog_raw = _section(raw, "catalog")
    install_raw = _section(raw, "install")
    terminal_raw = _section(raw, "terminal")
    platform_raw = _section(raw, "platform")
    debug_raw = _section(raw, "debug")

    extra = [
        p if Path(p).is_absolute() else str(config_path.parent / p)
        for p in _string_list("catalog", "extra", catalog_raw.get("extra", []))
    ]

    escalators = _string_list(
        "install", "escalators", install_raw.get("escalators", list(DEFAULT_ESCALATORS)),
    )
    if not escalators:
        raise ConfigError("install.escalators must not be empty")

    preference = _string_list(
        "terminal", "preference", terminal_raw.get("preference", list(DEFAULT_TERMINALS)),
    )
    unknown = [t for t in preference if t not in TERMINALS]
    if unknown:
        raise ConfigError(
            f"terminal.preference has unsupported terminals {unknown}; known: {list(TERMINALS)}"
        )

    os_release = platform_raw.get("os_release")
    if os_release is not None and not isinstance(os_release, str):
        raise ConfigError("platform.os_release must be a path")

    logger.debug("Loaded config from %s", path)

    return AppConfig(
        catalog=CatalogConfig(extra=extra),
        install=InstallConfig(
            escalators=escalators,
            use_packagekit=_bool("install", "use_packagekit", install_raw, True),
        ),
        terminal=TerminalConfig(preference=preference),
        platform=PlatformConfig(os_release=os_release),
        debug=DebugConfig(
            enabled=_bool("debug", "enabled", debug_raw, False),
            trace=_bool("debug", "trace", debug_raw, False),
            verbose=_bool("debug", "verbose", debug_raw, False),
        ),
    )
