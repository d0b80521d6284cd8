"""Configuration loading for extwatch.

Settings are layered, lowest precedence first: built-in defaults, the
``[extwatch]`` table of an optional TOML file, ``EXTWATCH_*`` environment
variables, then explicit overrides (the CLI flags).
"""

import json
import logging
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from extwatch_core.errors import ConfigError, ManifestError
from extwatch_core.models import ExtensionTarget
from extwatch_core.watchers import DEFAULT_IGNORE_DIRS, WatchRootConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "extwatch.toml"
DEFAULT_BROWSER_URL = "http://localhost:9222"
DEFAULT_WATCH_PATHS = ["src", "extension"]
DEFAULT_BUILD_COMMAND = ["npm", "run", "build"]
DEFAULT_MANIFEST = "extension/manifest.json"
DEFAULT_EXTENSION_NAME = "Extension"
DEFAULT_DEBOUNCE_MS = 300

ENV_BROWSER_URL = "EXTWATCH_DEVTOOLS_URL"
ENV_EXTENSION_ID = "EXTWATCH_EXTENSION_ID"
ENV_WATCH_PATHS = "EXTWATCH_WATCH_PATHS"
ENV_DEBOUNCE_MS = "EXTWATCH_RELOAD_DEBOUNCE_MS"
ENV_BUILD_COMMAND = "EXTWATCH_BUILD_COMMAND"


@dataclass
class ExtWatchConfig:
    """Resolved settings for one watch session."""

    project_root: Path = field(default_factory=Path.cwd)
    """Build working directory; watch paths and the manifest are relative to it."""

    browser_url: str = DEFAULT_BROWSER_URL
    """Remote debugging endpoint of the browser."""

    extension_id: str | None = None
    """Explicit extension id, takes precedence over the manifest name."""

    watch_paths: list[str] = field(default_factory=lambda: list(DEFAULT_WATCH_PATHS))
    """Roots to watch, relative to ``project_root``."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    """Quiet period before a rebuild is triggered."""

    build_command: list[str] = field(default_factory=lambda: list(DEFAULT_BUILD_COMMAND))
    """Build program followed by its arguments."""

    manifest: str = DEFAULT_MANIFEST
    """Extension manifest path, relative to ``project_root``."""

    default_name: str = DEFAULT_EXTENSION_NAME
    """Display name used when the manifest has no ``name``."""

    ignore_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    """Directory names never reported as changes."""

    initial_build: bool = True
    """Run one cycle right after the watch starts."""

    @property
    def manifest_path(self) -> Path:
        return self.project_root / self.manifest

    @property
    def watch_roots(self) -> list[Path]:
        return [(self.project_root / p).resolve() for p in self.watch_paths]

    def watch_root_configs(self) -> list[WatchRootConfig]:
        return [WatchRootConfig(dir=root, ignore_dirs=list(self.ignore_dirs)) for root in self.watch_roots]


def split_list(value: str | list[str] | None) -> list[str]:
    """Split a comma-separated string (or clean a list), dropping blanks."""
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    return [str(part).strip() for part in parts if str(part).strip()]


def parse_command(value: str | list[str]) -> list[str]:
    """Parse a build command given as a shell-style string or an argv list."""
    argv = shlex.split(value) if isinstance(value, str) else [str(v) for v in value]
    if not argv:
        raise ConfigError("Build command must not be empty")
    return argv


def parse_debounce(value: Any) -> int:
    try:
        debounce = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Debounce must be an integer number of milliseconds, got {value!r}") from e
    if debounce < 0:
        raise ConfigError(f"Debounce must not be negative, got {debounce}")
    return debounce


def _normalize(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce raw values (TOML, env or CLI) into ExtWatchConfig field types."""
    known = {f.name for f in fields(ExtWatchConfig)}
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        if key in ("watch_paths", "ignore_dirs"):
            value = split_list(value)
            if not value:
                continue
        elif key == "build_command":
            value = parse_command(value)
        elif key == "debounce_ms":
            value = parse_debounce(value)
        elif key == "project_root":
            value = Path(value).resolve()
        elif key in ("extension_id", "browser_url"):
            value = str(value).strip() or None
            if value is None:
                continue
        values[key] = value
    return values


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read the ``[extwatch]`` table of a TOML file.

    Args:
        path: Path to TOML config file

    Returns:
        Raw settings (empty if the table is absent)

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    table = raw.get("extwatch", {})
    if not isinstance(table, dict):
        raise ConfigError(f"[extwatch] in {path} must be a table")
    return dict(table)


def read_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect settings from ``EXTWATCH_*`` environment variables."""
    raw: dict[str, Any] = {
        "browser_url": env.get(ENV_BROWSER_URL),
        "extension_id": env.get(ENV_EXTENSION_ID),
        "watch_paths": env.get(ENV_WATCH_PATHS),
        "debounce_ms": env.get(ENV_DEBOUNCE_MS) or None,
        "build_command": env.get(ENV_BUILD_COMMAND) or None,
    }
    return {k: v for k, v in raw.items() if v is not None}


def load_config(
    project_root: str | Path | None = None,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ExtWatchConfig:
    """Load configuration from all sources.

    Args:
        project_root: Project directory (defaults to the current directory)
        config_path: Explicit TOML file. If omitted, ``extwatch.toml`` in the
            project root is used when it exists.
        env: Environment mapping (defaults to ``os.environ``)
        overrides: Highest-precedence values, ``None`` entries are ignored

    Returns:
        Resolved ExtWatchConfig

    Raises:
        ConfigError: If a source is unreadable or holds an invalid value
    """
    root = Path(project_root).resolve() if project_root else Path.cwd()
    config = ExtWatchConfig(project_root=root)

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = root / DEFAULT_CONFIG_FILE

    if path.exists():
        logger.debug(f"Loading config from {path}")
        config = replace(config, **_normalize(read_config_file(path)))

    config = replace(config, **_normalize(read_env(os.environ if env is None else env)))

    if overrides:
        config = replace(config, **_normalize(overrides))

    return config


def read_extension_name(manifest_path: str | Path, default: str = DEFAULT_EXTENSION_NAME) -> str:
    """Read the display name from an extension manifest.

    Args:
        manifest_path: Path to manifest.json
        default: Name to use when the manifest has no ``name`` field

    Returns:
        Display name

    Raises:
        ManifestError: If the manifest is missing or not valid JSON
    """
    manifest_path = Path(manifest_path)
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ManifestError(f"Cannot read extension manifest {manifest_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in extension manifest {manifest_path}: {e}") from e

    if not isinstance(manifest, dict):
        raise ManifestError(f"Extension manifest {manifest_path} must be a JSON object")

    name = manifest.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return default


def resolve_target(config: ExtWatchConfig) -> ExtensionTarget:
    """Build the ExtensionTarget for a session.

    The manifest is always read, so a missing manifest aborts startup even
    when an explicit id is configured.
    """
    name = read_extension_name(config.manifest_path, config.default_name)
    return ExtensionTarget(display_name=name, identifier=config.extension_id or None)
