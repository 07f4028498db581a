"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.reqpipe/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir` and :func:`get_data_dir`.
* **Global config** -- one :class:`~reqpipe.models.PipelineConfig` JSON
  file in the config directory.
* **Project config** -- an optional ``./reqpipe.json`` holding a partial
  config that is deep-merged over the global one.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project config and global config.

File writes use a temp-file-then-rename strategy (:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from reqpipe.exceptions import ConfigError
from reqpipe.models import PipelineConfig

_APP_NAME = "reqpipe"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "reqpipe.json"

ENV_BASE_URL = "REQPIPE_BASE_URL"
ENV_TIMEOUT = "REQPIPE_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def _ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/reqpipe/`` (default ``~/.config/reqpipe/``).
    On macOS/Windows: ``~/.reqpipe/``.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME)
    return _ensure(_fallback_base_dir())


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the durable response store. Its contents can be deleted at any
    time.

    On Linux/BSD: ``$XDG_CACHE_HOME/reqpipe/`` (default ``~/.cache/reqpipe/``).
    On macOS/Windows: ``~/.reqpipe/cache/``.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME)
    return _ensure(_fallback_base_dir() / "cache")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/reqpipe/`` (default ``~/.local/share/reqpipe/``).
    On macOS/Windows: ``~/.reqpipe/data/``.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME)
    return _ensure(_fallback_base_dir() / "data")


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the target's directory so ``os.replace``
    is an atomic rename on POSIX. On failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


def load_config() -> PipelineConfig:
    """Load the global configuration.

    Returns:
        The stored :class:`~reqpipe.models.PipelineConfig`, or the defaults
        when no file exists.

    Raises:
        ConfigError: If the file holds invalid JSON or fails validation.
    """
    path = config_path()
    if not path.is_file():
        return PipelineConfig()
    data = _read_json(path, "config")
    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: PipelineConfig) -> None:
    """Persist *config* atomically as the global configuration."""
    data = config.model_dump(mode="json")
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load the partial project config from ``./reqpipe.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> PipelineConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_format``)
        2. Environment variables (``REQPIPE_BASE_URL``, ``REQPIPE_TIMEOUT``)
        3. Project config (``./reqpipe.json``)
        4. User config (``~/.config/reqpipe/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is invalid.
    """
    data = load_config().model_dump(mode="json")

    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        data["base_url"] = env_base_url
    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            data["timeout"] = float(env_timeout)
        except ValueError as exc:
            raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {env_timeout!r}") from exc

    if cli_base_url is not None:
        data["base_url"] = cli_base_url
    if cli_format is not None:
        data.setdefault("output", {})["format"] = cli_format

    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid effective configuration: {exc}") from exc
