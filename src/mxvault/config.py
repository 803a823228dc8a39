"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the local settings of mxvault itself (not the homeserver
and user records, which live in the storage backend):

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.mxvault/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~mxvault.models.GlobalConfig`
  JSON file selecting the storage backend and transport settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the config file.

All writes, including those of :class:`~mxvault.storage.FileStorage`, go
through :func:`atomic_write` so a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from mxvault.exceptions import ConfigError
from mxvault.models import GlobalConfig

_APP_NAME = "mxvault"
_CONFIG_FILENAME = "config.json"
_STORAGE_FILENAME = "storage.json"

ENV_CONFIG = "MXVAULT_CONFIG"
"""Environment variable overriding the path of the global config file."""

ENV_STORAGE_PATH = "MXVAULT_STORAGE_PATH"
"""Environment variable overriding the path of the file storage document."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/mxvault/`` (default ``~/.config/mxvault/``).
    On macOS/Windows: ``~/.mxvault/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (storage document, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/mxvault/`` (default ``~/.local/share/mxvault/``).
    On macOS/Windows: ``~/.mxvault/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_storage_path() -> Path:
    """Default location of the file storage document."""
    return get_data_dir() / _STORAGE_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created next to *path* so that ``os.replace`` is
    an atomic rename on POSIX. When *mode* is given the permissions are
    applied before any content is written.
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
        if mode is not None:
            os.chmod(tmp_path, mode)
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


def global_config_path() -> Path:
    """Path to the global config file, honouring ``MXVAULT_CONFIG``."""
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~mxvault.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_storage_path: Optional[str] = None,
) -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_storage_path``)
        2. Environment variables (``MXVAULT_STORAGE_PATH``)
        3. Config file (``~/.config/mxvault/config.json`` or ``$MXVAULT_CONFIG``)
        4. Defaults

    An explicit storage path always selects the ``file`` backend.
    """
    config = load_global_config()

    storage_path = cli_storage_path or os.environ.get(ENV_STORAGE_PATH)
    if storage_path:
        config.storage.backend = "file"
        config.storage.path = storage_path

    if config.storage.backend == "file" and not config.storage.path:
        config.storage.path = str(default_storage_path())

    return config
