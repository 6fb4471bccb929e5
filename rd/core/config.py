"""Typed defaults loaded from ``release-domains.toml``.

Every value here is a fallback: explicit CLI options and action inputs
win. The file is optional; a missing file yields ``Config()``.

Example::

    [sfp]
    bin = "sfp"
    devhub_alias = "devhub"
    wait_time = 120

    [lock]
    timeout = 120
    duration = 120

    [changelog]
    output_dir = ".sfpowerscripts/outputs"

    [process]
    max_buffer = 10485760
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "LockDefaults",
    "SfpDefaults",
    "CONFIG_FILE_NAME",
    "DEFAULT_CHANGELOG_DIR",
    "DEFAULT_MAX_BUFFER",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "release-domains.toml"

DEFAULT_SFP_BIN = "sfp"
DEFAULT_DEVHUB_ALIAS = "devhub"
DEFAULT_WAIT_TIME_MINUTES = 120
DEFAULT_LOCK_TIMEOUT_MINUTES = 120
DEFAULT_LOCK_DURATION_MINUTES = 120
DEFAULT_CHANGELOG_DIR = ".sfpowerscripts/outputs"
DEFAULT_MAX_BUFFER = 10 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class SfpDefaults:
    bin: str = DEFAULT_SFP_BIN
    devhub_alias: str = DEFAULT_DEVHUB_ALIAS
    wait_time: int = DEFAULT_WAIT_TIME_MINUTES


@dataclass(frozen=True, slots=True)
class LockDefaults:
    """Lock timings in minutes. A timeout <= 0 waits indefinitely."""

    timeout: int = DEFAULT_LOCK_TIMEOUT_MINUTES
    duration: int = DEFAULT_LOCK_DURATION_MINUTES


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    sfp: SfpDefaults = field(default_factory=SfpDefaults)
    lock: LockDefaults = field(default_factory=LockDefaults)
    changelog_dir: str = DEFAULT_CHANGELOG_DIR
    max_buffer: int = DEFAULT_MAX_BUFFER

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        sfp: StrDict = get_table(data, "sfp") or {}
        lock: StrDict = get_table(data, "lock") or {}
        changelog: StrDict = get_table(data, "changelog") or {}
        process: StrDict = get_table(data, "process") or {}

        lock_timeout = get_int(lock, "timeout")
        max_buffer = get_int(process, "max_buffer")
        if max_buffer is not None and max_buffer <= 0:
            raise ValueError("process.max_buffer must be positive")

        return cls(
            sfp=SfpDefaults(
                bin=get_str(sfp, "bin") or DEFAULT_SFP_BIN,
                devhub_alias=get_str(sfp, "devhub_alias") or DEFAULT_DEVHUB_ALIAS,
                wait_time=get_int(sfp, "wait_time") or DEFAULT_WAIT_TIME_MINUTES,
            ),
            lock=LockDefaults(
                # 0 is meaningful here (wait forever), so no `or` fallback.
                timeout=DEFAULT_LOCK_TIMEOUT_MINUTES if lock_timeout is None else lock_timeout,
                duration=get_int(lock, "duration") or DEFAULT_LOCK_DURATION_MINUTES,
            ),
            changelog_dir=get_str(changelog, "output_dir") or DEFAULT_CHANGELOG_DIR,
            max_buffer=max_buffer or DEFAULT_MAX_BUFFER,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to release-domains.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path | None) -> Result[Config, ConfigError]:
    """Load ``path`` if given, else ``./release-domains.toml`` when present.

    An explicitly requested file must exist; the implicit one is optional.
    """
    if path is not None:
        return load_config(path)

    implicit = Path.cwd() / CONFIG_FILE_NAME
    if not implicit.is_file():
        return Ok(Config())
    return load_config(implicit)
