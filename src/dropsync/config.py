from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .file_filter import FileFilter
from .models import AppConfig
from .text_utils import normalize_key, same_key

CONFIG_FILENAME = "dropsync.toml"
DEFAULT_DROPBOX_DIRNAME = "Dropbox"


class ConfigError(ValueError):
    """The configuration file is missing a key or has the wrong shape."""


class PathNotFoundError(FileNotFoundError):
    pass


class UnknownAppError(KeyError):
    def __str__(self) -> str:
        return f"No app named '{self.args[0]}' is configured."


def ensure_path_exists(path: Path) -> None:
    if not path.exists():
        raise PathNotFoundError(f"Path '{path}' does not exist!")


def validate(app: AppConfig) -> None:
    ensure_path_exists(app.path)
    ensure_path_exists(app.dropbox_path)


def default_dropbox_dir(home: Path | None = None) -> Path:
    return (home or Path.home()) / DEFAULT_DROPBOX_DIRNAME


def normalize_path_slashes(path: str) -> str:
    return path.replace("/", os.sep)


def _lookup(table: Mapping[str, Any], key: str) -> Any:
    for candidate, value in table.items():
        if same_key(candidate, key):
            return value
    return None


def _host_table(app_table: Mapping[str, Any], hostname: str) -> Mapping[str, Any] | None:
    value = _lookup(app_table, hostname)
    return value if isinstance(value, dict) else None


def _get_optional(
    app_table: Mapping[str, Any],
    app_name: str,
    hostname: str,
    key: str,
    expected: type,
) -> Any:
    host_table = _host_table(app_table, hostname)
    sources = [host_table, app_table] if host_table is not None else [app_table]
    for source in sources:
        value = _lookup(source, key)
        if value is None:
            continue
        if not isinstance(value, expected):
            raise ConfigError(
                f"Config key '{key}' for app '{app_name}' must be a "
                f"{expected.__name__}, got {type(value).__name__}."
            )
        return value
    return None


def _get_required_str(
    app_table: Mapping[str, Any], app_name: str, hostname: str, key: str
) -> str:
    value = _get_optional(app_table, app_name, hostname, key, str)
    if value is None:
        raise ConfigError(
            f"Unable to find config key '{key}' for app '{app_name}' and hostname '{hostname}'!"
        )
    return value


def _app_config(
    name: str, app_table: Mapping[str, Any], hostname: str, root_dropbox_path: Path
) -> AppConfig:
    path = Path(_get_required_str(app_table, name, hostname, "path")).expanduser()
    rel_dropbox_path = normalize_path_slashes(
        _get_required_str(app_table, name, hostname, "dropbox_path")
    )
    disabled = _get_optional(app_table, name, hostname, "disabled", bool) or False

    play_root_text = _get_optional(app_table, name, hostname, "play_root_path", str)
    play_root_path = Path(play_root_text).expanduser() if play_root_text else None
    play_path_text = _get_optional(app_table, name, hostname, "play_path", str)
    play_path = None
    if play_path_text:
        play_path = Path(normalize_path_slashes(play_path_text))
        if play_root_path is not None:
            play_path = play_root_path / play_path

    include = _get_optional(app_table, name, hostname, "include", str)

    return AppConfig(
        name=name,
        path=path,
        dropbox_path=root_dropbox_path / rel_dropbox_path,
        disabled=disabled,
        play_path=play_path,
        play_watch_dir=play_root_path,
        file_filter=FileFilter.from_pattern(include),
    )


def load_config(
    hostname: str, config_toml: str, root_dropbox_path: Path
) -> dict[str, AppConfig]:
    """Parse the TOML text into one AppConfig per top-level app table.

    Any key may be overridden for a single machine with a nested table named
    after the host, e.g. `[my_game.my_laptop]`.
    """
    try:
        data = tomllib.loads(config_toml)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid configuration TOML: {exc}") from exc

    result: dict[str, AppConfig] = {}
    for name, app_table in data.items():
        if not isinstance(app_table, dict):
            raise ConfigError(
                f"Config entry '{name}' should be a table of app settings!"
            )
        result[name] = _app_config(name, app_table, hostname, root_dropbox_path)
    return result


def load_config_from_dropbox_dir(
    hostname: str, root_dropbox_path: Path
) -> dict[str, AppConfig]:
    cfg_file = root_dropbox_path / CONFIG_FILENAME
    ensure_path_exists(cfg_file)
    try:
        text = cfg_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{cfg_file} is not valid UTF-8: {exc}") from exc
    return load_config(hostname, text, root_dropbox_path)


def find_app(configs: Mapping[str, AppConfig], name: str) -> AppConfig:
    wanted = normalize_key(name)
    for app_name, app in configs.items():
        if normalize_key(app_name) == wanted:
            return app
    raise UnknownAppError(name)
