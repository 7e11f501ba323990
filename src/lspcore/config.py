from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "lspcore.toml"
DEFAULT_SERVER_NAME = "lspcore"
DEFAULT_LIVENESS_INTERVAL = 5.0
DEFAULT_WATCHED_EXTENSIONS = ("py", "pyi")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _as_positive_float(value: TomlValue, default: float | None) -> float | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _as_positive_int(value: TomlValue, default: int | None) -> int | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _characters(value: TomlValue) -> tuple[str, ...]:
    # Trigger characters include "," so they are not split like name lists.
    if isinstance(value, str):
        return tuple(value)
    if isinstance(value, (list, tuple)):
        return tuple(item for item in value if isinstance(item, str) and item)
    return ()


@dataclass(frozen=True)
class ServerConfig:
    name: str = DEFAULT_SERVER_NAME
    version: str = "0.1.0"
    max_workers: int | None = None
    liveness_interval: float = DEFAULT_LIVENESS_INTERVAL
    progress_token: str = DEFAULT_SERVER_NAME
    watched_extensions: tuple[str, ...] = DEFAULT_WATCHED_EXTENSIONS
    commands: tuple[str, ...] = ()
    completion_trigger_characters: tuple[str, ...] = ()
    signature_trigger_characters: tuple[str, ...] = ()
    semantic_token_types: tuple[str, ...] = ()
    semantic_token_modifiers: tuple[str, ...] = ()
    show_message_timeout: float | None = None
    settings: TomlTable = field(default_factory=dict)

    @property
    def watched_files_glob(self) -> str:
        extensions = ",".join(self.watched_extensions)
        if len(self.watched_extensions) == 1:
            return f"**/*.{extensions}"
        return f"**/*.{{{extensions}}}"

    @classmethod
    def from_table(cls, data: TomlTable) -> ServerConfig:
        server = _section(data, "server")
        name = str(server.get("name") or DEFAULT_SERVER_NAME)
        extensions = tuple(
            item.lstrip(".") for item in _normalize_name_list(server.get("watched_extensions"))
        )
        return cls(
            name=name,
            version=str(server.get("version") or cls.version),
            max_workers=_as_positive_int(server.get("max_workers"), None),
            liveness_interval=_as_positive_float(
                server.get("liveness_interval"), DEFAULT_LIVENESS_INTERVAL
            ),
            progress_token=str(server.get("progress_token") or name),
            watched_extensions=extensions or DEFAULT_WATCHED_EXTENSIONS,
            commands=tuple(_normalize_name_list(server.get("commands"))),
            completion_trigger_characters=_characters(
                server.get("completion_trigger_characters")
            ),
            signature_trigger_characters=_characters(
                server.get("signature_trigger_characters")
            ),
            semantic_token_types=tuple(
                _normalize_name_list(server.get("semantic_token_types"))
            ),
            semantic_token_modifiers=tuple(
                _normalize_name_list(server.get("semantic_token_modifiers"))
            ),
            show_message_timeout=_as_positive_float(server.get("show_message_timeout"), None),
            settings=_section(data, "settings"),
        )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: Path | None = None
    trace_io: bool = False

    @classmethod
    def from_table(cls, data: TomlTable) -> LoggingConfig:
        section = _section(data, "logging")
        raw_file = section.get("file")
        return cls(
            level=str(section.get("level") or "INFO").upper(),
            file=Path(str(raw_file)) if raw_file not in (None, "") else None,
            trace_io=_as_bool(section.get("trace_io")),
        )


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged
