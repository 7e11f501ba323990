from __future__ import annotations

import textwrap
from pathlib import Path

from lspcore.config import (
    DEFAULT_LIVENESS_INTERVAL,
    LoggingConfig,
    ServerConfig,
    load_config,
    merge_payload,
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "lspcore.toml"
    path.write_text(textwrap.dedent(text).strip() + "\n")
    return path


def test_server_config_reads_toml(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
        [server]
        name = "demo"
        max_workers = 3
        liveness_interval = 0.5
        watched_extensions = [".py", "toml"]
        commands = "demo.build, demo.clean"
        completion_trigger_characters = [".", ","]
        signature_trigger_characters = "(,"
        semantic_token_types = ["function", "variable"]
        show_message_timeout = 30

        [settings]
        lint = true
        """,
    )
    config = ServerConfig.from_table(load_config(root=tmp_path))
    assert config.name == "demo"
    assert config.progress_token == "demo"
    assert config.max_workers == 3
    assert config.liveness_interval == 0.5
    assert config.watched_extensions == ("py", "toml")
    assert config.watched_files_glob == "**/*.{py,toml}"
    assert config.commands == ("demo.build", "demo.clean")
    assert config.completion_trigger_characters == (".", ",")
    assert config.signature_trigger_characters == ("(", ",")
    assert config.semantic_token_types == ("function", "variable")
    assert config.show_message_timeout == 30.0
    assert config.settings == {"lint": True}


def test_server_config_defaults() -> None:
    config = ServerConfig.from_table({})
    assert config == ServerConfig()
    assert config.liveness_interval == DEFAULT_LIVENESS_INTERVAL
    assert config.watched_files_glob == "**/*.{py,pyi}"
    assert config.show_message_timeout is None


def test_invalid_values_fall_back_to_defaults() -> None:
    config = ServerConfig.from_table(
        {
            "server": {
                "max_workers": 0,
                "liveness_interval": "soon",
                "show_message_timeout": -1,
                "watched_extensions": ["py"],
            }
        }
    )
    assert config.max_workers is None
    assert config.liveness_interval == DEFAULT_LIVENESS_INTERVAL
    assert config.show_message_timeout is None
    assert config.watched_files_glob == "**/*.py"


def test_missing_or_broken_config_is_empty(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    broken = tmp_path / "broken.toml"
    broken.write_text("[server\nname = ")
    assert load_config(config_path=broken) == {}


def test_logging_config(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        [logging]
        level = "debug"
        file = "logs/lspcore.log"
        trace_io = "yes"
        """,
    )
    config = LoggingConfig.from_table(load_config(config_path=path))
    assert config.level == "DEBUG"
    assert config.file == Path("logs/lspcore.log")
    assert config.trace_io is True
    assert LoggingConfig.from_table({}) == LoggingConfig()


def test_merge_payload_prefers_explicit_values() -> None:
    merged = merge_payload({"a": None, "b": 3}, {"a": 1, "b": 2, "c": 4})
    assert merged == {"a": 1, "b": 3, "c": 4}
