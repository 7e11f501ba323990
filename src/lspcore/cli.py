from __future__ import annotations

import dataclasses
import importlib
import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from lspcore.config import LoggingConfig, ServerConfig, load_config
from lspcore.io_trace import trace_stdio
from lspcore.logging_setup import configure_logging
from lspcore.server import start

app = typer.Typer(add_completion=False)


def _load_handler(target: str) -> Any:
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter("expected module:attr", param_hint="--handler")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"cannot import {module_name}: {exc}", param_hint="--handler")
    loaded = getattr(module, attribute, None)
    if loaded is None:
        raise typer.BadParameter(f"{module_name} has no attribute {attribute}", param_hint="--handler")
    return loaded() if isinstance(loaded, type) else loaded


def _logging_config(
    data: dict[str, Any],
    *,
    log_level: Optional[str],
    log_file: Optional[Path],
    trace_io: Optional[bool],
) -> LoggingConfig:
    configured = LoggingConfig.from_table(data)
    return dataclasses.replace(
        configured,
        level=(log_level or configured.level).upper(),
        file=log_file if log_file is not None else configured.file,
        trace_io=configured.trace_io if trace_io is None else trace_io,
    )


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to lspcore.toml."),
    root: Path = typer.Option(Path("."), "--root"),
    handler: Optional[str] = typer.Option(
        None, "--handler", help="Feature handler as module:attr."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file"),
    trace_io: Optional[bool] = typer.Option(
        None,
        "--trace-io/--no-trace-io",
        help="Mirror protocol traffic into the log at debug level.",
    ),
) -> None:
    """Run the language server over stdio."""
    data = load_config(root, config)
    logging_config = _logging_config(
        data, log_level=log_level, log_file=log_file, trace_io=trace_io
    )
    configure_logging(logging_config.level, logging_config.file)
    feature_handler = _load_handler(handler) if handler else None
    stdin, stdout = sys.stdin.buffer, sys.stdout.buffer
    if logging_config.trace_io:
        stdin, stdout = trace_stdio(stdin, stdout)
    start(
        handler=feature_handler,
        config=ServerConfig.from_table(data),
        stdin=stdin,
        stdout=stdout,
    )


@app.command("show-config")
def show_config(
    config: Optional[Path] = typer.Option(None, "--config"),
    root: Path = typer.Option(Path("."), "--root"),
) -> None:
    """Print the effective configuration as JSON."""
    data = load_config(root, config)
    server_config = ServerConfig.from_table(data)
    server = dataclasses.asdict(server_config)
    server["watched_files_glob"] = server_config.watched_files_glob
    logging_config = dataclasses.asdict(LoggingConfig.from_table(data))
    typer.echo(json.dumps({"server": server, "logging": logging_config}, indent=2, default=str))


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()  # pragma: no cover
