from __future__ import annotations

import itertools
import json
import os
from typing import Any, Dict, Iterator, Optional, Tuple

import click

from filerange.config.config import ReadAllConfig
from filerange.core.errors import FileRangeError
from filerange.core.models import FileHandle
from filerange.core.policy import always_rethrow, never_rethrow
from filerange.core.reader import SourceFactory
from filerange.io.filesystems import match_files
from filerange.io.sources import JsonLinesSource, TextLineSource
from filerange.monitoring.server import start_metrics_server
from filerange.pipeline import ReadAllFromFiles
from filerange.utils.logging import configure_logging, get_logger
from filerange.utils.signals import restore_signal_handlers, setup_signal_handlers

logger = get_logger(__name__)

_FORMATS: Dict[str, SourceFactory] = {
    "text": TextLineSource,
    "jsonl": JsonLinesSource,
}


def _load_config(config_path: Optional[str], **overrides: Any) -> ReadAllConfig:
    base = ReadAllConfig.from_yaml(config_path) if config_path else ReadAllConfig.from_env()
    return base.merged(**overrides)


def _match(patterns: Tuple[str, ...]) -> Iterator[FileHandle]:
    return itertools.chain.from_iterable(match_files(p) for p in patterns)


def _render(record: Any) -> str:
    if isinstance(record, str):
        return record
    return json.dumps(record, ensure_ascii=False)


_format_option = click.option(
    "--format",
    "fmt",
    type=click.Choice(sorted(_FORMATS)),
    default="text",
    show_default=True,
    help="Record format of the input files.",
)
_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config file (default: FILERANGE_* environment variables).",
)
_bundle_option = click.option(
    "--bundle-size", type=click.IntRange(min=1), help="Desired bytes per work item."
)


@click.group()
@click.option(
    "--log-level",
    default=lambda: os.getenv("LOG_LEVEL", "WARNING"),
    show_default="WARNING",
    help="Logging level (logs go to stderr).",
)
@click.option("--json-logs/--console-logs", default=False, help="Log rendering.")
def cli(log_level: str, json_logs: bool) -> None:
    """Split and read large collections of local or S3 files."""
    configure_logging(level=log_level, json_output=json_logs)


@cli.command()
@click.argument("patterns", nargs=-1, required=True)
@_format_option
@_config_option
@_bundle_option
def split(
    patterns: Tuple[str, ...],
    fmt: str,
    config_path: Optional[str],
    bundle_size: Optional[int],
) -> None:
    """Print the work items (path, start, end) for PATTERNS."""
    config = _load_config(config_path, desired_bundle_size_bytes=bundle_size)
    pipeline = ReadAllFromFiles(_FORMATS[fmt], config=config)
    try:
        for item in pipeline.split(_match(patterns)):
            click.echo(f"{item.file.path}\t{item.range.start}\t{item.range.end}")
    except FileRangeError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument("patterns", nargs=-1, required=True)
@_format_option
@_config_option
@_bundle_option
@click.option("--concurrency", type=click.IntRange(min=1), help="Max open files.")
@click.option("--workers", type=click.IntRange(min=1), help="Reader threads.")
@click.option(
    "--redistribute/--no-redistribute",
    default=None,
    help="Shuffle work items before reading.",
)
@click.option(
    "--skip-errors",
    is_flag=True,
    default=False,
    help="Skip the rest of a file on read errors instead of failing.",
)
@click.option(
    "--metrics-port",
    type=click.IntRange(min=1, max=65535),
    help="Serve Prometheus metrics on this port while reading.",
)
def read(
    patterns: Tuple[str, ...],
    fmt: str,
    config_path: Optional[str],
    bundle_size: Optional[int],
    concurrency: Optional[int],
    workers: Optional[int],
    redistribute: Optional[bool],
    skip_errors: bool,
    metrics_port: Optional[int],
) -> None:
    """Stream the records of PATTERNS to stdout, one per line."""
    config = _load_config(
        config_path,
        desired_bundle_size_bytes=bundle_size,
        concurrency_limit=concurrency,
        max_workers=workers,
        uses_redistribution=redistribute,
    )
    pipeline = ReadAllFromFiles(
        _FORMATS[fmt],
        config=config,
        exception_policy=never_rethrow if skip_errors else always_rethrow,
    )
    logger.info(
        "starting_read",
        patterns=list(patterns),
        config=config.model_dump(),
        metrics_port=metrics_port,
    )

    http_server = start_metrics_server(metrics_port) if metrics_port else None
    previous = setup_signal_handlers(pipeline)
    try:
        for record in pipeline.read(_match(patterns)):
            click.echo(_render(record))
    except FileRangeError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        restore_signal_handlers(previous)
        if http_server is not None:
            http_server.shutdown()
            http_server.server_close()


if __name__ == "__main__":
    cli()
