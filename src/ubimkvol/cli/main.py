"""
ubimkvol CLI Main Entry Point.

Usage: ubimkvol <UBI device node file name> [options]
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence

import click
from rich.console import Console
from rich.markup import escape

from ubimkvol.core.config import UbiMkvolConfig, load_config
from ubimkvol.core.logging import get_logger, setup_logging
from ubimkvol.core.pipeline import PipelineResult, VolumeCreationPipeline
from ubimkvol.platform import get_platform_backend
from ubimkvol.platform.base import VolumeManagerBackend

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

logger = get_logger(__name__)


def print_result(result: PipelineResult) -> None:
    """Print warnings, regular output and the error of a finished run."""
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")

    # Volume names are raw bytes; write them back unchanged
    for message in result.messages:
        click.echo(os.fsencode(message))

    if result.error is not None:
        err_console.print(f"[red]Error: {escape(str(result.error))}[/red]")
        if result.error.__cause__ is not None:
            logger.info(
                "Device manager error",
                kind=result.error.kind,
                cause=str(result.error.__cause__),
            )


def run(
    tokens: Sequence[str],
    backend: VolumeManagerBackend | None = None,
    config: UbiMkvolConfig | None = None,
) -> int:
    """Run one invocation and return its exit status."""
    config = config or load_config()
    setup_logging(config.logging)

    if backend is None:
        backend = get_platform_backend(config.ubi)

    pipeline = VolumeCreationPipeline(backend, max_node_length=config.ubi.max_node_length)
    result = pipeline.run(tokens)
    print_result(result)

    logger.info(
        "Invocation finished",
        state=result.state.name,
        kind=result.failure_kind,
        volume_id=result.volume_id,
    )
    return result.exit_code


def main() -> None:
    """Main entry point."""
    try:
        code = run(sys.argv[1:])
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
