"""Main CLI entry point for taskflow-service management commands."""

import click

from taskflow_service.cli.commands import pipeline, tasks
from taskflow_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="taskflow")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Taskflow CLI - run and inspect the task-status pipeline.

    \b
    Commands:
      worker        Start the pipeline job worker
      scheduler     Run the hourly overdue scan
      scan-overdue  Run one overdue scan now
      stats         Print task statistics
    """
    ctx.ensure_object(dict)


cli.add_command(pipeline.worker)
cli.add_command(pipeline.scheduler)
cli.add_command(pipeline.scan_overdue)
cli.add_command(tasks.stats)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
