"""Task inspection commands."""

import click

from taskflow_service.cli.utils import coro, header, key_values


@click.command(name="stats")
@coro
async def stats() -> None:
    """Print task counts by status and priority."""
    from taskflow_service.features.tasks.repository import TaskRepository
    from taskflow_service.infra.database.session import get_async_session

    header("Task Statistics")
    async with get_async_session() as session:
        counts = await TaskRepository().get_stats(session)

    key_values(
        {
            "total": counts["total"],
            "pending": counts["pending"],
            "in progress": counts["in_progress"],
            "completed": counts["completed"],
            "high priority": counts["high_priority"],
        }
    )
