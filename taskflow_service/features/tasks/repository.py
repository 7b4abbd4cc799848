"""Repository for the tasks feature.

Every method takes the session of the caller's unit of work, so reads and
writes join the transaction the service or worker opened.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Select, case, func, or_, select, update

from taskflow_service.core.database import BaseRepository
from taskflow_service.features.tasks.models import Task, TaskPriority, TaskStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.ext.asyncio import AsyncSession

    from taskflow_service.features.tasks.schemas import TaskFilter


class TaskRepository(BaseRepository[Task]):
    """Repository for the Task model.

    Inherits from BaseRepository:
        - get(session, id) -> Task | None
        - get_or_raise(session, id) -> Task
        - list(session, limit, offset) -> Sequence[Task]
        - search(session, statement, limit, offset) -> SearchResult[Task]
        - create(session, instance) -> Task
        - delete(session, instance) -> None

    Feature-specific methods below.
    """

    def __init__(self) -> None:
        super().__init__(Task)

    async def find_overdue_tasks(
        self,
        session: AsyncSession,
        limit: int,
        offset: int = 0,
        *,
        as_of: datetime | None = None,
    ) -> Sequence[Task]:
        """Find overdue tasks that are not completed, oldest due date first.

        Args:
            session: Database session
            limit: Page size
            offset: Results to skip
            as_of: Reference time (defaults to now)
        """
        now = as_of or datetime.now(UTC)
        stmt = (
            select(Task)
            .where(
                Task.due_date.is_not(None),
                Task.due_date < now,
                Task.status != TaskStatus.COMPLETED,
            )
            .order_by(Task.due_date.asc(), Task.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_overdue_tasks: limit={limit}, offset={offset} as of {now} -> {len(items)} items"
        )
        return items

    async def find_overdue_pending_summaries(
        self,
        session: AsyncSession,
        *,
        as_of: datetime | None = None,
    ) -> Sequence[Row[tuple[UUID, str, datetime]]]:
        """Find PENDING tasks past their due date, projecting id, title and due_date only."""
        now = as_of or datetime.now(UTC)
        stmt = (
            select(Task.id, Task.title, Task.due_date)
            .where(
                Task.due_date.is_not(None),
                Task.due_date < now,
                Task.status == TaskStatus.PENDING,
            )
            .order_by(Task.due_date.asc(), Task.id.asc())
        )
        result = await session.execute(stmt)
        rows = result.all()

        # INFO level when overdue tasks found (actionable condition)
        if rows:
            self._logger.info(
                "Found overdue pending tasks",
                extra={
                    "count": len(rows),
                    "as_of": now.isoformat(),
                    "operation": "db.find_overdue_pending_summaries",
                },
            )
        else:
            self._lazy.debug(lambda: f"db.find_overdue_pending_summaries: none as of {now}")
        return rows

    async def find_by_status(self, session: AsyncSession, status: TaskStatus) -> Sequence[Task]:
        stmt = select(Task).where(Task.status == status).order_by(Task.created_at.desc())
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.find_by_status: {status} -> {len(items)} items")
        return items

    async def update_status(
        self,
        session: AsyncSession,
        task_id: UUID,
        status: TaskStatus,
    ) -> Task:
        """Set a task's status inside the caller's transaction.

        Setting the status a task already has changes nothing, so replaying
        the same update is safe.

        Raises:
            NotFoundError: If the task doesn't exist
        """
        task = await self.get_or_raise(session, task_id)
        if task.status != status:
            task.status = status
            await session.flush()

        self._lazy.debug(lambda: f"db.update_status: Task({task_id}) -> {status}")
        return task

    async def reset_status(
        self,
        session: AsyncSession,
        task_ids: Sequence[UUID],
        status: TaskStatus,
    ) -> int:
        """Set ``status`` on all given tasks in one statement; returns rows matched."""
        if not task_ids:
            return 0

        stmt = (
            update(Task)
            .where(Task.id.in_(task_ids))
            .values(status=status, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)

        self._lazy.debug(
            lambda: f"db.reset_status: {len(task_ids)} tasks -> {status} ({result.rowcount} rows)"
        )
        return result.rowcount

    def filter_statement(self, filters: TaskFilter) -> Select[tuple[Task]]:
        """Build the listing statement for ``filters``, newest first."""
        stmt = select(Task)

        if filters.status:
            stmt = stmt.where(Task.status == filters.status)
        if filters.priority:
            stmt = stmt.where(Task.priority == filters.priority)
        if filters.search_term:
            pattern = f"%{filters.search_term.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Task.title).like(pattern),
                    func.lower(Task.description).like(pattern),
                )
            )
        if filters.user_id:
            stmt = stmt.where(Task.user_id == filters.user_id)
        if filters.due_date_start:
            stmt = stmt.where(Task.due_date >= filters.due_date_start)
        if filters.due_date_end:
            stmt = stmt.where(Task.due_date <= filters.due_date_end)

        return stmt.order_by(Task.created_at.desc())

    async def get_stats(self, session: AsyncSession) -> dict[str, int]:
        """Count tasks overall, per status, and at HIGH priority."""
        stmt = select(
            func.count().label("total"),
            func.count(case((Task.status == TaskStatus.COMPLETED, 1))).label("completed"),
            func.count(case((Task.status == TaskStatus.IN_PROGRESS, 1))).label("in_progress"),
            func.count(case((Task.status == TaskStatus.PENDING, 1))).label("pending"),
            func.count(case((Task.priority == TaskPriority.HIGH, 1))).label("high_priority"),
        ).select_from(Task)
        row = (await session.execute(stmt)).one()

        stats = {key: int(value or 0) for key, value in row._mapping.items()}
        self._lazy.debug(lambda: f"db.get_stats: {stats}")
        return stats


__all__ = ["TaskRepository"]
