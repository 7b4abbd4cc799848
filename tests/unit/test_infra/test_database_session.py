"""Unit tests for the unit-of-work transaction helper."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from taskflow_service.features.tasks.models import Task
from taskflow_service.infra.database.session import SessionFactory, unit_of_work


async def _count(session_factory: SessionFactory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(Task))).scalar_one()


@pytest.mark.unit
class TestUnitOfWork:
    """Test suite for unit_of_work."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, session_factory):
        """Test that changes made inside the block are committed."""
        async with unit_of_work(session_factory) as session:
            session.add(Task(title="Commit me", user_id=uuid4()))

        assert await _count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory):
        """Test that an exception discards the block's changes and propagates."""
        with pytest.raises(RuntimeError, match="boom"):
            async with unit_of_work(session_factory) as session:
                session.add(Task(title="Discard me", user_id=uuid4()))
                await session.flush()
                raise RuntimeError("boom")

        assert await _count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_session_is_closed_after_block(self, session_factory):
        """Test that the session no longer holds a transaction after exit."""
        async with unit_of_work(session_factory) as session:
            assert session.in_transaction()

        assert not session.in_transaction()
