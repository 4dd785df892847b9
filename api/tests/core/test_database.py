"""Tests for core database module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.pool import NullPool, QueuePool

from core.database import (
    PoolStatus,
    comprehensive_health_check,
    get_db,
    get_pool_status,
    session_scope,
)

pytestmark = pytest.mark.unit


def _session_maker(session):
    """async_sessionmaker stand-in whose sessions are async context managers."""
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return MagicMock(return_value=session)


class TestSessionScope:
    async def test_commits_on_success(self):
        session = AsyncMock()

        async with session_scope(_session_maker(session)) as db:
            assert db is session

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    async def test_rolls_back_and_reraises(self):
        session = AsyncMock()

        with pytest.raises(RuntimeError):
            async with session_scope(_session_maker(session)):
                raise RuntimeError("boom")

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    async def test_rollback_failure_keeps_original_error(self):
        session = AsyncMock()
        session.rollback.side_effect = ConnectionError("gone")

        with pytest.raises(RuntimeError, match="boom"):
            async with session_scope(_session_maker(session)):
                raise RuntimeError("boom")


class TestGetDb:
    async def test_commits_after_request(self):
        session = AsyncMock()
        request = MagicMock()
        request.app.state.session_maker = _session_maker(session)

        gen = get_db(request)
        assert await gen.__anext__() is session
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        session.commit.assert_awaited_once()


class TestPoolStatus:
    def test_reads_queue_pool_counters(self):
        pool = MagicMock(spec=QueuePool)
        pool.size.return_value = 5
        pool.checkedout.return_value = 2
        pool.overflow.return_value = 0
        pool.checkedin.return_value = 3
        engine = MagicMock()
        engine.sync_engine.pool = pool

        assert get_pool_status(engine) == PoolStatus(5, 2, 0, 3)

    def test_none_for_other_pools(self):
        engine = MagicMock()
        engine.sync_engine.pool = MagicMock(spec=NullPool)

        assert get_pool_status(engine) is None


class TestComprehensiveHealthCheck:
    async def test_healthy(self):
        engine = MagicMock()
        engine.sync_engine.pool = MagicMock(spec=NullPool)

        with patch("core.database.check_db_connection", autospec=True):
            result = await comprehensive_health_check(engine)

        assert result == {"database": True, "pool": None}

    async def test_connection_failure_is_reported_not_raised(self):
        engine = MagicMock()
        engine.sync_engine.pool = MagicMock(spec=NullPool)

        with patch(
            "core.database.check_db_connection",
            autospec=True,
            side_effect=OSError("refused"),
        ):
            result = await comprehensive_health_check(engine)

        assert result["database"] is False
