from unittest.mock import AsyncMock, MagicMock

import pytest

from flip_oracle.config import SweepConfig
from flip_oracle.core.exceptions import ChainError
from flip_oracle.core.ledger.base import Side
from flip_oracle.core.scheduler import SweepScheduler

pytestmark = pytest.mark.asyncio


async def test_run_sweep_keeps_last_report(resolver, ledger, player):
    await ledger.place_bet(player, Side.TAILS, 50, 1)
    scheduler = SweepScheduler(lambda: resolver, SweepConfig())

    report = await scheduler.run_sweep()

    assert report.resolved == 1
    assert scheduler.last_report is report


async def test_run_sweep_survives_errors():
    broken = MagicMock()
    broken.sweep = AsyncMock(side_effect=ChainError("RPC down"))
    scheduler = SweepScheduler(lambda: broken, SweepConfig())

    assert await scheduler.run_sweep() is None
    assert scheduler.last_report is None

    broken.sweep = AsyncMock(side_effect=RuntimeError("boom"))
    assert await scheduler.run_sweep() is None


async def test_start_and_shutdown():
    disabled = SweepScheduler(MagicMock(), SweepConfig(schedule_enabled=False))
    disabled.start()
    assert disabled.scheduler is None

    enabled = SweepScheduler(MagicMock(), SweepConfig(schedule_enabled=True, interval_seconds=3600))
    enabled.start()
    assert enabled.scheduler.get_job(SweepScheduler.JOB_ID) is not None
    enabled.shutdown()
    assert enabled.scheduler is None
