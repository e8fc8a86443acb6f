"""
Tests for next_check_time bookkeeping.
"""
from datetime import datetime, timedelta, timezone

import pytest

from dca_agent.core.domain.enums.dca_enums import StrategyFrequency
from dca_agent.core.services.strategy_schedule_service import StrategyScheduleService

from conftest import InMemoryStrategyRepository, make_strategy

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestNextCheckTime:

    @pytest.mark.parametrize("freq,step", [
        (StrategyFrequency.FIVE_MINUTES, timedelta(minutes=5)),
        (StrategyFrequency.HOURLY, timedelta(hours=1)),
        (StrategyFrequency.DAILY, timedelta(days=1)),
        (StrategyFrequency.WEEKLY, timedelta(days=7)),
    ])
    def test_steps(self, freq, step):
        assert StrategyScheduleService.next_check_time(freq, NOW) == NOW + step

    def test_accepts_raw_value(self):
        assert StrategyScheduleService.next_check_time("5min", NOW) == NOW + timedelta(minutes=5)


class TestAdvance:

    async def test_strictly_increases_even_if_clock_is_behind(self):
        stored = NOW + timedelta(hours=3)
        repo = InMemoryStrategyRepository([make_strategy(next_check_time=stored)])
        svc = StrategyScheduleService(repo)
        strategy = await repo.get_by_id("strat-1")

        nxt = await svc.advance(strategy, NOW)

        assert nxt > stored
        assert repo.items["strat-1"].next_check_time == nxt


class TestActivation:

    async def test_deactivate_then_activate(self):
        repo = InMemoryStrategyRepository([make_strategy()])
        svc = StrategyScheduleService(repo)

        off = await svc.deactivate("strat-1")
        assert off.is_active is False
        assert await svc.find_due(NOW + timedelta(days=365)) == []

        on = await svc.activate("strat-1", NOW)
        assert on.is_active is True
        assert repo.items["strat-1"].next_check_time == NOW + timedelta(hours=1)

    async def test_unknown_strategy(self):
        svc = StrategyScheduleService(InMemoryStrategyRepository())
        assert await svc.activate("x") is None
        assert await svc.deactivate("x") is None
