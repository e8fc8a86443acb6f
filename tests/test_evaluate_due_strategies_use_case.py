"""
Tests for one scheduler tick.
"""
from datetime import datetime, timedelta, timezone

from dca_agent.core.domain.entities.chain_entity import SwapResult
from dca_agent.core.domain.enums.dca_enums import ExecutionStatus, StrategyFrequency
from dca_agent.core.services.allowance_service import AllowanceService
from dca_agent.core.services.decision_service import DecisionService
from dca_agent.core.services.market_analysis_service import MarketAnalysisService
from dca_agent.core.services.strategy_schedule_service import StrategyScheduleService
from dca_agent.core.usecases.evaluate_due_strategies_use_case import EvaluateDueStrategiesUseCase

from conftest import (
    FakeFlowFeed,
    FakePriceFeed,
    InMemoryExecutionRepository,
    InMemoryPermissionRepository,
    InMemoryStrategyRepository,
    RecordingPublisher,
    make_erc20_permission,
    make_pending_execution,
    make_strategy,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
DELEGATE = "0x00000000000000000000000000000000000000d1"


class StubSwap:
    def __init__(self, success=True):
        self.calls = []
        self.success = success

    async def execute_swap(self, execution_id):
        self.calls.append(execution_id)
        return SwapResult(success=self.success, tx_hash="0xswap" if self.success else None)


class Tick:
    def __init__(self, strategies, price=101.0, permissions=None, permission_repo=None):
        self.strategies = InMemoryStrategyRepository(strategies)
        self.executions = InMemoryExecutionRepository()
        perms = [make_erc20_permission(DELEGATE, expires_at=NOW + timedelta(days=1),
                                       created_at=NOW - timedelta(days=1))] if permissions is None else permissions
        self.permissions = permission_repo or InMemoryPermissionRepository(perms)
        self.swap = StubSwap()
        self.publisher = RecordingPublisher()
        market = MarketAnalysisService(FakePriceFeed(price, {24: [100, 102, 98, 101]}), FakeFlowFeed())
        self.uc = EvaluateDueStrategiesUseCase(
            strategy_repo=self.strategies,
            execution_repo=self.executions,
            schedule_service=StrategyScheduleService(self.strategies),
            allowance_service=AllowanceService(self.permissions, self.executions),
            decision_service=DecisionService(market),
            execute_swap_use_case=self.swap,
            publisher=self.publisher,
        )


def due(strategy_id="strat-1", **overrides):
    return make_strategy(id=strategy_id, next_check_time=NOW - timedelta(minutes=1), **overrides)


class TestExecuteOnce:

    async def test_executing_decision_creates_pending_and_runs_pipeline(self):
        t = Tick([due()])

        stats = await t.uc.execute_once(NOW)

        assert stats["due"] == 1 and stats["executed"] == 1
        [record] = t.executions.items.values()
        assert record.status is ExecutionStatus.PENDING
        assert record.recommended_amount == 1_100_000
        assert record.price == 101.0
        assert record.decision["kind"] == "execute"
        assert t.swap.calls == [record.id]
        assert [e for e, _ in t.publisher.events] == ["execution.ready"]

    async def test_skip_decision_creates_skipped_record(self):
        t = Tick([due()], price=None)

        stats = await t.uc.execute_once(NOW)

        assert stats["skipped"] == 1
        [record] = t.executions.items.values()
        assert record.status is ExecutionStatus.SKIPPED
        assert record.decision["reason"] == "no price data available"
        assert t.swap.calls == []

    async def test_next_check_time_advances(self):
        t = Tick([due(frequency=StrategyFrequency.DAILY)])

        await t.uc.execute_once(NOW)

        assert t.strategies.items["strat-1"].next_check_time == NOW + timedelta(days=1)

    async def test_blocked_strategy_still_advances_without_record(self):
        t = Tick([due()], permissions=[])

        stats = await t.uc.execute_once(NOW)

        assert stats["blocked"] == 1
        assert t.executions.items == {}
        assert t.strategies.items["strat-1"].next_check_time == NOW + timedelta(hours=1)
        assert t.swap.calls == []

    async def test_spent_allowance_blocks(self):
        t = Tick([due()])
        await t.executions.create(
            make_pending_execution("old", amount=100_000_000).model_copy(
                update={"status": ExecutionStatus.EXECUTED, "executed_at": NOW - timedelta(hours=1)}
            )
        )

        stats = await t.uc.execute_once(NOW)

        assert stats["blocked"] == 1

    async def test_not_due_strategies_are_ignored(self):
        t = Tick([make_strategy(next_check_time=NOW + timedelta(minutes=5)), due("inactive", is_active=False)])

        stats = await t.uc.execute_once(NOW)

        assert stats["due"] == 0
        assert t.executions.items == {}

    async def test_one_failing_strategy_does_not_block_others(self):
        class FlakyPermissions(InMemoryPermissionRepository):
            async def active_permission(self, user_id, kind, now):
                if user_id == "bad-user":
                    raise RuntimeError("db hiccup")
                return await super().active_permission(user_id, kind, now)

        perms = [make_erc20_permission(DELEGATE, expires_at=NOW + timedelta(days=1),
                                       created_at=NOW - timedelta(days=1))]
        t = Tick(
            [due("bad", user_id="bad-user"), due("good")],
            permission_repo=FlakyPermissions(perms),
        )

        stats = await t.uc.execute_once(NOW)

        assert stats["errors"] == 1
        assert stats["executed"] == 1
        assert [e.strategy_id for e in t.executions.items.values()] == ["good"]


class TestTrigger:

    async def test_trigger_unknown_strategy(self):
        t = Tick([])
        assert await t.uc.trigger("missing") is None

    async def test_trigger_runs_regardless_of_schedule(self):
        # trigger runs on the wall clock, so the grant must be valid now
        t = Tick([make_strategy(next_check_time=NOW + timedelta(days=3))],
                 permissions=[make_erc20_permission(DELEGATE)])
        assert await t.uc.trigger("strat-1") == "executed"
