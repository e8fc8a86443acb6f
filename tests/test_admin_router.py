"""
Admin routes wired to in-memory services through dependency overrides.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dca_agent.adapters.entry.http.admin_router import router
from dca_agent.adapters.entry.http.deps import get_allowance_service, get_evaluate_use_case, get_schedule_service
from dca_agent.core.services.allowance_service import AllowanceService
from dca_agent.core.services.strategy_schedule_service import StrategyScheduleService

from conftest import (
    InMemoryExecutionRepository,
    InMemoryPermissionRepository,
    InMemoryStrategyRepository,
    make_erc20_permission,
    make_strategy,
)


class StubEvaluate:
    async def trigger(self, strategy_id):
        return "skipped" if strategy_id == "strat-1" else None


@pytest.fixture
def client():
    strategies = InMemoryStrategyRepository([make_strategy()])
    allowance = AllowanceService(
        InMemoryPermissionRepository([make_erc20_permission("0x00000000000000000000000000000000000000d1")]),
        InMemoryExecutionRepository(),
    )
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_evaluate_use_case] = lambda: StubEvaluate()
    app.dependency_overrides[get_allowance_service] = lambda: allowance
    app.dependency_overrides[get_schedule_service] = lambda: StrategyScheduleService(strategies)
    return TestClient(app)


def test_trigger(client):
    r = client.post("/admin/strategies/strat-1/trigger")
    assert r.status_code == 200
    assert r.json() == {"strategy_id": "strat-1", "outcome": "skipped"}


def test_trigger_unknown(client):
    assert client.post("/admin/strategies/nope/trigger").status_code == 404


def test_deactivate_then_activate(client):
    r = client.post("/admin/strategies/strat-1/deactivate")
    assert r.status_code == 200 and r.json()["is_active"] is False

    before = datetime.now(timezone.utc)
    r = client.post("/admin/strategies/strat-1/activate")
    body = r.json()
    assert body["is_active"] is True
    assert datetime.fromisoformat(body["next_check_time"].replace("Z", "+00:00")) >= before + timedelta(hours=1)


def test_allowance(client):
    body = client.get("/admin/users/user-1/allowance").json()
    assert body["has_allowance"] is True
    assert float(body["daily_limit"]) == 100.0
    assert float(body["spent_today"]) == 0.0
