from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from ....core.services.allowance_service import AllowanceService
from ....core.services.strategy_schedule_service import StrategyScheduleService
from ....core.usecases.evaluate_due_strategies_use_case import EvaluateDueStrategiesUseCase


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} is not initialized in app.state")
    return value


def get_db(request: Request) -> AsyncIOMotorDatabase:
    """
    Resolve the Mongo database from FastAPI app state.
    """
    return _state(request, "db")


def get_evaluate_use_case(request: Request) -> EvaluateDueStrategiesUseCase:
    return _state(request, "evaluate_use_case")


def get_allowance_service(request: Request) -> AllowanceService:
    return _state(request, "allowance_service")


def get_schedule_service(request: Request) -> StrategyScheduleService:
    return _state(request, "schedule_service")
