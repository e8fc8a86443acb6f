# dca_agent/core/domain/enums/dca_enums.py

from enum import Enum


class StrategyFrequency(str, Enum):
    """
    How often a strategy is re-evaluated by the scheduler.
    """
    FIVE_MINUTES = "5min"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class ExecutionStatus(str, Enum):
    """
    Durable lifecycle of an execution record.

    Funding / approving / swapping / reconciling are only visible in logs;
    only PENDING -> {EXECUTED, FAILED, SKIPPED} is persisted.
    """
    PENDING = "PENDING"     # decision says execute, pipeline not finished yet
    EXECUTED = "EXECUTED"   # swap confirmed and reconciled
    FAILED = "FAILED"       # some pipeline step raised
    SKIPPED = "SKIPPED"     # decision said do not execute

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.PENDING


class Trend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PermissionKind(str, Enum):
    """
    Delegated spending grant flavours.
    NATIVE pays for gas, ERC20 carries the trade notional.
    """
    NATIVE_PERIODIC = "native-token-periodic"
    ERC20_PERIODIC = "erc20-token-periodic"
