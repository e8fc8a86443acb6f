from abc import ABC, abstractmethod
from typing import Any, Dict


class ExecutionPublisher(ABC):
    """
    Outbound topic for execution lifecycle events
    ("execution.ready", "execution.completed", "execution.failed").
    Publishing must never break the pipeline; implementations log and move on.
    """

    @abstractmethod
    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError
