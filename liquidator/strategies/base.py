# /liquidator/strategies/base.py
from typing import Sequence

from liquidator.core.state import CycleState
from liquidator.engine.models import HealthRecord


class AbstractStrategy:
    """
    Interface for anything the agent runs against a cycle's liquidatable tier.
    Implementations must not raise for a single bad target; they record an
    outcome and move on.
    """
    strategy_name = "abstract"

    async def run(self, state: CycleState, targets: Sequence[HealthRecord]) -> CycleState:
        """Process *targets* in order and return the updated state."""
        raise NotImplementedError

    async def abort(self, reason: str):
        """Abort and exit cleanly on error/kill."""
        raise NotImplementedError
