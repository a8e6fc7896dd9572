# /liquidator/core/state.py
# Immutable record of one scan cycle. Every update returns a new copy.
from datetime import datetime, timezone
from typing import List
from pydantic import BaseModel, ConfigDict, Field

from liquidator.engine.models import LiquidationOutcome, OutcomeStatus
from liquidator.core.logger import get_logger

log = get_logger(__name__)


class CycleState(BaseModel):
    model_config = ConfigDict(frozen=True)

    cycle: int
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    borrowers: int = 0
    records: int = 0
    liquidatable: int = 0
    watch: int = 0
    zeroed: int = 0
    failed_chunks: int = 0
    outcomes: List[LiquidationOutcome] = Field(default_factory=list)

    def with_scan(self, borrowers: int, scan) -> "CycleState":
        return self.model_copy(update={
            "borrowers": borrowers,
            "records": len(scan.records),
            "liquidatable": len(scan.liquidatable),
            "watch": len(scan.watch),
            "zeroed": len(scan.zeroed),
            "failed_chunks": len(scan.failed_chunks),
        })

    def record_outcome(self, outcome: LiquidationOutcome) -> "CycleState":
        log.info(
            "LIQUIDATION_OUTCOME_RECORDED",
            cycle=self.cycle,
            borrower=outcome.borrower,
            status=outcome.status.value,
            reason=outcome.reason,
            tx_hash=outcome.tx_hash,
        )
        return self.model_copy(update={"outcomes": self.outcomes + [outcome]})

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    def summary(self) -> dict:
        return {
            "cycle": self.cycle,
            "started_at": self.started_at.isoformat(),
            "borrowers": self.borrowers,
            "liquidatable": self.liquidatable,
            "watch": self.watch,
            "zeroed": self.zeroed,
            "failed_chunks": self.failed_chunks,
            "succeeded": self.count(OutcomeStatus.SUCCEEDED),
            "failed": self.count(OutcomeStatus.FAILED),
            "skipped": self.count(OutcomeStatus.SKIPPED),
        }
