# /liquidator/core/agent.py
# Drives scan cycles: fetch borrowers, scan health, digest, hand the liquidatable
# tier to the strategy. One cycle at a time.
import asyncio
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from liquidator.core.state import CycleState
from liquidator.core.kill import is_kill_switch_active
from liquidator.engine.health_scanner import HealthScanner, ScanResult
from liquidator.strategies.base import AbstractStrategy
from liquidator.core.logger import get_logger, set_cycle_counter, CYCLES_RUN

log = get_logger(__name__)


def format_digest(scan: ScanResult, today: date) -> str:
    lines = [f"Daily watch list {today.isoformat()}"]
    if scan.watch:
        lines.append("Borrowers close to liquidation:")
        lines.extend(f"{r.borrower} HF: {r.health_factor_decimal:.2f}" for r in scan.watch)
    else:
        lines.append("No borrowers close to liquidation.")
    lines.append(f"Zeroed positions: {len(scan.zeroed)}")
    lines.extend(r.borrower for r in scan.zeroed)
    return "\n".join(lines)


class Agent:
    def __init__(
        self,
        strategy: AbstractStrategy,
        scanner: HealthScanner,
        borrower_source,
        notifier,
        pools: Sequence[str],
        scan_interval: float = 60,
        digest_hour_utc: int = 12,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.strategy = strategy
        self.scanner = scanner
        self.borrower_source = borrower_source
        self.notifier = notifier
        self.pools = list(pools)
        self.scan_interval = scan_interval
        self.digest_hour_utc = digest_hour_utc
        self.clock = clock
        self.cycle_counter = 0
        self.last_digest_date: Optional[date] = None
        self.last_state: Optional[CycleState] = None
        self.strategy_name = getattr(strategy, "strategy_name", type(strategy).__name__)

    async def maybe_send_digest(self, scan: ScanResult) -> bool:
        """Sends the watch/zeroed digest once per UTC day, from the configured hour on."""
        now = self.clock()
        if now.hour < self.digest_hour_utc or self.last_digest_date == now.date():
            return False
        await self.notifier.info(format_digest(scan, now.date()))
        self.last_digest_date = now.date()
        log.info("DAILY_DIGEST_SENT", watch=len(scan.watch), zeroed=len(scan.zeroed))
        return True

    async def run_cycle(self) -> CycleState:
        self.cycle_counter += 1
        set_cycle_counter(self.cycle_counter)
        state = CycleState(cycle=self.cycle_counter, started_at=self.clock())
        log.info("SCAN_CYCLE_STARTING", strategy=self.strategy_name, pools=len(self.pools))
        await self.notifier.alert(f"Starting scan cycle {self.cycle_counter} across {len(self.pools)} pool(s)")

        borrowers = await self.borrower_source.fetch_borrowers()
        scan = await self.scanner.scan(self.pools, borrowers)
        state = state.with_scan(len(borrowers), scan)
        for record in scan.watch:
            log.info("WATCH_TIER", pool=record.pool, borrower=record.borrower, health_factor=str(record.health_factor_decimal))

        await self.maybe_send_digest(scan)

        state = await self.strategy.run(state, scan.liquidatable)
        CYCLES_RUN.inc()
        self.last_state = state
        log.info("SCAN_CYCLE_COMPLETE", **state.summary())
        return state

    async def run_loop(self):
        """Runs cycles every *scan_interval* seconds; an interval of 0 runs a single cycle."""
        log.info("AGENT_STARTING_LOOP", strategy=self.strategy_name, interval=self.scan_interval)
        while True:
            if is_kill_switch_active():
                log.critical("AGENT_HALTED_BY_KILL_SWITCH", strategy=self.strategy_name)
                await self.strategy.abort("Kill switch activated")
                return
            try:
                await self.run_cycle()
            except Exception as e:
                log.error("AGENT_CYCLE_ERROR", strategy=self.strategy_name, error=str(e), exc_info=True)
                # A one-shot run has no next cycle to recover in
                if not self.scan_interval:
                    raise
            if not self.scan_interval:
                return
            await asyncio.sleep(self.scan_interval)
