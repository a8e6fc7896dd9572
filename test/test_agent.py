from datetime import datetime, timezone
import pytest

from liquidator.adapters.mock import MockBorrowerSource, MockMulticallGateway, MockNotifier
from liquidator.core.agent import Agent, format_digest
from liquidator.core.kill import activate_kill_switch
from liquidator.core.state import CycleState
from liquidator.engine.health_scanner import HealthScanner
from liquidator.engine.models import WAD, LiquidationOutcome, OutcomeStatus
from liquidator.strategies.base import AbstractStrategy
from conftest import address

POOL = address(0x1001)
SICK, WATCHED, ZEROED, HEALTHY = (address(n) for n in (0xB1, 0xB2, 0xB3, 0xB4))


class RecordingStrategy(AbstractStrategy):
    strategy_name = "recording"

    def __init__(self):
        self.targets = []
        self.aborted = None

    async def run(self, state, targets):
        for record in targets:
            self.targets.append(record.borrower)
            state = state.record_outcome(LiquidationOutcome(
                pool=record.pool, borrower=record.borrower, status=OutcomeStatus.SKIPPED, reason="test",
            ))
        return state

    async def abort(self, reason):
        self.aborted = reason


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def parts():
    gateway = MockMulticallGateway()
    gateway.set_health_factor(POOL, SICK, WAD * 98 // 100)
    gateway.set_health_factor(POOL, WATCHED, WAD * 103 // 100)
    gateway.set_health_factor(POOL, ZEROED, 0)
    gateway.set_health_factor(POOL, HEALTHY, 3 * WAD)
    source = MockBorrowerSource([SICK, WATCHED, ZEROED, HEALTHY])
    return gateway, source, MockNotifier(), RecordingStrategy()


def make_agent(parts, clock, interval=0):
    gateway, source, notifier, strategy = parts
    return Agent(
        strategy=strategy,
        scanner=HealthScanner(gateway),
        borrower_source=source,
        notifier=notifier,
        pools=[POOL],
        scan_interval=interval,
        digest_hour_utc=12,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_run_cycle_processes_liquidatable_tier(parts):
    _, _, notifier, strategy = parts
    agent = make_agent(parts, Clock(datetime(2024, 5, 1, 8, tzinfo=timezone.utc)))

    state = await agent.run_cycle()

    assert strategy.targets == [SICK]
    assert state.cycle == 1
    assert state.borrowers == 4
    assert state.liquidatable == 1
    assert state.watch == 1
    assert state.zeroed == 1
    assert state.count(OutcomeStatus.SKIPPED) == 1
    assert agent.last_state is state
    assert notifier.alerts[0].startswith("Starting scan cycle 1")
    # Before the digest hour
    assert notifier.infos == []


@pytest.mark.asyncio
async def test_digest_sent_once_per_day(parts):
    _, _, notifier, _ = parts
    clock = Clock(datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc))
    agent = make_agent(parts, clock)

    await agent.run_cycle()
    await agent.run_cycle()
    assert len(notifier.infos) == 1
    assert f"{WATCHED} HF: 1.03" in notifier.infos[0]
    assert "Zeroed positions: 1" in notifier.infos[0]

    clock.now = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
    await agent.run_cycle()
    assert len(notifier.infos) == 2
    assert agent.cycle_counter == 3


@pytest.mark.asyncio
async def test_run_loop_single_cycle_when_interval_zero(parts):
    _, _, _, strategy = parts
    agent = make_agent(parts, Clock(datetime(2024, 5, 1, tzinfo=timezone.utc)), interval=0)
    await agent.run_loop()
    assert agent.cycle_counter == 1
    assert strategy.aborted is None


@pytest.mark.asyncio
async def test_run_loop_single_cycle_reraises_cycle_error(parts):
    _, source, _, strategy = parts
    source.error = ConnectionError("indexer down")
    agent = make_agent(parts, Clock(datetime(2024, 5, 1, tzinfo=timezone.utc)), interval=0)
    with pytest.raises(ConnectionError, match="indexer down"):
        await agent.run_loop()
    assert agent.last_state is None
    assert strategy.targets == []


@pytest.mark.asyncio
async def test_run_loop_survives_cycle_error(parts, monkeypatch, kill_switch_cleanup):
    _, source, _, strategy = parts
    source.error = ConnectionError("indexer down")
    slept = []

    async def halt_after_sleep(seconds):
        slept.append(seconds)
        activate_kill_switch("test")

    monkeypatch.setattr("liquidator.core.agent.asyncio.sleep", halt_after_sleep)
    agent = make_agent(parts, Clock(datetime(2024, 5, 1, tzinfo=timezone.utc)), interval=60)
    await agent.run_loop()

    assert agent.cycle_counter == 1
    assert agent.last_state is None
    assert slept == [60]
    assert strategy.aborted == "Kill switch activated"


@pytest.mark.asyncio
async def test_run_loop_halts_on_kill_switch(parts, kill_switch_cleanup):
    _, _, _, strategy = parts
    activate_kill_switch("test")
    agent = make_agent(parts, Clock(datetime(2024, 5, 1, tzinfo=timezone.utc)), interval=60)
    await agent.run_loop()
    assert agent.cycle_counter == 0
    assert strategy.aborted == "Kill switch activated"


def test_cycle_state_is_copy_on_write():
    state = CycleState(cycle=1)
    outcome = LiquidationOutcome(pool=POOL, borrower=SICK, status=OutcomeStatus.FAILED, reason="r")
    updated = state.record_outcome(outcome)
    assert state.outcomes == []
    assert updated.outcomes == [outcome]
    assert updated.summary()["failed"] == 1


def test_format_digest_without_watch_tier():
    from liquidator.engine.health_scanner import ScanResult

    text = format_digest(ScanResult(), datetime(2024, 5, 1).date())
    assert "No borrowers close to liquidation." in text
    assert "Zeroed positions: 0" in text
