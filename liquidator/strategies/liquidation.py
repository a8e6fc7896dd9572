# /liquidator/strategies/liquidation.py
# Per-borrower liquidation pipeline: positions, sizing, collateral, routes, execution.
import asyncio
from typing import Dict, Optional, Sequence
from web3 import Web3

from liquidator.core.config import MarketConfig
from liquidator.core.kill import is_kill_switch_active
from liquidator.core.state import CycleState
from liquidator.engine.collateral import CollateralSelector
from liquidator.engine.executor import ExecutionCoordinator
from liquidator.engine.models import (
    BPS,
    CollateralCandidate,
    HealthRecord,
    LiquidationOutcome,
    LiquidationPlan,
    OutcomeStatus,
)
from liquidator.engine.position_resolver import PositionResolver
from liquidator.engine.routing import SwapRouteAggregator
from liquidator.engine.sizing import size_liquidation
from liquidator.strategies.base import AbstractStrategy
from liquidator.core.logger import get_logger, LIQUIDATIONS

log = get_logger(__name__)

ALERT_REASON_MAX_CHARS = 100


def expected_seized_collateral(
    debt_to_cover: int,
    debt_price: int,
    debt_decimals: int,
    collateral: CollateralCandidate,
) -> int:
    """
    Collateral units the protocol releases for *debt_to_cover*, bonus included,
    capped at the borrower's balance. Zero when the collateral has no price.
    """
    if collateral.price_usd == 0:
        return 0
    numerator = debt_to_cover * debt_price * 10**collateral.token_decimals * collateral.liquidation_bonus_bps
    denominator = collateral.price_usd * 10**debt_decimals * BPS
    return min(numerator // denominator, collateral.balance)


def format_hf(record: HealthRecord) -> str:
    return f"{record.health_factor_decimal:.4f}"


class LiquidationStrategy(AbstractStrategy):
    strategy_name = "liquidation"

    def __init__(
        self,
        markets: Dict[str, MarketConfig],
        resolver: PositionResolver,
        lending,
        selector: CollateralSelector,
        router: SwapRouteAggregator,
        coordinator: ExecutionCoordinator,
        notifier,
        receiver: str,
        settlement_asset: Optional[str] = None,
    ):
        self.markets = {pool.lower(): market for pool, market in markets.items()}
        self.resolver = resolver
        self.lending = lending
        self.selector = selector
        self.router = router
        self.coordinator = coordinator
        self.notifier = notifier
        self.receiver = Web3.to_checksum_address(receiver)
        self.settlement_asset = settlement_asset
        log.info("LIQUIDATION_STRATEGY_INITIALIZED", markets=len(self.markets), receiver=self.receiver)

    async def run(self, state: CycleState, targets: Sequence[HealthRecord]) -> CycleState:
        for i, record in enumerate(targets):
            if is_kill_switch_active():
                log.critical("LIQUIDATIONS_HALTED_BY_KILL_SWITCH", remaining=len(targets) - i)
                break
            try:
                outcome = await self.process_borrower(record)
            except Exception as e:
                log.error("LIQUIDATION_PIPELINE_ERROR", borrower=record.borrower, error=str(e), exc_info=True)
                outcome = self._skipped(record, f"error: {e}")
            state = state.record_outcome(outcome)
        return state

    async def process_borrower(self, record: HealthRecord) -> LiquidationOutcome:
        market = self.markets.get(record.pool.lower())
        if market is None:
            return self._skipped(record, "unknown pool")

        await self.notifier.alert(f"Starting liquidation for user {record.borrower}. HF: {format_hf(record)}")

        try:
            snapshot = await self.resolver.resolve(
                record.borrower, market.collateral_wrappers, market.debt_wrappers
            )
        except Exception as e:
            log.warning("POSITION_RESOLVE_FAILED", borrower=record.borrower, error=str(e))
            return await self._skip_with_alert(record, f"position lookup failed: {e}")

        if not snapshot.is_liquidatable_shape:
            log.info("NO_COLLATERAL_OR_DEBT", borrower=record.borrower)
            await self.notifier.alert(f"No collateral or debt for user {record.borrower}. HF: {format_hf(record)}")
            return self._skipped(record, "no collateral or debt")

        debt = snapshot.debt[0]
        debt_asset = debt.underlying_asset
        wrapper = snapshot.liquidity_wrapper_for(debt_asset)
        if wrapper is None:
            log.info("NO_WRAPPER_FOR_DEBT_ASSET", borrower=record.borrower, debt_asset=debt_asset)
            return await self._skip_with_alert(record, "no debt wrapper")

        try:
            liquidity = await self.lending.get_balance(debt_asset, wrapper)
        except Exception as e:
            log.warning("LIQUIDITY_LOOKUP_FAILED", debt_asset=debt_asset, wrapper=wrapper, error=str(e))
            return await self._skip_with_alert(record, f"liquidity lookup failed: {e}")

        sizing = size_liquidation(record.health_factor, debt.amount, liquidity)
        if sizing is None:
            return await self._skip_with_alert(record, "nothing to liquidate")

        collateral = await self.selector.select(record.pool, market.oracle, snapshot.collateral)
        if collateral is None:
            return await self._skip_with_alert(record, "no eligible collateral")

        try:
            debt_price, debt_decimals = await asyncio.gather(
                self.lending.get_asset_price(market.oracle, debt_asset),
                self.lending.get_decimals(debt_asset),
            )
        except Exception as e:
            log.warning("DEBT_ASSET_LOOKUP_FAILED", debt_asset=debt_asset, error=str(e))
            return await self._skip_with_alert(record, f"debt asset lookup failed: {e}")

        seize_estimate = expected_seized_collateral(sizing.amount, debt_price, debt_decimals, collateral)
        if seize_estimate == 0:
            return await self._skip_with_alert(record, "no collateral to seize")

        settlement_asset = self.settlement_asset or debt_asset
        routes = await self.router.plan_routes(collateral.asset, debt_asset, seize_estimate, settlement_asset)
        if routes is None:
            return await self._skip_with_alert(record, "no route")

        plan = LiquidationPlan(
            pool=record.pool,
            liquidator=Web3.to_checksum_address(market.liquidator),
            borrower=Web3.to_checksum_address(record.borrower),
            collateral_asset=Web3.to_checksum_address(collateral.asset),
            debt_asset=Web3.to_checksum_address(debt_asset),
            seize_amount_cap=sizing.amount,
            debt_to_cover=sizing.debt_to_cover,
            swap_quote_repay=routes.repay,
            swap_quote_to_settlement=routes.settlement,
            receiver=self.receiver,
        )
        log.warning(
            "LIQUIDATION_PLANNED",
            borrower=plan.borrower,
            health_factor=str(record.health_factor_decimal),
            collateral=plan.collateral_asset,
            debt=plan.debt_asset,
            amount=sizing.amount,
            protocol_ceiling=sizing.uses_protocol_ceiling,
            seize_estimate=seize_estimate,
        )

        outcome = await self.coordinator.execute(plan)
        if outcome.status is OutcomeStatus.SUCCEEDED:
            await self.notifier.alert(f"Liquidation for user {record.borrower} completed. TxId: {outcome.tx_hash}")
        else:
            reason = outcome.reason[:ALERT_REASON_MAX_CHARS]
            await self.notifier.alert(f"Liquidation for user {record.borrower} failed. Reason: {reason}")
        return outcome

    async def _skip_with_alert(self, record: HealthRecord, reason: str) -> LiquidationOutcome:
        await self.notifier.alert(f"Skipping liquidation for user {record.borrower}: {reason}")
        return self._skipped(record, reason)

    def _skipped(self, record: HealthRecord, reason: str) -> LiquidationOutcome:
        LIQUIDATIONS.labels(OutcomeStatus.SKIPPED.value).inc()
        return LiquidationOutcome(
            pool=record.pool,
            borrower=record.borrower,
            status=OutcomeStatus.SKIPPED,
            reason=reason,
        )

    async def abort(self, reason: str):
        log.critical("LIQUIDATION_STRATEGY_ABORTED", reason=reason)
