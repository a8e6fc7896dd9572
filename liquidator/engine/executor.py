# /liquidator/engine/executor.py
# Submits a liquidation plan, waits for the receipt, classifies the outcome and
# paces successive attempts.
import asyncio

from liquidator.adapters.lending import encode_call
from liquidator.core.tx import TransactionKillSwitchError
from liquidator.engine.models import LiquidationOutcome, LiquidationPlan, OutcomeStatus
from liquidator.core.logger import get_logger, LIQUIDATIONS

log = get_logger(__name__)

_SWAP_PARAMS = "(uint8,address,bytes,uint256,uint256,address[])"
EXECUTE_SIGNATURE = f"execute((address,address,address,uint256,uint256,uint256),{_SWAP_PARAMS},{_SWAP_PARAMS},address)"
EXECUTE_ARG_TYPES = [
    "(address,address,address,uint256,uint256,uint256)",
    _SWAP_PARAMS,
    _SWAP_PARAMS,
    "address",
]
DEFAULT_SPACING_SECONDS = 5.0


def encode_execute(plan: LiquidationPlan) -> bytes:
    return encode_call(
        EXECUTE_SIGNATURE,
        EXECUTE_ARG_TYPES,
        [
            plan.to_liquidation_params(),
            plan.swap_quote_repay.to_swap_params(),
            plan.swap_quote_to_settlement.to_swap_params(),
            plan.receiver,
        ],
    )


def extract_revert_reason(error: BaseException) -> str:
    """First populated of: nested error reason, reason, message, data; else str(error)."""
    nested = getattr(error, "error", None)
    for candidate in (
        getattr(nested, "reason", None),
        getattr(error, "reason", None),
        getattr(error, "message", None),
        getattr(error, "data", None),
    ):
        if candidate:
            return str(candidate)
    if error.args and isinstance(error.args[0], dict) and error.args[0].get("message"):
        return str(error.args[0]["message"])
    return str(error) or type(error).__name__


class ExecutionCoordinator:
    def __init__(self, tx_manager, spacing_seconds: float = DEFAULT_SPACING_SECONDS):
        self.tx_manager = tx_manager
        self.spacing_seconds = spacing_seconds

    async def pace(self):
        """Fixed wait between attempts to stay under node rate limits and avoid nonce contention."""
        if self.spacing_seconds > 0:
            await asyncio.sleep(self.spacing_seconds)

    async def submit(self, plan: LiquidationPlan) -> LiquidationOutcome:
        tx_params = {"to": plan.liquidator, "data": encode_execute(plan), "value": 0}
        log.info(
            "LIQUIDATION_SUBMITTING",
            borrower=plan.borrower,
            collateral=plan.collateral_asset,
            debt=plan.debt_asset,
            amount=plan.seize_amount_cap,
            debt_to_cover=plan.debt_to_cover,
            repay_venue=plan.swap_quote_repay.venue_name,
            settlement_venue=plan.swap_quote_to_settlement.venue_name,
        )
        try:
            tx_hash = await self.tx_manager.build_and_send_transaction(tx_params)
            receipt = await self.tx_manager.wait_for_receipt(tx_hash)
        except TransactionKillSwitchError as e:
            log.critical("LIQUIDATION_BLOCKED_BY_KILL_SWITCH", borrower=plan.borrower)
            return self._failed(plan, str(e))
        except Exception as e:
            reason = extract_revert_reason(e)
            log.error("LIQUIDATION_REVERTED", borrower=plan.borrower, reason=reason)
            return self._failed(plan, reason)

        if receipt.get("status") != 1:
            log.error("LIQUIDATION_REVERTED_ON_CHAIN", borrower=plan.borrower, tx_hash=tx_hash)
            return self._failed(plan, "transaction reverted on-chain", tx_hash)

        LIQUIDATIONS.labels(OutcomeStatus.SUCCEEDED.value).inc()
        log.warning("LIQUIDATION_SUCCEEDED", borrower=plan.borrower, tx_hash=tx_hash)
        return LiquidationOutcome(
            pool=plan.pool,
            borrower=plan.borrower,
            status=OutcomeStatus.SUCCEEDED,
            tx_hash=tx_hash,
        )

    async def execute(self, plan: LiquidationPlan) -> LiquidationOutcome:
        """Submit, then always pace before the caller moves to the next borrower."""
        try:
            return await self.submit(plan)
        finally:
            await self.pace()

    def _failed(self, plan: LiquidationPlan, reason: str, tx_hash: str | None = None) -> LiquidationOutcome:
        LIQUIDATIONS.labels(OutcomeStatus.FAILED.value).inc()
        return LiquidationOutcome(
            pool=plan.pool,
            borrower=plan.borrower,
            status=OutcomeStatus.FAILED,
            reason=reason,
            tx_hash=tx_hash,
        )
