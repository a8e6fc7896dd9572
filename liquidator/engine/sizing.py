# /liquidator/engine/sizing.py
# Close-factor based debt sizing. Integer arithmetic only.
from typing import Optional

from liquidator.engine.models import BPS, MAX_UINT256, WAD, SizingResult
from liquidator.core.logger import get_logger

log = get_logger(__name__)

FULL_CLOSE_FACTOR_HF_THRESHOLD = WAD * 95 // 100
FULL_CLOSE_FACTOR_BPS = 10_000
DEFAULT_CLOSE_FACTOR_BPS = 5_000


def close_factor_bps(health_factor: int) -> int:
    """100% below HF 0.95, otherwise 50%. Only defined for liquidatable positions."""
    if health_factor <= 0 or health_factor > WAD:
        raise ValueError(f"health factor {health_factor} is not in the liquidatable range")
    if health_factor < FULL_CLOSE_FACTOR_HF_THRESHOLD:
        return FULL_CLOSE_FACTOR_BPS
    return DEFAULT_CLOSE_FACTOR_BPS


def size_liquidation(health_factor: int, debt_balance: int, available_liquidity: int) -> Optional[SizingResult]:
    """
    Maximum debt to cover this cycle, capped by the debt asset's available liquidity.

    When liquidity is the binding term the exact liquidity amount is requested.
    Otherwise ``debt_to_cover`` is the MAX_UINT256 sentinel so the protocol applies
    its own close-factor ceiling; ``amount`` still carries the computed figure.

    Returns None when nothing can be liquidated (no liquidity or a zero amount).
    """
    if available_liquidity == 0:
        log.info("SIZING_NO_LIQUIDITY", health_factor=health_factor, debt_balance=debt_balance)
        return None

    cf_bps = close_factor_bps(health_factor)
    cf_amount = debt_balance * cf_bps // BPS
    if cf_amount == 0:
        log.info("SIZING_ZERO_AMOUNT", health_factor=health_factor, debt_balance=debt_balance)
        return None

    liquidity_bound = available_liquidity < cf_amount
    amount = available_liquidity if liquidity_bound else cf_amount
    result = SizingResult(
        close_factor_bps=cf_bps,
        close_factor_amount=cf_amount,
        available_liquidity=available_liquidity,
        amount=amount,
        debt_to_cover=available_liquidity if liquidity_bound else MAX_UINT256,
        liquidity_bound=liquidity_bound,
    )
    log.info(
        "LIQUIDATION_SIZED",
        close_factor_bps=cf_bps,
        close_factor_amount=cf_amount,
        available_liquidity=available_liquidity,
        amount=amount,
        liquidity_bound=liquidity_bound,
    )
    return result
