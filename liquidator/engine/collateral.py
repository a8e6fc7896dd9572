# /liquidator/engine/collateral.py
# Ranks a borrower's collateral by USD value and picks the best seizable asset.
import asyncio
from typing import List, Optional, Sequence

from liquidator.adapters.lending import LendingProtocolAdapter
from liquidator.engine.models import CollateralCandidate, Holding
from liquidator.core.logger import get_logger

log = get_logger(__name__)

DEFAULT_ORACLE_DECIMALS = 8


def value_usd(price: int, balance: int, token_decimals: int, oracle_decimals: int) -> int:
    """Whole-USD value, truncated at each division."""
    return price * balance // 10**token_decimals // 10**oracle_decimals


class CollateralSelector:
    def __init__(self, lending: LendingProtocolAdapter, oracle_decimals: int = DEFAULT_ORACLE_DECIMALS):
        self.lending = lending
        self.oracle_decimals = oracle_decimals

    async def evaluate(self, pool: str, oracle: str, holding: Holding) -> Optional[CollateralCandidate]:
        """Candidate for one holding, or None if it is ineligible or a lookup failed."""
        asset = holding.underlying_asset
        try:
            config = await self.lending.get_reserve_config(pool, asset)
            if not config.collateral_eligible:
                log.info("COLLATERAL_INELIGIBLE", pool=pool, asset=asset)
                return None
            price, decimals = await asyncio.gather(
                self.lending.get_asset_price(oracle, asset),
                self.lending.get_decimals(asset),
            )
        except Exception as e:
            log.warning("COLLATERAL_LOOKUP_FAILED", pool=pool, asset=asset, error=str(e))
            return None

        return CollateralCandidate(
            asset=asset,
            balance=holding.amount,
            price_usd=price,
            token_decimals=decimals,
            value_usd=value_usd(price, holding.amount, decimals, self.oracle_decimals),
            liquidation_bonus_bps=config.liquidation_bonus_bps,
            collateral_eligible=config.collateral_eligible,
        )

    async def rank(self, pool: str, oracle: str, holdings: Sequence[Holding]) -> List[CollateralCandidate]:
        """Eligible candidates, highest value first; equal values keep input order."""
        evaluated = await asyncio.gather(*(self.evaluate(pool, oracle, h) for h in holdings))
        candidates = [c for c in evaluated if c is not None]
        return sorted(candidates, key=lambda c: c.value_usd, reverse=True)

    async def select(self, pool: str, oracle: str, holdings: Sequence[Holding]) -> Optional[CollateralCandidate]:
        ranked = await self.rank(pool, oracle, holdings)
        if not ranked:
            log.info("NO_ELIGIBLE_COLLATERAL", pool=pool, holdings=len(holdings))
            return None
        best = ranked[0]
        log.info(
            "COLLATERAL_SELECTED",
            pool=pool,
            asset=best.asset,
            value_usd=best.value_usd,
            bonus_bps=best.liquidation_bonus_bps,
            candidates=len(ranked),
        )
        return best
