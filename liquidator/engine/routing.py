# /liquidator/engine/routing.py
# Best-quote selection across swap venues, with per-venue failure isolation.
import asyncio
from typing import List, NamedTuple, Optional, Sequence
from web3 import Web3

from liquidator.adapters.dex import SwapVenue, encode_address_path
from liquidator.engine.models import SwapQuote, VenueKind
from liquidator.core.logger import get_logger, QUOTE_FAILURES

log = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class LiquidationRoutes(NamedTuple):
    repay: SwapQuote  # seized collateral -> debt asset
    settlement: SwapQuote  # debt asset -> settlement asset


class SwapRouteAggregator:
    def __init__(self, venues: Sequence[SwapVenue], passthrough_router: Optional[str] = None):
        self.venues = list(venues)
        self.passthrough_router = Web3.to_checksum_address(passthrough_router or ZERO_ADDRESS)

    async def _isolated_quote(self, venue: SwapVenue, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        try:
            quote = await venue.quote(token_in, token_out, amount_in)
        except Exception as e:
            log.error("VENUE_QUOTE_ERROR", venue=venue.name, token_in=token_in, token_out=token_out, error=str(e))
            quote = None
        if quote is None:
            QUOTE_FAILURES.labels(venue.name).inc()
        return quote

    async def collect_quotes(self, token_in: str, token_out: str, amount_in: int) -> List[SwapQuote]:
        quotes = await asyncio.gather(
            *(self._isolated_quote(v, token_in, token_out, amount_in) for v in self.venues)
        )
        return [q for q in quotes if q is not None]

    async def best_quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        """Highest slippage-adjusted output, or None if no venue produced a quote."""
        quotes = await self.collect_quotes(token_in, token_out, amount_in)
        if not quotes:
            log.warning("NO_VALID_QUOTE", token_in=token_in, token_out=token_out, amount_in=amount_in)
            return None

        ranked = sorted(quotes, key=lambda q: q.amount_out_min, reverse=True)
        best = ranked[0]
        log.info(
            "BEST_QUOTE_SELECTED",
            venue=best.venue_name,
            amount_in=amount_in,
            amount_out_min=best.amount_out_min,
            alternatives={q.venue_name: q.amount_out_min for q in ranked[1:]},
        )
        return best

    def passthrough_quote(self, token_in: str, token_out: str, amount_in: int) -> SwapQuote:
        """No-swap leg used when the debt asset already is the settlement asset."""
        return SwapQuote(
            venue=VenueKind.AMM_V2,
            router=self.passthrough_router,
            path=encode_address_path([token_in, token_out]),
            amount_in=amount_in,
            amount_out=amount_in,
            amount_out_min=amount_in,
            venue_name="passthrough",
        )

    async def plan_routes(
        self,
        collateral_asset: str,
        debt_asset: str,
        collateral_amount: int,
        settlement_asset: str,
    ) -> Optional[LiquidationRoutes]:
        """Quotes both downstream swaps; None if either leg has no usable quote."""
        repay = await self.best_quote(collateral_asset, debt_asset, collateral_amount)
        if repay is None:
            return None

        settle_amount = repay.amount_out_min
        if debt_asset.lower() == settlement_asset.lower():
            log.info("DEBT_ASSET_IS_SETTLEMENT_ASSET", asset=debt_asset, amount=settle_amount)
            return LiquidationRoutes(repay, self.passthrough_quote(debt_asset, settlement_asset, settle_amount))

        if settle_amount == 0:
            log.warning("REPAY_QUOTE_HAS_NO_OUTPUT", venue=repay.venue_name)
            return None
        settlement = await self.best_quote(debt_asset, settlement_asset, settle_amount)
        if settlement is None:
            return None
        return LiquidationRoutes(repay, settlement)
