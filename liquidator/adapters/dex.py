# /liquidator/adapters/dex.py
# Swap venue adapters. Each one normalizes its venue's quote call into a SwapQuote,
# or returns None when it has nothing usable.
import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from eth_abi import encode
from eth_abi.packed import encode_packed
from web3 import AsyncWeb3, Web3

from liquidator.abis import V2_ROUTER_ABI, V3_QUOTER_ABI, AGGREGATOR_ROUTER_ABI
from liquidator.engine.models import BPS, SwapQuote, VenueKind
from liquidator.core.logger import get_logger

log = get_logger(__name__)

DEFAULT_V3_FEE_TIERS = (100, 500, 3000, 10000)  # 0.01%, 0.05%, 0.3%, 1%
# Used when a v2 router read fails: 0.3% pool fee plus ~1% spread
V2_FALLBACK_OUT_NUMERATOR = 987
V2_FALLBACK_OUT_DENOMINATOR = 1000


def encode_address_path(path: Sequence[str]) -> bytes:
    return encode(["address[]"], [[Web3.to_checksum_address(p) for p in path]])


def encode_v3_path(token_in: str, fee: int, token_out: str) -> bytes:
    return encode_packed(
        ["address", "uint24", "address"],
        [Web3.to_checksum_address(token_in), fee, Web3.to_checksum_address(token_out)],
    )


class SwapVenue(ABC):
    kind: VenueKind
    slippage_bps: int = 50

    def __init__(self, name: str, router_address: str):
        self.name = name
        self.router_address = Web3.to_checksum_address(router_address)

    def build_quote(
        self,
        path: bytes,
        amount_in: int,
        amount_out: int,
        adapters: Sequence[str] = (),
    ) -> SwapQuote:
        return SwapQuote(
            venue=self.kind,
            router=self.router_address,
            path=path,
            amount_in=amount_in,
            amount_out=amount_out,
            amount_out_min=amount_out * (BPS - self.slippage_bps) // BPS,
            adapters=list(adapters),
            venue_name=self.name,
        )

    @abstractmethod
    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        raise NotImplementedError


class V2Venue(SwapVenue):
    """Constant-product router. Falls back to a fixed-cost estimate if the read fails."""
    kind = VenueKind.AMM_V2
    slippage_bps = 50

    def __init__(self, w3: AsyncWeb3, router_address: str, name: str = "v2"):
        super().__init__(name, router_address)
        self.router = w3.eth.contract(address=self.router_address, abi=V2_ROUTER_ABI)

    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        try:
            path = [Web3.to_checksum_address(token_in), Web3.to_checksum_address(token_out)]
            encoded_path = encode_address_path(path)
        except Exception as e:
            log.error("V2_QUOTE_ERROR", venue=self.name, token_in=token_in, token_out=token_out, error=str(e))
            return None

        amount_out = None
        try:
            amounts = await self.router.functions.getAmountsOut(amount_in, path).call()
            if amounts and len(amounts) > 1:
                amount_out = amounts[-1]
        except Exception as e:
            log.warning(
                "V2_GET_AMOUNTS_OUT_FAILED_USING_ESTIMATE",
                venue=self.name,
                router=self.router_address,
                path=path,
                amount_in=amount_in,
                error=str(e),
            )

        if amount_out is None:
            amount_out = amount_in * V2_FALLBACK_OUT_NUMERATOR // V2_FALLBACK_OUT_DENOMINATOR
            log.info("V2_FALLBACK_ESTIMATE", venue=self.name, amount_in=amount_in, amount_out=amount_out)

        return self.build_quote(encoded_path, amount_in, amount_out)


class V3Venue(SwapVenue):
    """Concentrated-liquidity venue quoted across a fixed set of fee tiers."""
    kind = VenueKind.CONCENTRATED_V3
    slippage_bps = 50

    def __init__(
        self,
        w3: AsyncWeb3,
        router_address: str,
        quoter_address: str,
        fee_tiers: Sequence[int] = DEFAULT_V3_FEE_TIERS,
        name: str = "v3",
    ):
        super().__init__(name, router_address)
        self.quoter_address = Web3.to_checksum_address(quoter_address)
        self.quoter = w3.eth.contract(address=self.quoter_address, abi=V3_QUOTER_ABI)
        self.fee_tiers = tuple(fee_tiers)

    async def _quote_tier(self, token_in: str, token_out: str, fee: int, amount_in: int) -> Optional[int]:
        try:
            path = encode_v3_path(token_in, fee, token_out)
            result = await self.quoter.functions.quoteExactInput(path, amount_in).call()
        except Exception as e:
            log.debug("V3_TIER_FAILED", venue=self.name, fee=fee, error=str(e))
            return None
        # QuoterV2 returns (amountOut, ...); QuoterV1 returns amountOut alone
        amount_out = result[0] if isinstance(result, (list, tuple)) else result
        return amount_out if amount_out and amount_out > 0 else None

    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        outputs = await asyncio.gather(
            *(self._quote_tier(token_in, token_out, fee, amount_in) for fee in self.fee_tiers)
        )

        best_fee, best_out = None, 0
        for fee, amount_out in zip(self.fee_tiers, outputs):
            if amount_out is not None and amount_out > best_out:
                best_fee, best_out = fee, amount_out

        if best_fee is None:
            log.info("V3_NO_POOL_FOR_ANY_TIER", venue=self.name, token_in=token_in, token_out=token_out)
            return None

        log.info("V3_BEST_TIER", venue=self.name, fee=best_fee, amount_out=best_out)
        return self.build_quote(encode_v3_path(token_in, best_fee, token_out), amount_in, best_out)


class AggregatorVenue(SwapVenue):
    """Router with its own bounded-hop path search; its answer is adopted verbatim."""
    kind = VenueKind.AGGREGATOR
    slippage_bps = 100

    def __init__(self, w3: AsyncWeb3, router_address: str, max_steps: int = 4, name: str = "aggregator"):
        super().__init__(name, router_address)
        self.router = w3.eth.contract(address=self.router_address, abi=AGGREGATOR_ROUTER_ABI)
        self.max_steps = max_steps

    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        try:
            offer = await self.router.functions.findBestPath(
                amount_in,
                Web3.to_checksum_address(token_in),
                Web3.to_checksum_address(token_out),
                self.max_steps,
            ).call()
        except Exception as e:
            log.warning("AGGREGATOR_FIND_BEST_PATH_FAILED", venue=self.name, token_in=token_in, token_out=token_out, error=str(e))
            return None

        amounts, adapters, path = list(offer[0]), list(offer[1]), list(offer[2])
        amount_out = amounts[-1] if amounts else 0
        if amount_out <= 0 or not path:
            log.info("AGGREGATOR_NO_PATH", venue=self.name, token_in=token_in, token_out=token_out)
            return None

        log.info("AGGREGATOR_PATH_FOUND", venue=self.name, hops=len(path) - 1, amount_out=amount_out, adapters=adapters)
        return self.build_quote(encode_address_path(path), amount_in, amount_out, adapters)


def build_venues(w3: AsyncWeb3, settings) -> List[SwapVenue]:
    """Instantiates every venue that has its addresses configured."""
    venues: List[SwapVenue] = []
    if settings.V2_ROUTER_ADDRESS:
        venues.append(V2Venue(w3, settings.V2_ROUTER_ADDRESS))
    if settings.V3_ROUTER_ADDRESS and settings.V3_QUOTER_ADDRESS:
        venues.append(V3Venue(w3, settings.V3_ROUTER_ADDRESS, settings.V3_QUOTER_ADDRESS, settings.V3_FEE_TIERS))
    if settings.AGGREGATOR_ROUTER_ADDRESS:
        venues.append(AggregatorVenue(w3, settings.AGGREGATOR_ROUTER_ADDRESS, settings.AGGREGATOR_MAX_STEPS))
    log.info("SWAP_VENUES_CONFIGURED", venues=[v.name for v in venues])
    return venues
