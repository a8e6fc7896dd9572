# /liquidator/engine/position_resolver.py
# Resolves one borrower's collateral and debt holdings with a single batched read.
from enum import Enum
from typing import Dict, List, NamedTuple, Sequence, Tuple

from liquidator.adapters.lending import (
    encode_balance_of,
    encode_underlying_asset,
    decode_uint,
    decode_address,
)
from liquidator.adapters.multicall import BatchRequest, MulticallGateway
from liquidator.engine.models import Holding, PositionSnapshot, UnderlyingIndex
from liquidator.core.logger import get_logger

log = get_logger(__name__)


class Side(str, Enum):
    COLLATERAL = "collateral"
    DEBT = "debt"


class Lookup(str, Enum):
    BALANCE = "balance"
    UNDERLYING = "underlying"


class WrapperLookup(NamedTuple):
    side: Side
    position: int  # index of the wrapper within its side's list
    wrapper: str
    lookup: Lookup


def build_position_request(
    borrower: str,
    collateral_wrappers: Sequence[str],
    debt_wrappers: Sequence[str],
) -> BatchRequest[WrapperLookup]:
    """Balance then underlying for every wrapper, collateral side first."""
    request: BatchRequest[WrapperLookup] = BatchRequest()
    for side, wrappers in ((Side.COLLATERAL, collateral_wrappers), (Side.DEBT, debt_wrappers)):
        for position, wrapper in enumerate(wrappers):
            request.add(wrapper, encode_balance_of(borrower), WrapperLookup(side, position, wrapper, Lookup.BALANCE))
            request.add(wrapper, encode_underlying_asset(), WrapperLookup(side, position, wrapper, Lookup.UNDERLYING))
    return request


def decode_positions(borrower: str, results: Sequence[Tuple[WrapperLookup, bytes]]) -> PositionSnapshot:
    balances: Dict[Tuple[Side, int], int] = {}
    underlyings: Dict[Tuple[Side, int], str] = {}
    order: List[Tuple[Side, int, str]] = []

    for descriptor, raw in results:
        key = (descriptor.side, descriptor.position)
        if descriptor.lookup is Lookup.BALANCE:
            balances[key] = decode_uint(raw)
            order.append((descriptor.side, descriptor.position, descriptor.wrapper))
        else:
            underlyings[key] = decode_address(raw)

    snapshot = PositionSnapshot(borrower=borrower)
    for side, position, wrapper in order:
        amount = balances[(side, position)]
        underlying = underlyings[(side, position)]
        if side is Side.COLLATERAL:
            snapshot.market_index.register(underlying, wrapper)
        if amount == 0:
            continue
        holding = Holding(underlying_asset=underlying, wrapper=wrapper, amount=amount)
        if side is Side.COLLATERAL:
            snapshot.collateral.append(holding)
            # Liquidity for an asset sits in its collateral-side wrapper
            snapshot.underlying_index.register(underlying, wrapper)
        else:
            snapshot.debt.append(holding)
    return snapshot


class PositionResolver:
    def __init__(self, gateway: MulticallGateway):
        self.gateway = gateway

    async def resolve(
        self,
        borrower: str,
        collateral_wrappers: Sequence[str],
        debt_wrappers: Sequence[str],
    ) -> PositionSnapshot:
        request = build_position_request(borrower, collateral_wrappers, debt_wrappers)
        _, results = await self.gateway.execute(request)
        snapshot = decode_positions(borrower, results)
        log.info(
            "POSITIONS_RESOLVED",
            borrower=borrower,
            collateral=len(snapshot.collateral),
            debt=len(snapshot.debt),
            indexed=len(snapshot.underlying_index),
            market_wrappers=len(snapshot.market_index),
        )
        return snapshot
