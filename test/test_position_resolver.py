import pytest

from liquidator.adapters.lending import encode_balance_of, encode_underlying_asset
from liquidator.adapters.mock import MockMulticallGateway
from liquidator.engine.position_resolver import (
    Lookup,
    PositionResolver,
    Side,
    build_position_request,
)
from conftest import address

BORROWER = address(0xB0B)
WETH, WBTC, USDC = address(0xE1), address(0xE2), address(0xE3)
A_WETH, A_WBTC, A_WETH_V2 = address(0xA1), address(0xA2), address(0xA3)
D_WETH, D_USDC = address(0xD1), address(0xD2)


@pytest.fixture
def gateway():
    gw = MockMulticallGateway()
    gw.set_wrapper(A_WETH, WETH, {BORROWER: 100})
    gw.set_wrapper(A_WBTC, WBTC, {BORROWER: 0})
    gw.set_wrapper(A_WETH_V2, WETH, {BORROWER: 50})
    gw.set_wrapper(D_WETH, WETH, {BORROWER: 0})
    gw.set_wrapper(D_USDC, USDC, {BORROWER: 40})
    return gw


def test_request_interleaves_balance_and_underlying_collateral_first():
    request = build_position_request(BORROWER, [A_WETH, A_WBTC], [D_USDC])

    assert [(d.side, d.wrapper, d.lookup) for d in request.descriptors] == [
        (Side.COLLATERAL, A_WETH, Lookup.BALANCE),
        (Side.COLLATERAL, A_WETH, Lookup.UNDERLYING),
        (Side.COLLATERAL, A_WBTC, Lookup.BALANCE),
        (Side.COLLATERAL, A_WBTC, Lookup.UNDERLYING),
        (Side.DEBT, D_USDC, Lookup.BALANCE),
        (Side.DEBT, D_USDC, Lookup.UNDERLYING),
    ]
    assert request.calls[0].call_data == encode_balance_of(BORROWER)
    assert request.calls[1].call_data == encode_underlying_asset()


@pytest.mark.asyncio
async def test_resolve_builds_holdings_and_index(gateway):
    resolver = PositionResolver(gateway)
    snapshot = await resolver.resolve(BORROWER, [A_WETH, A_WBTC, A_WETH_V2], [D_WETH, D_USDC])

    assert len(gateway.batches) == 1
    assert len(gateway.batches[0]) == 10

    assert [(h.underlying_asset, h.wrapper, h.amount) for h in snapshot.collateral] == [
        (WETH, A_WETH, 100),
        (WETH, A_WETH_V2, 50),
    ]
    assert [(h.underlying_asset, h.wrapper, h.amount) for h in snapshot.debt] == [(USDC, D_USDC, 40)]
    assert snapshot.is_liquidatable_shape

    # Zero balances never reach the index and the first wrapper wins
    assert snapshot.underlying_index.wrapper_for(WETH) == A_WETH
    assert snapshot.underlying_index.wrapper_for(WETH.lower()) == A_WETH
    assert snapshot.underlying_index.wrapper_for(WBTC) is None
    assert snapshot.underlying_index.wrapper_for(USDC) is None
    assert len(snapshot.underlying_index) == 1

    # Market index spans every collateral-side wrapper, held or not
    assert snapshot.market_index.wrapper_for(WBTC) == A_WBTC
    assert snapshot.market_index.wrapper_for(WETH) == A_WETH
    assert snapshot.market_index.wrapper_for(USDC) is None
    assert snapshot.liquidity_wrapper_for(WBTC) == A_WBTC


@pytest.mark.asyncio
async def test_resolve_without_positions(gateway):
    resolver = PositionResolver(gateway)
    snapshot = await resolver.resolve(address(0xCAFE), [A_WETH], [D_USDC])
    assert snapshot.collateral == []
    assert snapshot.debt == []
    assert not snapshot.is_liquidatable_shape
    assert len(snapshot.underlying_index) == 0
    assert snapshot.market_index.wrapper_for(WETH) == A_WETH


def test_decoded_addresses_are_checksummed():
    from eth_abi import encode
    from liquidator.adapters.lending import decode_address

    assert decode_address(encode(["address"], [WETH.lower()])) == WETH
