import pytest

from liquidator.adapters.dex import encode_address_path
from liquidator.adapters.mock import MockSwapVenue
from liquidator.core.logger import QUOTE_FAILURES
from liquidator.engine.models import VenueKind
from liquidator.engine.routing import SwapRouteAggregator, ZERO_ADDRESS
from conftest import address

WETH, USDC, USDT = address(0xE1), address(0xE2), address(0xE3)


@pytest.fixture
def venues():
    v2 = MockSwapVenue("v2", VenueKind.AMM_V2, slippage_bps=50, router_address=address(0xF1))
    v3 = MockSwapVenue("v3", VenueKind.CONCENTRATED_V3, slippage_bps=50, router_address=address(0xF2))
    agg = MockSwapVenue("aggregator", VenueKind.AGGREGATOR, slippage_bps=100, router_address=address(0xF3))
    return v2, v3, agg


@pytest.mark.asyncio
async def test_best_quote_ranks_by_slippage_adjusted_output(venues):
    v2, v3, agg = venues
    v2.set_quote(WETH, USDC, 1000)   # min 995
    v3.set_quote(WETH, USDC, 990)    # min 985
    agg.set_quote(WETH, USDC, 1004)  # min 993
    router = SwapRouteAggregator(venues)

    best = await router.best_quote(WETH, USDC, 10**18)
    assert best.venue_name == "v2"
    assert best.venue == VenueKind.AMM_V2
    assert best.amount_out == 1000
    assert best.amount_out_min == 995
    assert best.amount_in == 10**18


@pytest.mark.asyncio
async def test_failing_venue_is_isolated(venues):
    v2, v3, agg = venues
    v2.error = ConnectionError("rpc down")
    agg.set_quote(WETH, USDC, 1200)
    counter = QUOTE_FAILURES.labels("v2")
    before = counter._value.get()

    best = await SwapRouteAggregator(venues).best_quote(WETH, USDC, 10**18)

    assert best.venue_name == "aggregator"
    assert best.amount_out_min == 1188
    assert counter._value.get() == before + 1


@pytest.mark.asyncio
async def test_single_success_is_returned_unmodified(venues):
    v2, v3, agg = venues
    v3.set_quote(WETH, USDC, 777)
    expected = await v3.quote(WETH, USDC, 5)
    best = await SwapRouteAggregator(venues).best_quote(WETH, USDC, 5)
    assert best == expected


@pytest.mark.asyncio
async def test_no_quotes_is_none(venues):
    assert await SwapRouteAggregator(venues).best_quote(WETH, USDC, 10**18) is None
    assert await SwapRouteAggregator([]).best_quote(WETH, USDC, 10**18) is None


@pytest.mark.asyncio
async def test_plan_routes_chains_settlement_on_min_output(venues):
    v2, v3, agg = venues
    v2.set_quote(WETH, USDC, 2000 * 10**6)
    agg.set_quote(USDC, USDT, 1999 * 10**6)
    routes = await SwapRouteAggregator(venues).plan_routes(WETH, USDC, 10**18, USDT)

    assert routes.repay.venue_name == "v2"
    assert routes.settlement.venue_name == "aggregator"
    assert routes.settlement.amount_in == routes.repay.amount_out_min == 1990 * 10**6
    assert (USDC, USDT, 1990 * 10**6) in agg.requests


@pytest.mark.asyncio
async def test_plan_routes_passthrough_when_debt_is_settlement(venues):
    v2, v3, agg = venues
    v2.set_quote(WETH, USDC, 2000 * 10**6)
    routes = await SwapRouteAggregator(venues).plan_routes(WETH, USDC, 10**18, USDC.lower())

    settlement = routes.settlement
    assert settlement.venue_name == "passthrough"
    assert settlement.router == ZERO_ADDRESS
    assert settlement.amount_in == settlement.amount_out == settlement.amount_out_min == 1990 * 10**6
    assert settlement.path == encode_address_path([USDC, USDC])
    assert all(req[0] == WETH for v in venues for req in v.requests)


@pytest.mark.asyncio
async def test_plan_routes_without_settlement_quote(venues):
    v2, v3, agg = venues
    v2.set_quote(WETH, USDC, 2000 * 10**6)
    assert await SwapRouteAggregator(venues).plan_routes(WETH, USDC, 10**18, USDT) is None


@pytest.mark.asyncio
async def test_plan_routes_without_repay_quote(venues):
    assert await SwapRouteAggregator(venues).plan_routes(WETH, USDC, 10**18, USDC) is None
