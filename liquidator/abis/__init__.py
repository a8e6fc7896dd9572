"""ABI fragments for every contract the engine talks to."""

from liquidator.abis.lending import POOL_ABI, ERC20_ABI, ORACLE_ABI
from liquidator.abis.multicall import MULTICALL3_ABI
from liquidator.abis.routers import V2_ROUTER_ABI, V3_QUOTER_ABI, AGGREGATOR_ROUTER_ABI

__all__ = [
    "POOL_ABI",
    "ERC20_ABI",
    "ORACLE_ABI",
    "MULTICALL3_ABI",
    "V2_ROUTER_ABI",
    "V3_QUOTER_ABI",
    "AGGREGATOR_ROUTER_ABI",
]
