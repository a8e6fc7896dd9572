# /liquidator/core/gas_estimator.py
# Centralized EIP-1559 fee estimation.

from decimal import Decimal
from web3 import AsyncWeb3

from liquidator.core.logger import get_logger
from liquidator.core.decorators import retriable_network_call

log = get_logger(__name__)


class GasEstimator:
    """
    Provides dynamic gas fee estimates from the primary node.
    """
    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3
        log.info("GAS_ESTIMATOR_INITIALIZED")

    @retriable_network_call
    async def get_base_fee(self) -> int:
        """Fetches the latest block's base fee."""
        latest_block = await self.w3.eth.get_block('latest')
        return latest_block['baseFeePerGas']

    @retriable_network_call
    async def get_priority_fee(self) -> int:
        try:
            return await self.w3.eth.max_priority_fee
        except Exception:
            # Fallback for nodes that don't support eth_maxPriorityFeePerGas
            log.warning("MAX_PRIORITY_FEE_RPC_UNSUPPORTED_FALLING_BACK")
            return int(Decimal("1.5") * 10**9)

    async def estimate_eip1559_fees(self, priority_multiplier: Decimal = Decimal("1.2")) -> dict:
        """
        Provides a complete EIP-1559 fee structure.

        Args:
            priority_multiplier: A buffer to increase likelihood of inclusion.

        Returns:
            A dictionary with 'maxFeePerGas' and 'maxPriorityFeePerGas'.
        """
        base_fee = await self.get_base_fee()
        priority_fee = await self.get_priority_fee()

        final_priority_fee = int(Decimal(priority_fee) * priority_multiplier)
        # Headroom for one base-fee doubling before inclusion
        max_fee = base_fee * 2 + final_priority_fee

        return {
            "maxPriorityFeePerGas": final_priority_fee,
            "maxFeePerGas": max_fee
        }
