# /liquidator/core/tx.py
# Async transaction lifecycle: durable nonce, EIP-1559 fees, sign, broadcast, receipt.
import asyncio
from typing import Dict, Any
from web3 import Web3

from liquidator.core.config import settings
from liquidator.core.kill import is_kill_switch_active
from liquidator.core.logger import get_logger
from liquidator.core.resilient_rpc import ResilientWeb3Provider
from liquidator.core.nonce_manager import NonceManager
from liquidator.core.gas_estimator import GasEstimator

log = get_logger(__name__)


class TransactionKillSwitchError(Exception):
    pass


class TransactionManager:
    """Manages the full lifecycle of transactions asynchronously."""
    def __init__(self, provider: ResilientWeb3Provider):
        self.provider = provider
        self.account = provider.account
        self.address = provider.address
        self.w3 = None
        self.nonce_manager = None
        self.gas_estimator = None
        self._nonce_lock = asyncio.Lock()
        self.is_initialized = False

    async def initialize(self):
        """Initializes all async sub-components."""
        if self.is_initialized:
            return
        if self.account is None:
            raise ValueError("EXECUTOR_PRIVATE_KEY is not configured.")
        await self.provider.initialize()
        self.w3 = self.provider.get_primary_provider()
        self.nonce_manager = NonceManager(self.w3, self.address)
        await self.nonce_manager.initialize()
        self.gas_estimator = GasEstimator(self.w3)
        self.is_initialized = True
        log.info("TRANSACTION_MANAGER_INITIALIZED", address=self.address)

    async def build_and_send_transaction(self, tx_params: Dict[str, Any]) -> str:
        """Builds, signs, and sends a transaction with durable nonce management."""
        if is_kill_switch_active():
            log.critical("TRANSACTION_BLOCKED_BY_KILL_SWITCH", to=tx_params.get("to"))
            raise TransactionKillSwitchError("Kill switch is active. Halting transaction.")

        async with self._nonce_lock:
            current_nonce = await self.nonce_manager.get()
            try:
                full_tx_params = {
                    'from': self.address,
                    'nonce': current_nonce,
                    'chainId': settings.chain_id,
                    **tx_params
                }

                # A reverting call surfaces here, before anything is broadcast
                if 'gas' not in full_tx_params:
                    full_tx_params['gas'] = await self.w3.eth.estimate_gas(full_tx_params)

                if 'maxFeePerGas' not in full_tx_params:
                    full_tx_params.update(await self.gas_estimator.estimate_eip1559_fees())

                signed_tx = self.w3.eth.account.sign_transaction(full_tx_params, self.account.key)
                tx_hash = await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)

                # Increment durable nonce ONLY on successful broadcast
                await self.nonce_manager.bump()

                tx_hash_hex = Web3.to_hex(tx_hash)
                log.info("TRANSACTION_BROADCASTED", tx_hash=tx_hash_hex, nonce=current_nonce)
                return tx_hash_hex
            except Exception as e:
                log.error("TRANSACTION_FAILURE", nonce=current_nonce, error=str(e))
                raise

    async def wait_for_receipt(self, tx_hash: str, timeout: int | None = None) -> Dict[str, Any]:
        """Blocks until the transaction is mined and returns its receipt."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout or settings.RECEIPT_TIMEOUT_SECONDS
        )
        log.info("TRANSACTION_MINED", tx_hash=tx_hash, status=receipt["status"], block=receipt["blockNumber"])
        return receipt

    def close(self):
        """Releases the nonce file lock."""
        if self.nonce_manager:
            self.nonce_manager.close()
