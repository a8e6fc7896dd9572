# /liquidator/adapters/mock.py
# In-memory stand-ins for the chain-facing adapters, for simulation and tests.
# Addresses are matched case-insensitively throughout.
from typing import Callable, Dict, List, Optional, Set, Tuple
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from liquidator.adapters.dex import SwapVenue, encode_address_path
from liquidator.adapters.multicall import BatchCallError, Call, MulticallGateway
from liquidator.core.tx import TransactionManager, TransactionKillSwitchError
from liquidator.core.kill import check, KillSwitchActiveError
from liquidator.engine.models import ReserveConfig, SwapQuote, VenueKind
from liquidator.core.logger import get_logger

log = get_logger(__name__)

GET_USER_ACCOUNT_DATA = function_signature_to_4byte_selector("getUserAccountData(address)")
BALANCE_OF = function_signature_to_4byte_selector("balanceOf(address)")
UNDERLYING_ASSET_ADDRESS = function_signature_to_4byte_selector("UNDERLYING_ASSET_ADDRESS()")


class MockTransactionManager(TransactionManager):
    """Records transactions instead of broadcasting them."""
    def __init__(self, from_address: str = "0x000000000000000000000000000000000000dEaD"):
        self.address = from_address
        self.nonce = 0
        self.sent_transactions: List[Dict] = []
        self.receipts: Dict[str, Dict] = {}
        self.next_receipt_status = 1
        self._must_fail: Optional[Exception] = None
        log.info("MOCK_TRANSACTION_MANAGER_INITIALIZED", address=self.address)

    def set_next_call_to_fail(self, error: Exception | None = None):
        """The next send raises *error* (a ValueError by default)."""
        self._must_fail = error or ValueError("Forced failure for testing.")

    async def build_and_send_transaction(self, tx_params: Dict) -> str:
        try:
            check()
        except KillSwitchActiveError:
            log.warning("MOCK_TX_BLOCKED_BY_KILL_SWITCH", to=tx_params.get("to"))
            raise TransactionKillSwitchError("Kill switch is active.")

        if self._must_fail is not None:
            error, self._must_fail = self._must_fail, None
            log.error("MOCK_TX_FORCED_FAILURE", to=tx_params.get("to"), error=str(error))
            raise error

        tx_hash = "0x" + f"{self.nonce:064x}"
        self.sent_transactions.append({"hash": tx_hash, "nonce": self.nonce, **tx_params})
        self.receipts[tx_hash] = {"status": self.next_receipt_status, "blockNumber": 1, "transactionHash": tx_hash}
        self.nonce += 1
        log.info("MOCK_TRANSACTION_SENT", tx_hash=tx_hash, to=tx_params.get("to"))
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str, timeout: int | None = None) -> Dict:
        return self.receipts[tx_hash]

    def close(self):
        pass


class MockMulticallGateway(MulticallGateway):
    """
    Answers batched health and position reads from in-memory tables.

    Any call whose target is in *failing_targets* fails the whole batch, the way
    a reverting sub-call fails a real `aggregate`.
    """
    def __init__(self, block_number: int = 1):
        self.block_number = block_number
        self.health_factors: Dict[Tuple[str, str], int] = {}
        self.balances: Dict[Tuple[str, str], int] = {}
        self.underlyings: Dict[str, str] = {}
        self.failing_targets: Set[str] = set()
        self.batches: List[List[Call]] = []

    def set_health_factor(self, pool: str, borrower: str, health_factor: int):
        self.health_factors[(pool.lower(), borrower.lower())] = health_factor

    def set_wrapper(self, wrapper: str, underlying: str, balances: Dict[str, int] | None = None):
        self.underlyings[wrapper.lower()] = underlying
        for holder, amount in (balances or {}).items():
            self.balances[(wrapper.lower(), holder.lower())] = amount

    def fail_target(self, target: str):
        self.failing_targets.add(target.lower())

    def _answer(self, call: Call) -> bytes:
        target = call.target.lower()
        if target in self.failing_targets:
            raise BatchCallError(f"call to {call.target} reverted")
        selector, args = call.call_data[:4], call.call_data[4:]
        if selector == GET_USER_ACCOUNT_DATA:
            (user,) = decode(["address"], args)
            hf = self.health_factors.get((target, user.lower()), 0)
            return encode(["uint256"] * 6, [0, 0, 0, 0, 0, hf])
        if selector == BALANCE_OF:
            (holder,) = decode(["address"], args)
            return encode(["uint256"], [self.balances.get((target, holder.lower()), 0)])
        if selector == UNDERLYING_ASSET_ADDRESS:
            return encode(["address"], [self.underlyings[target]])
        raise BatchCallError(f"unsupported selector {selector.hex()}")

    async def aggregate(self, calls: List[Call]) -> Tuple[int, List[bytes]]:
        if not calls:
            return 0, []
        self.batches.append(list(calls))
        return self.block_number, [self._answer(c) for c in calls]


class MockLendingProtocol:
    """Same surface as LendingProtocolAdapter, backed by dictionaries."""
    def __init__(self):
        self.reserve_configs: Dict[str, ReserveConfig] = {}
        self.prices: Dict[str, int] = {}
        self.decimals: Dict[str, int] = {}
        self.balances: Dict[Tuple[str, str], int] = {}
        self.failing_assets: Set[str] = set()

    def set_asset(self, asset: str, price: int, decimals: int, bonus_bps: int = 10500, eligible: bool = True):
        key = asset.lower()
        self.prices[key] = price
        self.decimals[key] = decimals
        self.reserve_configs[key] = ReserveConfig(liquidation_bonus_bps=bonus_bps, collateral_eligible=eligible)

    def set_balance(self, token: str, holder: str, amount: int):
        self.balances[(token.lower(), holder.lower())] = amount

    def _lookup(self, table: Dict, asset: str):
        if asset.lower() in self.failing_assets:
            raise ConnectionError(f"lookup for {asset} failed")
        return table[asset.lower()]

    async def get_reserve_config(self, pool: str, asset: str) -> ReserveConfig:
        return self._lookup(self.reserve_configs, asset)

    async def get_asset_price(self, oracle: str, asset: str) -> int:
        return self._lookup(self.prices, asset)

    async def get_decimals(self, token: str) -> int:
        return self._lookup(self.decimals, token)

    async def get_balance(self, token: str, holder: str) -> int:
        return self.balances.get((token.lower(), holder.lower()), 0)


class MockSwapVenue(SwapVenue):
    """
    Venue with preset outputs. A pair without a preset yields no quote; a rate
    function, if given, prices any pair.
    """
    def __init__(
        self,
        name: str = "mock",
        kind: VenueKind = VenueKind.AMM_V2,
        slippage_bps: int = 50,
        router_address: str = "0x1111111111111111111111111111111111111111",
        rate: Callable[[str, str, int], int] | None = None,
    ):
        super().__init__(name, router_address)
        self.kind = kind
        self.slippage_bps = slippage_bps
        self.rate = rate
        self.outputs: Dict[Tuple[str, str], int] = {}
        self.requests: List[Tuple[str, str, int]] = []
        self.error: Optional[Exception] = None

    def set_quote(self, token_in: str, token_out: str, amount_out: int):
        self.outputs[(token_in.lower(), token_out.lower())] = amount_out

    async def quote(self, token_in: str, token_out: str, amount_in: int) -> Optional[SwapQuote]:
        self.requests.append((token_in, token_out, amount_in))
        if self.error is not None:
            raise self.error
        amount_out = self.outputs.get((token_in.lower(), token_out.lower()))
        if amount_out is None and self.rate is not None:
            amount_out = self.rate(token_in, token_out, amount_in)
        if not amount_out:
            return None
        return self.build_quote(encode_address_path([token_in, token_out]), amount_in, amount_out)


class MockNotifier:
    def __init__(self):
        self.alerts: List[str] = []
        self.infos: List[str] = []

    async def alert(self, text: str) -> bool:
        self.alerts.append(text)
        return True

    async def info(self, text: str) -> bool:
        self.infos.append(text)
        return True


class MockBorrowerSource:
    def __init__(self, borrowers: List[str] | None = None):
        self.borrowers = list(borrowers or [])
        self.error: Optional[Exception] = None

    async def fetch_borrowers(self) -> List[str]:
        if self.error is not None:
            raise self.error
        return list(self.borrowers)
