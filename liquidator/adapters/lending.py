# /liquidator/adapters/lending.py
# Lending protocol reads: call codecs for batched lookups plus direct reads for
# reserve configuration, oracle prices, token decimals and balances.
from typing import List
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector
from web3 import AsyncWeb3, Web3

from liquidator.abis import POOL_ABI, ERC20_ABI, ORACLE_ABI
from liquidator.engine.models import ReserveConfig
from liquidator.core.logger import get_logger

log = get_logger(__name__)

ACCOUNT_DATA_TYPES = ["uint256"] * 6
HEALTH_FACTOR_INDEX = 5


def encode_call(signature: str, arg_types: List[str], args: list) -> bytes:
    """Selector followed by the ABI-encoded arguments."""
    return function_signature_to_4byte_selector(signature) + encode(arg_types, args)


def encode_get_user_account_data(user: str) -> bytes:
    return encode_call("getUserAccountData(address)", ["address"], [Web3.to_checksum_address(user)])


def decode_health_factor(raw: bytes) -> int:
    return decode(ACCOUNT_DATA_TYPES, raw)[HEALTH_FACTOR_INDEX]


def encode_balance_of(account: str) -> bytes:
    return encode_call("balanceOf(address)", ["address"], [Web3.to_checksum_address(account)])


def decode_uint(raw: bytes) -> int:
    return decode(["uint256"], raw)[0]


def encode_underlying_asset() -> bytes:
    return encode_call("UNDERLYING_ASSET_ADDRESS()", [], [])


def decode_address(raw: bytes) -> str:
    return Web3.to_checksum_address(decode(["address"], raw)[0])


class LendingProtocolAdapter:
    """Single-read lookups against pool, oracle and token contracts."""
    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def get_reserve_config(self, pool: str, asset: str) -> ReserveConfig:
        result = await self._contract(pool, POOL_ABI).functions.getConfiguration(
            Web3.to_checksum_address(asset)
        ).call()
        # ReserveConfigurationMap is a one-field struct
        word = result[0] if isinstance(result, (list, tuple)) else result
        return ReserveConfig.from_packed(int(word))

    async def get_asset_price(self, oracle: str, asset: str) -> int:
        return await self._contract(oracle, ORACLE_ABI).functions.getAssetPrice(
            Web3.to_checksum_address(asset)
        ).call()

    async def get_decimals(self, token: str) -> int:
        return await self._contract(token, ERC20_ABI).functions.decimals().call()

    async def get_balance(self, token: str, holder: str) -> int:
        return await self._contract(token, ERC20_ABI).functions.balanceOf(
            Web3.to_checksum_address(holder)
        ).call()
