# /liquidator/adapters/multicall.py
# Batch call gateway. Many reads, one round trip, results in request order.
from typing import Any, Generic, List, NamedTuple, Tuple, TypeVar
from web3 import AsyncWeb3, Web3

from liquidator.abis import MULTICALL3_ABI
from liquidator.core.logger import get_logger

log = get_logger(__name__)

D = TypeVar("D")


class BatchCallError(Exception):
    """A batched round trip failed or returned a malformed result."""
    pass


class Call(NamedTuple):
    target: str
    call_data: bytes


class BatchRequest(Generic[D]):
    """
    A call list with one request descriptor per call.

    Results are attributed back to descriptors strictly by index, so the call
    list and the descriptor list are only ever appended to together.
    """
    def __init__(self):
        self.calls: List[Call] = []
        self.descriptors: List[D] = []

    def add(self, target: str, call_data: bytes, descriptor: D):
        self.calls.append(Call(Web3.to_checksum_address(target), call_data))
        self.descriptors.append(descriptor)

    def __len__(self) -> int:
        return len(self.calls)

    def zip_results(self, return_data: List[bytes]) -> List[Tuple[D, bytes]]:
        if len(return_data) != len(self.descriptors):
            raise BatchCallError(
                f"Batch returned {len(return_data)} results for {len(self.descriptors)} calls"
            )
        return list(zip(self.descriptors, return_data))


class MulticallGateway:
    """Executes (target, calldata) lists through a Multicall3 `aggregate` view call."""
    def __init__(self, w3: AsyncWeb3, multicall_address: str):
        self.w3 = w3
        self.address = Web3.to_checksum_address(multicall_address)
        self.contract = w3.eth.contract(address=self.address, abi=MULTICALL3_ABI)

    async def aggregate(self, calls: List[Call]) -> Tuple[int, List[bytes]]:
        if not calls:
            return 0, []
        try:
            block_number, return_data = await self.contract.functions.aggregate(
                [(c.target, c.call_data) for c in calls]
            ).call()
        except Exception as e:
            log.error("MULTICALL_AGGREGATE_FAILED", calls=len(calls), error=str(e))
            raise BatchCallError(str(e)) from e
        return block_number, [bytes(r) for r in return_data]

    async def execute(self, request: BatchRequest[Any]) -> Tuple[int, List[Tuple[Any, bytes]]]:
        block_number, return_data = await self.aggregate(request.calls)
        return block_number, request.zip_results(return_data)
