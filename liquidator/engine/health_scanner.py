# /liquidator/engine/health_scanner.py
# Batched account-health scan over every (pool, borrower) pair.
from typing import List, Sequence, Tuple
from pydantic import BaseModel, Field

from liquidator.adapters.lending import encode_get_user_account_data, decode_health_factor
from liquidator.adapters.multicall import BatchRequest, MulticallGateway
from liquidator.engine.models import HealthRecord, WAD
from liquidator.core.logger import get_logger, BORROWERS_SCANNED, HEALTH_CHUNKS_FAILED

log = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 50
WATCH_CEILING = WAD * 105 // 100


class FailedChunk(BaseModel):
    pool: str
    start: int
    size: int
    error: str


class ScanResult(BaseModel):
    records: List[HealthRecord] = Field(default_factory=list)
    liquidatable: List[HealthRecord] = Field(default_factory=list)
    watch: List[HealthRecord] = Field(default_factory=list)
    zeroed: List[HealthRecord] = Field(default_factory=list)
    failed_chunks: List[FailedChunk] = Field(default_factory=list)


def partition_health_records(
    records: Sequence[HealthRecord],
) -> Tuple[List[HealthRecord], List[HealthRecord], List[HealthRecord]]:
    """
    Splits records into (liquidatable, watch, zeroed).

    - liquidatable: 0 < hf <= 1.0, in scan order
    - watch: 1.0 <= hf < 1.05, ascending by hf
    - zeroed: hf == 0, an inactive or already fully seized position
    """
    liquidatable = [r for r in records if 0 < r.health_factor <= WAD]
    watch = sorted(
        (r for r in records if WAD <= r.health_factor < WATCH_CEILING),
        key=lambda r: r.health_factor,
    )
    zeroed = [r for r in records if r.health_factor == 0]
    return liquidatable, watch, zeroed


class HealthScanner:
    def __init__(self, gateway: MulticallGateway, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.gateway = gateway
        self.chunk_size = chunk_size

    async def scan_chunk(self, pool: str, borrowers: Sequence[str]) -> List[HealthRecord]:
        request: BatchRequest[str] = BatchRequest()
        for borrower in borrowers:
            request.add(pool, encode_get_user_account_data(borrower), borrower)

        block_number, results = await self.gateway.execute(request)
        return [
            HealthRecord(
                pool=pool,
                borrower=borrower,
                health_factor=decode_health_factor(raw),
                block=block_number,
            )
            for borrower, raw in results
        ]

    async def scan(self, pools: Sequence[str], borrowers: Sequence[str]) -> ScanResult:
        records: List[HealthRecord] = []
        failed: List[FailedChunk] = []

        for pool in pools:
            for start in range(0, len(borrowers), self.chunk_size):
                chunk = borrowers[start:start + self.chunk_size]
                try:
                    chunk_records = await self.scan_chunk(pool, chunk)
                except Exception as e:
                    HEALTH_CHUNKS_FAILED.inc()
                    log.error("HEALTH_CHUNK_FAILED", pool=pool, start=start, size=len(chunk), error=str(e))
                    failed.append(FailedChunk(pool=pool, start=start, size=len(chunk), error=str(e)))
                    continue
                records.extend(chunk_records)
                log.debug("HEALTH_CHUNK_SCANNED", pool=pool, start=start, size=len(chunk))

        BORROWERS_SCANNED.inc(len(records))
        liquidatable, watch, zeroed = partition_health_records(records)
        log.info(
            "HEALTH_SCAN_COMPLETE",
            records=len(records),
            liquidatable=len(liquidatable),
            watch=len(watch),
            zeroed=len(zeroed),
            failed_chunks=len(failed),
        )
        return ScanResult(
            records=records,
            liquidatable=liquidatable,
            watch=watch,
            zeroed=zeroed,
            failed_chunks=failed,
        )
