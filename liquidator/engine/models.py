# /liquidator/engine/models.py
# Value types that flow through one scan cycle. All amounts are raw integers in
# the token's (or oracle's) native fixed-point units.
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Dict, List, Optional
from eth_utils import to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WAD = 10**18
MAX_UINT256 = 2**256 - 1
BPS = 10_000

# Reserve configuration word layout
LIQUIDATION_BONUS_START_BIT = 32
LIQUIDATION_BONUS_BITS = 16
COLLATERAL_ELIGIBLE_BIT = 56


class HealthRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool: str
    borrower: str
    health_factor: int = Field(ge=0)  # 18 decimals; 0 means fully seized/inactive
    block: int = 0

    @property
    def health_factor_decimal(self) -> Decimal:
        return Decimal(self.health_factor) / Decimal(WAD)


class Holding(BaseModel):
    model_config = ConfigDict(frozen=True)

    underlying_asset: str
    wrapper: str
    amount: int = Field(gt=0)


class UnderlyingIndex(BaseModel):
    """Lower-cased underlying asset -> wrapper contract, first occurrence wins."""
    entries: Dict[str, str] = Field(default_factory=dict)

    def register(self, underlying_asset: str, wrapper: str) -> bool:
        key = underlying_asset.lower()
        if key in self.entries:
            return False
        self.entries[key] = wrapper
        return True

    def wrapper_for(self, underlying_asset: str) -> Optional[str]:
        return self.entries.get(underlying_asset.lower())

    def __len__(self) -> int:
        return len(self.entries)


class PositionSnapshot(BaseModel):
    borrower: str
    collateral: List[Holding] = Field(default_factory=list)
    debt: List[Holding] = Field(default_factory=list)
    underlying_index: UnderlyingIndex = Field(default_factory=UnderlyingIndex)
    # Every configured collateral-side wrapper, whatever the borrower holds in it
    market_index: UnderlyingIndex = Field(default_factory=UnderlyingIndex)

    @property
    def is_liquidatable_shape(self) -> bool:
        return bool(self.collateral) and bool(self.debt)

    def liquidity_wrapper_for(self, underlying_asset: str) -> Optional[str]:
        """Wrapper holding *underlying_asset* liquidity: borrower index first, then the market."""
        return self.underlying_index.wrapper_for(underlying_asset) or self.market_index.wrapper_for(underlying_asset)


class ReserveConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    liquidation_bonus_bps: int
    collateral_eligible: bool

    @classmethod
    def from_packed(cls, word: int) -> "ReserveConfig":
        """Decodes the packed reserve configuration word."""
        bonus = (word >> LIQUIDATION_BONUS_START_BIT) & ((1 << LIQUIDATION_BONUS_BITS) - 1)
        eligible = bool((word >> COLLATERAL_ELIGIBLE_BIT) & 1)
        return cls(liquidation_bonus_bps=bonus, collateral_eligible=eligible)


class CollateralCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    balance: int
    price_usd: int  # oracle units
    token_decimals: int
    value_usd: int  # whole USD, truncated
    liquidation_bonus_bps: int
    collateral_eligible: bool


class VenueKind(IntEnum):
    """Swap type discriminator understood by the liquidation contract."""
    AMM_V2 = 0
    CONCENTRATED_V3 = 1
    AGGREGATOR = 2


class SwapQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    venue: VenueKind
    router: str
    path: bytes
    amount_in: int
    amount_out: int
    amount_out_min: int
    adapters: List[str] = Field(default_factory=list)
    venue_name: str = ""

    @model_validator(mode="after")
    def _min_not_above_out(self):
        if self.amount_out_min > self.amount_out:
            raise ValueError("amount_out_min must not exceed amount_out")
        return self

    def to_swap_params(self) -> tuple:
        """(swapType, router, path, amountIn, amountOutMin, adapters) struct."""
        return (
            int(self.venue),
            self.router,
            self.path,
            self.amount_in,
            self.amount_out_min,
            list(self.adapters),
        )


class SizingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    close_factor_bps: int
    close_factor_amount: int
    available_liquidity: int
    amount: int  # min(close_factor_amount, available_liquidity)
    debt_to_cover: int  # exact amount, or MAX_UINT256 to defer to the protocol's ceiling
    liquidity_bound: bool

    @property
    def uses_protocol_ceiling(self) -> bool:
        return self.debt_to_cover == MAX_UINT256


class LiquidationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool: str
    liquidator: str
    borrower: str
    collateral_asset: str
    debt_asset: str
    seize_amount_cap: int
    debt_to_cover: int
    swap_quote_repay: SwapQuote
    swap_quote_to_settlement: SwapQuote
    receiver: str

    def to_liquidation_params(self) -> tuple:
        """(collateralAsset, debtAsset, user, amount, transferAmount, debtToCover) struct."""
        return (
            self.collateral_asset,
            self.debt_asset,
            self.borrower,
            self.seize_amount_cap,
            0,
            self.debt_to_cover,
        )


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class LiquidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool: str
    borrower: str
    status: OutcomeStatus
    reason: str = ""
    tx_hash: Optional[str] = None

    @field_validator("borrower")
    @classmethod
    def _checksum_borrower(cls, value: str) -> str:
        return to_checksum_address(value)
