# /liquidator/core/config.py
from typing import Dict, List
from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"


class MarketConfig(BaseModel):
    """Contracts the engine needs for one lending pool."""
    liquidator: str  # deployed liquidation/execution contract for this pool
    oracle: str
    collateral_wrappers: List[str] = []
    debt_wrappers: List[str] = []


class Settings(BaseSettings):
    # Core Executor
    EXECUTOR_PRIVATE_KEY: SecretStr | None = None
    PROFIT_RECEIVER: str | None = None

    # RPC endpoints
    ETH_RPC_URL_1: SecretStr | None = None
    ETH_RPC_URL_2: SecretStr | None = None
    ETH_RPC_URL_3: SecretStr | None = None
    rpc_urls: List[str] = []
    chain_id: int = 1
    MULTICALL_ADDRESS: str = MULTICALL3_ADDRESS

    # Protocol: pool address -> market contracts (JSON in the environment)
    MARKETS: Dict[str, MarketConfig] = {}
    SUBGRAPH_URL: str | None = None
    SUBGRAPH_PAGE_SIZE: int = 100
    HEALTH_CHUNK_SIZE: int = 50
    ORACLE_DECIMALS: int = 8

    # Swap venues. A venue without an address is disabled.
    V2_ROUTER_ADDRESS: str | None = None
    V3_ROUTER_ADDRESS: str | None = None
    V3_QUOTER_ADDRESS: str | None = None
    AGGREGATOR_ROUTER_ADDRESS: str | None = None
    V3_FEE_TIERS: List[int] = [100, 500, 3000, 10000]
    AGGREGATOR_MAX_STEPS: int = 4
    SETTLEMENT_ASSET: str | None = None

    # Execution pacing
    LIQUIDATION_SPACING_SECONDS: float = 5.0
    RECEIPT_TIMEOUT_SECONDS: int = 120
    SCAN_INTERVAL_SECONDS: int = 60

    # Alerting
    TELEGRAM_BOT_TOKEN: SecretStr | None = None
    TELEGRAM_ALERT_CHAT_ID: str | None = None
    TELEGRAM_INFO_CHAT_ID: str | None = None
    INFO_DIGEST_HOUR_UTC: int = 12

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    LOG_SIGNING_KEY: SecretStr | None = None
    SENTRY_DSN: str | None = None
    HEALTH_PORT: int = 8080
    SESSION_DIR: str = "/tmp/liquidator_session"  # nonce lock and audit log

    @property
    def ETH_RPC_URL(self) -> str | None:  # noqa: N802
        """Primary RPC URL: *ETH_RPC_URL_1* first, then the first of *rpc_urls*."""
        if self.ETH_RPC_URL_1 is not None:
            return self.ETH_RPC_URL_1.get_secret_value()
        if self.rpc_urls:
            return self.rpc_urls[0]
        return None

    @property
    def pools(self) -> List[str]:
        return list(self.MARKETS.keys())

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


try:
    settings = Settings()
except Exception as e:
    # Late import to avoid circular dependency only for logging the failure
    try:
        from liquidator.core.logger import get_logger, configure_logging
        configure_logging()
        log = get_logger("Liquidator.Config")
        log.critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    except Exception:
        print("FAILED_TO_LOAD_SETTINGS", e)
    raise SystemExit(1)
