# /liquidator/core/resilient_rpc.py
# Multi-node async Web3 provider. The first reachable node becomes primary.

from eth_account import Account
from web3 import AsyncWeb3
from liquidator.core.config import settings
from liquidator.core.logger import get_logger

log = get_logger(__name__)


def get_rpc_urls_from_env():
    """Collects ETH_RPC_URL_n secrets followed by any plain *rpc_urls* entries."""
    urls = []
    i = 1
    while hasattr(settings, f'ETH_RPC_URL_{i}'):
        url = getattr(settings, f'ETH_RPC_URL_{i}')
        if url:
            urls.append(url.get_secret_value())
        i += 1
    urls.extend(u for u in settings.rpc_urls if u not in urls)
    return urls


class ResilientWeb3Provider:
    def __init__(self, rpc_urls: list[str] | None = None):
        self.rpc_urls = rpc_urls if rpc_urls is not None else get_rpc_urls_from_env()
        if len(self.rpc_urls) < 2:
            log.warning("RESILIENCE_DEGRADED_LT_2_RPCS", count=len(self.rpc_urls))
        self.providers: list[AsyncWeb3] = []
        self.primary_provider: AsyncWeb3 | None = None
        self.account = (
            Account.from_key(settings.EXECUTOR_PRIVATE_KEY.get_secret_value())
            if settings.EXECUTOR_PRIVATE_KEY
            else None
        )
        self.address = self.account.address if self.account else None

    async def initialize(self):
        """Connects every configured node; raises if none answers."""
        self.providers = []
        for url in self.rpc_urls:
            provider = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url, request_kwargs={"timeout": 10}))
            try:
                if await provider.is_connected():
                    self.providers.append(provider)
                else:
                    log.error("RPC_NODE_UNREACHABLE", url=url)
            except Exception as e:
                log.error("RPC_NODE_UNREACHABLE", url=url, error=str(e))

        if not self.providers:
            raise ConnectionError("All RPC nodes are unreachable.")
        self.primary_provider = self.providers[0]
        log.info("RESILIENT_WEB3_PROVIDER_INITIALIZED", rpc_count=len(self.providers))

    def get_primary_provider(self) -> AsyncWeb3:
        """Returns the primary provider, used for reads and for sending transactions."""
        if self.primary_provider is None:
            raise ConnectionError("Provider not initialized.")
        return self.primary_provider
