# /liquidator/core/config_validator.py
# Run at startup to validate all configs and secrets.
from web3 import Web3

from liquidator.core.config import settings
from liquidator.core.logger import log


def validate(config=settings):
    log.info("--- CONFIG VALIDATION START ---")
    errors = []

    if not config.EXECUTOR_PRIVATE_KEY:
        errors.append("Missing required configuration: EXECUTOR_PRIVATE_KEY")
    if not config.ETH_RPC_URL:
        errors.append("Missing required configuration: ETH_RPC_URL_1 or rpc_urls")
    if not config.SUBGRAPH_URL:
        errors.append("Missing required configuration: SUBGRAPH_URL")
    if not config.MARKETS:
        errors.append("Missing required configuration: MARKETS")
    if not (config.V2_ROUTER_ADDRESS or config.AGGREGATOR_ROUTER_ADDRESS
            or (config.V3_ROUTER_ADDRESS and config.V3_QUOTER_ADDRESS)):
        errors.append("No swap venue configured")

    for pool, market in config.MARKETS.items():
        for name, address in [("pool", pool), ("liquidator", market.liquidator), ("oracle", market.oracle)]:
            if not Web3.is_address(address):
                errors.append(f"Invalid {name} address for market {pool}: {address}")
        if not market.collateral_wrappers:
            errors.append(f"Market {pool} has no collateral wrappers")

    if errors:
        for error in errors:
            log.critical(error)
        raise ValueError("System configuration is incomplete. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---")


if __name__ == "__main__":
    validate()
