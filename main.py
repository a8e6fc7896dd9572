# /main.py
# Entrypoint: wires the engine, serves /healthz and runs the scan loop.
import asyncio
from aiohttp import web

from liquidator.core.config import settings
from liquidator.core.config_validator import validate as validate_config
from liquidator.core.logger import configure_logging, get_logger
from liquidator.core.kill import is_kill_switch_active
from liquidator.core.resilient_rpc import ResilientWeb3Provider
from liquidator.core.tx import TransactionManager
from liquidator.core.agent import Agent
from liquidator.adapters.dex import build_venues
from liquidator.adapters.lending import LendingProtocolAdapter
from liquidator.adapters.multicall import MulticallGateway
from liquidator.adapters.notifier import TelegramNotifier
from liquidator.adapters.subgraph import SubgraphBorrowerSource
from liquidator.engine.collateral import CollateralSelector
from liquidator.engine.executor import ExecutionCoordinator
from liquidator.engine.health_scanner import HealthScanner
from liquidator.engine.position_resolver import PositionResolver
from liquidator.engine.routing import SwapRouteAggregator
from liquidator.strategies.liquidation import LiquidationStrategy


async def healthz(request):
    """Provides a JSON health status for the service."""
    agent = request.app["agent"]
    last = agent.last_state.summary() if agent.last_state else None
    return web.json_response({
        "status": "ok",
        "kill_switch_active": is_kill_switch_active(),
        "cycles": agent.cycle_counter,
        "last_cycle": last,
    })


def build_agent(tx_manager: TransactionManager) -> Agent:
    w3 = tx_manager.w3
    gateway = MulticallGateway(w3, settings.MULTICALL_ADDRESS)
    lending = LendingProtocolAdapter(w3)
    notifier = TelegramNotifier(
        settings.TELEGRAM_BOT_TOKEN.get_secret_value() if settings.TELEGRAM_BOT_TOKEN else None,
        settings.TELEGRAM_ALERT_CHAT_ID,
        settings.TELEGRAM_INFO_CHAT_ID,
    )
    strategy = LiquidationStrategy(
        markets=settings.MARKETS,
        resolver=PositionResolver(gateway),
        lending=lending,
        selector=CollateralSelector(lending, settings.ORACLE_DECIMALS),
        router=SwapRouteAggregator(build_venues(w3, settings)),
        coordinator=ExecutionCoordinator(tx_manager, settings.LIQUIDATION_SPACING_SECONDS),
        notifier=notifier,
        receiver=settings.PROFIT_RECEIVER or tx_manager.address,
        settlement_asset=settings.SETTLEMENT_ASSET,
    )
    return Agent(
        strategy=strategy,
        scanner=HealthScanner(gateway, settings.HEALTH_CHUNK_SIZE),
        borrower_source=SubgraphBorrowerSource(settings.SUBGRAPH_URL, settings.SUBGRAPH_PAGE_SIZE),
        notifier=notifier,
        pools=settings.pools,
        scan_interval=settings.SCAN_INTERVAL_SECONDS,
        digest_hour_utc=settings.INFO_DIGEST_HOUR_UTC,
    )


async def main():
    configure_logging()
    log = get_logger("Liquidator.System")
    validate_config()
    log.info("LIQUIDATION_ENGINE_STARTING", pools=len(settings.pools))

    tx_manager = TransactionManager(ResilientWeb3Provider())
    await tx_manager.initialize()
    agent = build_agent(tx_manager)

    app = web.Application()
    app["agent"] = agent
    app.add_routes([web.get("/healthz", healthz)])
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.HEALTH_PORT or 8080)
    await site.start()
    log.info("HEALTHCHECK_SERVER_STARTED", port=settings.HEALTH_PORT or 8080)

    try:
        await agent.run_loop()
    finally:
        tx_manager.close()
        await runner.cleanup()
        log.warning("SYSTEM_SHUTDOWN_COMPLETE")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
