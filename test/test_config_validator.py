import pytest
from pydantic import SecretStr

from liquidator.core.config import MarketConfig, Settings
from liquidator.core.config_validator import validate
from conftest import address


def complete_settings(**overrides) -> Settings:
    fields = dict(
        EXECUTOR_PRIVATE_KEY=SecretStr("0x" + "11" * 32),
        ETH_RPC_URL_1=SecretStr("http://localhost:8545"),
        SUBGRAPH_URL="http://localhost:8000/subgraphs/name/pool",
        V2_ROUTER_ADDRESS=address(0xF1),
        MARKETS={
            address(0x1001): MarketConfig(
                liquidator=address(0x1A), oracle=address(0x2001), collateral_wrappers=[address(0xA1)]
            )
        },
    )
    fields.update(overrides)
    return Settings(**fields)


def test_complete_configuration_passes():
    validate(complete_settings())


def test_missing_markets_is_fatal():
    with pytest.raises(ValueError):
        validate(complete_settings(MARKETS={}))


def test_invalid_market_address_is_fatal():
    market = MarketConfig(liquidator="not-an-address", oracle=address(0x2001), collateral_wrappers=[address(0xA1)])
    with pytest.raises(ValueError):
        validate(complete_settings(MARKETS={address(0x1001): market}))


def test_no_venue_is_fatal():
    with pytest.raises(ValueError):
        validate(complete_settings(V2_ROUTER_ADDRESS=None))


def test_markets_parse_from_environment(monkeypatch):
    monkeypatch.setenv(
        "MARKETS",
        '{"%s": {"liquidator": "%s", "oracle": "%s", "collateral_wrappers": ["%s"]}}'
        % (address(0x1001), address(0x1A), address(0x2001), address(0xA1)),
    )
    config = Settings()
    assert config.pools == [address(0x1001)]
    assert config.MARKETS[address(0x1001)].debt_wrappers == []
