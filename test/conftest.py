import os
import pytest
from web3 import Web3

from liquidator.core.kill import KILL_SWITCH_FILE


def address(n: int) -> str:
    return Web3.to_checksum_address(f"0x{n:040x}")


@pytest.fixture(autouse=True)
def isolated_audit_log(tmp_path, monkeypatch):
    monkeypatch.setattr("liquidator.core.logger.AUDIT_FILE", tmp_path / "audit.log")
    yield


@pytest.fixture
def kill_switch_cleanup():
    yield
    if os.path.exists(KILL_SWITCH_FILE):
        os.remove(KILL_SWITCH_FILE)


def lowered(values) -> tuple:
    """Decoded calldata with addresses lower-cased; eth-abi's address case varies by release."""
    return tuple(v.lower() if isinstance(v, str) else v for v in values)
