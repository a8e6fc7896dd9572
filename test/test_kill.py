import os
import pytest

from liquidator.core.kill import (
    activate_kill_switch,
    deactivate_kill_switch,
    check,
    is_kill_switch_active,
    KillSwitchActiveError,
    KILL_SWITCH_FILE,
)


@pytest.fixture(autouse=True)
def cleanup():
    yield
    if os.path.exists(KILL_SWITCH_FILE):
        os.remove(KILL_SWITCH_FILE)


def test_kill_check_raises():
    activate_kill_switch("test")
    with pytest.raises(KillSwitchActiveError):
        check()


def test_kill_switch_records_reason_and_clears():
    activate_kill_switch("operator halt")
    with open(KILL_SWITCH_FILE) as f:
        assert "REASON: operator halt" in f.read()
    assert is_kill_switch_active()

    deactivate_kill_switch()
    assert not is_kill_switch_active()
    check()
