# /liquidator/core/kill.py
# Operator kill switch. While the switch file exists no liquidation is submitted
# and the agent loop halts at the next cycle boundary.
import os
from datetime import datetime, timezone
from liquidator.core.logger import get_logger

log = get_logger(__name__)

KILL_SWITCH_FILE = ".system_kill_activated"


class KillSwitchActiveError(Exception):
    pass


def is_kill_switch_active() -> bool:
    return os.path.exists(KILL_SWITCH_FILE)


def check():
    """Raise KillSwitchActiveError if the kill switch is engaged."""
    if is_kill_switch_active():
        raise KillSwitchActiveError("Kill switch is active.")


def activate_kill_switch(reason: str):
    timestamp = datetime.now(timezone.utc).isoformat()
    content = f"ACTIVATED at {timestamp}\nREASON: {reason}\n"
    with open(KILL_SWITCH_FILE, "w") as f:
        f.write(content)
    log.critical("KILL_SWITCH_ACTIVATED", reason=reason)


def deactivate_kill_switch():
    if os.path.exists(KILL_SWITCH_FILE):
        os.remove(KILL_SWITCH_FILE)
        log.warning("KILL_SWITCH_DEACTIVATED")
