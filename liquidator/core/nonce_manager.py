# /liquidator/core/nonce_manager.py
# Durable, file-locked nonce. The exclusive lock also keeps a second engine
# process from racing this one on the executor's nonce.

import os
import fcntl
from web3 import AsyncWeb3

from liquidator.core.config import settings
from liquidator.core.logger import get_logger

log = get_logger(__name__)


class NonceManager:
    def __init__(self, w3: AsyncWeb3, address: str, session_dir: str | None = None):
        self.w3 = w3
        self.address = address
        self.session_dir = session_dir or settings.SESSION_DIR
        self.path = os.path.join(self.session_dir, "nonce.lock")
        os.makedirs(self.session_dir, exist_ok=True)
        self._fd = None
        self.nonce = -1

    async def initialize(self):
        self._fd = open(self.path, "a+")
        try:
            fcntl.flock(self._fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            log.critical("NONCE_MANAGER_COULD_NOT_ACQUIRE_LOCK", path=self.path)
            self._fd.close()
            self._fd = None
            raise RuntimeError("Could not acquire nonce lock file. Another process may be running.")
        self._fd.seek(0)
        data = self._fd.read().strip()
        chain_nonce = await self.w3.eth.get_transaction_count(self.address, "pending")
        if data.isdigit() and int(data) >= chain_nonce:
            self.nonce = int(data)
            log.info("NONCE_LOADED", nonce=self.nonce)
        else:
            # Stale or missing file: the chain is authoritative
            self.nonce = chain_nonce
            log.info("NONCE_FROM_RPC", nonce=self.nonce)
            self._write()
        return self.nonce

    async def get(self) -> int:
        return self.nonce

    async def bump(self):
        self.nonce += 1
        self._write()
        log.debug("NONCE_BUMPED", nonce=self.nonce)

    def _write(self):
        self._fd.seek(0)
        self._fd.truncate()
        self._fd.write(str(self.nonce))
        self._fd.flush()

    def close(self):
        if self._fd:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            self._fd.close()
            self._fd = None
            log.info("NONCE_LOCK_RELEASED")
