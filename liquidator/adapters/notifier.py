# /liquidator/adapters/notifier.py
# Telegram alerting. Delivery is best-effort: failures are logged and counted,
# never raised into the engine.
from typing import Optional
import aiohttp

from liquidator.core.logger import get_logger, ALERTS_FAILED

log = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier:
    """Two channels: *alert* for the liquidation lifecycle, *info* for digests."""
    def __init__(
        self,
        bot_token: Optional[str],
        alert_chat_id: Optional[str],
        info_chat_id: Optional[str] = None,
        api_url: str = TELEGRAM_API_URL,
        timeout: int = 10,
    ):
        self.bot_token = bot_token
        self.alert_chat_id = alert_chat_id
        self.info_chat_id = info_chat_id or alert_chat_id
        self.api_url = api_url
        self.timeout = timeout
        if not self.bot_token:
            log.warning("TELEGRAM_NOTIFIER_NO_TOKEN", detail="Alerts will only be logged.")

    async def _send(self, chat_id: Optional[str], text: str) -> bool:
        if not self.bot_token or not chat_id:
            log.info("ALERT_NOT_DELIVERED_NO_CHANNEL", text=text)
            return False
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": chat_id, "text": text}
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(url, json=payload) as response:
                    response.raise_for_status()
        except Exception as e:
            ALERTS_FAILED.inc()
            log.error("ALERT_DELIVERY_FAILED", chat_id=chat_id, error=str(e))
            return False
        return True

    async def alert(self, text: str) -> bool:
        return await self._send(self.alert_chat_id, text)

    async def info(self, text: str) -> bool:
        return await self._send(self.info_chat_id, text)
