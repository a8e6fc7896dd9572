import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from liquidator.adapters.notifier import TelegramNotifier
from liquidator.core.logger import ALERTS_FAILED


@pytest_asyncio.fixture
async def telegram():
    received = []
    state = {"status": 200}

    async def send_message(request):
        received.append((request.match_info["token"], await request.json()))
        return web.json_response({"ok": state["status"] == 200}, status=state["status"])

    app = web.Application()
    app.add_routes([web.post("/bot{token}/sendMessage", send_message)])
    server = TestServer(app)
    await server.start_server()
    yield str(server.make_url("")).rstrip("/"), received, state
    await server.close()


@pytest.mark.asyncio
async def test_alert_and_info_channels(telegram):
    url, received, _ = telegram
    notifier = TelegramNotifier("tok", "alerts", "digest", api_url=url)

    assert await notifier.alert("Starting liquidation")
    assert await notifier.info("Daily watch list")
    assert received == [
        ("tok", {"chat_id": "alerts", "text": "Starting liquidation"}),
        ("tok", {"chat_id": "digest", "text": "Daily watch list"}),
    ]


@pytest.mark.asyncio
async def test_info_falls_back_to_alert_chat(telegram):
    url, received, _ = telegram
    await TelegramNotifier("tok", "alerts", api_url=url).info("digest")
    assert received[0][1]["chat_id"] == "alerts"


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed_and_counted(telegram):
    url, _, state = telegram
    state["status"] = 500
    before = ALERTS_FAILED._value.get()
    assert await TelegramNotifier("tok", "alerts", api_url=url).alert("x") is False
    assert ALERTS_FAILED._value.get() == before + 1


@pytest.mark.asyncio
async def test_without_token_nothing_is_sent(telegram):
    url, received, _ = telegram
    assert await TelegramNotifier(None, "alerts", api_url=url).alert("x") is False
    assert received == []
