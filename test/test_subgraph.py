import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from tenacity import wait_none

from liquidator.adapters.subgraph import SubgraphBorrowerSource, SubgraphError


@pytest_asyncio.fixture
async def subgraph():
    users = [f"0x{i:040x}" for i in range(1, 8)]
    requests = []
    state = {"errors": None}

    async def graphql(request):
        body = await request.json()
        requests.append(body["variables"])
        if state["errors"]:
            return web.json_response({"errors": state["errors"]})
        first, skip = body["variables"]["first"], body["variables"]["skip"]
        page = [{"id": u} for u in users[skip:skip + first]]
        return web.json_response({"data": {"users": page}})

    app = web.Application()
    app.add_routes([web.post("/graphql", graphql)])
    server = TestServer(app)
    await server.start_server()
    yield str(server.make_url("/graphql")), users, requests, state
    await server.close()


@pytest.mark.asyncio
async def test_pages_until_short_page(subgraph):
    url, users, requests, _ = subgraph
    borrowers = await SubgraphBorrowerSource(url, page_size=3).fetch_borrowers()

    assert borrowers == users
    assert requests == [{"first": 3, "skip": 0}, {"first": 3, "skip": 3}, {"first": 3, "skip": 6}]


@pytest.mark.asyncio
async def test_exact_multiple_ends_on_empty_page(subgraph):
    url, users, requests, _ = subgraph
    borrowers = await SubgraphBorrowerSource(url, page_size=7).fetch_borrowers()
    assert borrowers == users
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_graphql_errors_raise_after_retries(subgraph, monkeypatch):
    url, _, requests, state = subgraph
    state["errors"] = [{"message": "indexing_error"}]
    monkeypatch.setattr(SubgraphBorrowerSource.fetch_page.retry, "wait", wait_none())

    with pytest.raises(SubgraphError):
        await SubgraphBorrowerSource(url, page_size=3).fetch_borrowers()
    assert len(requests) == 3
