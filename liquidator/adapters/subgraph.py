# /liquidator/adapters/subgraph.py
# Borrower listing from the protocol's indexing service (GraphQL over HTTP).
from typing import List
import aiohttp

from liquidator.core.decorators import retriable_network_call
from liquidator.core.logger import get_logger

log = get_logger(__name__)

USERS_QUERY = """
query ($first: Int, $skip: Int) {
  users(first: $first, skip: $skip, orderBy: id, orderDirection: asc) {
    id
  }
}
"""


class SubgraphError(Exception):
    pass


class SubgraphBorrowerSource:
    def __init__(self, url: str, page_size: int = 100, timeout: int = 30):
        self.url = url
        self.page_size = page_size
        self.timeout = timeout

    @retriable_network_call
    async def fetch_page(self, first: int, skip: int) -> List[str]:
        payload = {"query": USERS_QUERY, "variables": {"first": first, "skip": skip}}
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.post(self.url, json=payload) as response:
                response.raise_for_status()
                body = await response.json()
        if body.get("errors"):
            raise SubgraphError(str(body["errors"]))
        users = (body.get("data") or {}).get("users") or []
        return [u["id"] for u in users]

    async def fetch_borrowers(self) -> List[str]:
        """All borrower ids, ordered by id, paged until a short page comes back."""
        borrowers: List[str] = []
        skip = 0
        while True:
            page = await self.fetch_page(self.page_size, skip)
            borrowers.extend(page)
            log.info("SUBGRAPH_PAGE_FETCHED", fetched=len(page), total=len(borrowers))
            if len(page) < self.page_size:
                break
            skip += self.page_size
        return borrowers
