from typing import Callable, Dict, Optional

import httpx
import pytest

from httpsource import AsyncBaseStore, AsyncHttpxTransport

BASE_URL = "https://api.example.com"


class DictStore(AsyncBaseStore):
    """A host-supplied store backed by a plain dict, ignoring TTL hints."""

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, Optional[float]] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> DictStore:
    return DictStore()


def mock_transport(handler: Callable[[httpx.Request], object]) -> AsyncHttpxTransport:
    return AsyncHttpxTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), owns_client=True)  # type: ignore[arg-type]
