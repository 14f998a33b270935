import asyncio
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from mermaid_permalink.api.main import create_app
from mermaid_permalink.api.models.config import APIConfig
from mermaid_permalink.api.services.cache_store import MemoryCacheStore
from mermaid_permalink.core.formats import RenderFormat


class CountingRenderer:
    """Render engine stand-in that records every call."""

    def __init__(self, delay: float = 0.0):
        self.calls: List[Tuple[str, RenderFormat]] = []
        self.delay = delay
        self.fail_with = None

    async def render(self, source: str, fmt: RenderFormat) -> bytes:
        self.calls.append((source, fmt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        if fmt is RenderFormat.SVG:
            return f"<svg><text>{source}</text></svg>".encode("utf-8")
        return b"\x89PNG\r\n\x1a\n" + source.encode("utf-8")


class BrokenStore:
    """Cache store whose backing storage is unreachable."""

    async def match(self, key):
        raise OSError("cache unreachable")

    async def put(self, key, entry):
        raise OSError("cache unreachable")

    async def purge_expired(self):
        return {"purged_entries": 0, "bytes_freed": 0}


@pytest.fixture
def renderer():
    return CountingRenderer()


@pytest.fixture
def store():
    return MemoryCacheStore(max_entries=100)


@pytest.fixture
def config():
    return APIConfig(cache_max_age_seconds=86400)


@pytest.fixture
def client(config, renderer, store):
    app = create_app(config, renderer=renderer, cache_store=store)
    return TestClient(app)

