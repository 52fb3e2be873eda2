import asyncio

import fakeredis
import pytest
from fastapi.testclient import TestClient

from backend import RedisBackend
from realtime.hub import RealtimeHub


class FakeSocket:
    """Collects frames the dispatcher sends; optionally fails like a closed socket."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self):
        return [frame["event"] for frame in self.sent]

    def last(self, event):
        frames = [frame for frame in self.sent if frame["event"] == event]
        return frames[-1]["data"] if frames else None


async def wait_until(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.005)
    return True


@pytest.fixture
def fake_backend():
    backend = RedisBackend(fakeredis.FakeRedis(decode_responses=True))
    yield backend
    backend.redis_client.flushall()


@pytest.fixture
async def hub():
    hub = RealtimeHub(backend=None, checks=[], interval=0.01, tick_timeout=0.5)
    yield hub
    await hub.shutdown()


@pytest.fixture
def connect(hub):
    def _connect(connection_id, trip_id=None, fail=False):
        socket = FakeSocket(fail=fail)
        hub.registry.register(connection_id, socket)
        if trip_id:
            hub.registry.join(connection_id, trip_id)
        return socket

    return _connect


@pytest.fixture
def client(monkeypatch, fake_backend):
    monkeypatch.setattr(RedisBackend, "from_settings", classmethod(lambda cls: fake_backend))
    from app import app

    with TestClient(app) as test_client:
        yield test_client
