import json
import threading

import pytest
import requests

from Peeng_Server.config import Settings
from Peeng_Server.context import MonitorContext
from Peeng_Server.ipfs_client import PingResult
from Peeng_Server.server_main import create_app
from Peeng_Server.state import PeerStore


def ping_line(success, time_ns=0, text=""):
    return json.dumps({"Success": success, "Text": text, "Time": time_ns}).encode()


class FakeResponse:
    """Stands in for a streamed requests.Response."""

    def __init__(self, status_code=200, lines=(), payload=None):
        self.status_code = status_code
        self._lines = list(lines)
        self._payload = payload
        self.lines_read = 0
        self.closed = False

    def iter_lines(self):
        for line in self._lines:
            self.lines_read += 1
            yield line

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class StubClient:
    def __init__(self, reachable=False, latency_ms=None, swarm=()):
        self.result = PingResult(reachable, latency_ms)
        self.swarm = list(swarm)
        self.calls = []
        self._lock = threading.Lock()

    def ping(self, peer_id, address_map=None):
        with self._lock:
            self.calls.append((peer_id, address_map))
        return self.result

    def swarm_peers(self):
        return list(self.swarm)


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=str(tmp_path / "peers.db"), log_file="")


@pytest.fixture
def store(settings):
    store = PeerStore(settings.db_path).open()
    yield store
    store.close()


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def ctx(settings, store, stub_client):
    return MonitorContext(settings, store=store, client=stub_client)


@pytest.fixture
def app_and_socketio(ctx):
    app, socketio = create_app(ctx)
    app.config["TESTING"] = True
    return app, socketio


@pytest.fixture
def client(app_and_socketio):
    app, _ = app_and_socketio
    return app.test_client()
