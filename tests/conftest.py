import pytest
from starlette.websockets import WebSocketState

from config import Settings


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket: records sends, can be told to fail."""

    def __init__(self, inbox=None, fail_send=False, fail_close=False):
        self.inbox = list(inbox or [])
        self.sent = []
        self.fail_send = fail_send
        self.fail_close = fail_close
        self.accepted = False
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail_send:
            raise RuntimeError("broken pipe")
        self.sent.append(text)

    async def receive(self):
        if not self.inbox:
            self.client_state = WebSocketState.DISCONNECTED
            return {"type": "websocket.disconnect", "code": 1000}
        frame = self.inbox.pop(0)
        key = "bytes" if isinstance(frame, bytes) else "text"
        return {"type": "websocket.receive", key: frame}

    async def close(self, code=1000):
        if self.fail_close:
            raise RuntimeError("close failed")
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED


class FakeClock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


@pytest.fixture
def fake_ws():
    return FakeWebSocket


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def settings():
    # Long interval so tests drive ticks explicitly; no provider keys.
    return Settings(
        broadcast_interval_ms=60_000,
        shutdown_grace_seconds=1,
        price_feed_seed=7,
        groq_api_key="",
        xai_api_key="",
        openai_api_key="",
        cors_origins=["*"],
    )
