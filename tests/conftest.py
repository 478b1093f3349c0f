import pytest
from loguru import logger
from urllib3 import HTTPHeaderDict

from cors_proxy import ProxySettings, create_app

BACKEND = "http://backend.internal:9000"
GOOD = "http://good.example"
EVIL = "http://evil.example"


class FakeRaw:
    def __init__(self, chunks, headers, error=None):
        self.headers = headers
        self._chunks = chunks
        self._error = error

    def stream(self, amt=None, decode_content=True):
        yield from self._chunks
        if self._error is not None:
            raise self._error


class FakeUpstream:
    def __init__(self, status=200, body=b"", headers=None, chunks=None, error=None):
        hdrs = HTTPHeaderDict()
        for name, value in headers or []:
            hdrs.add(name, value)
        self.status_code = status
        self.raw = FakeRaw(chunks if chunks is not None else [body], hdrs, error)
        self.closed = False

    def close(self):
        self.closed = True


class FakeSession:
    """Stands in for requests.Session; records every backend call."""

    def __init__(self):
        self.calls = []
        self.reply = FakeUpstream(200, b"", [("Content-Type", "text/plain")])
        self.error = None

    def request(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


def make_settings(**overrides):
    values = {"backend_api_url": BACKEND, "_env_file": None}
    values.update(overrides)
    return ProxySettings(**values)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def make_client(session):
    def build(**overrides):
        return create_app(make_settings(**overrides), session=session).test_client()

    return build


@pytest.fixture
def client(make_client):
    return make_client(allowed_origins=frozenset({GOOD}))


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)
