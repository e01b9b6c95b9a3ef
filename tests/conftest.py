"""Shared fixtures: a fake transport that records calls and replays responses."""

import json

import pytest

from carehq.client import APIClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None, text=None):
        self.status_code = status_code
        self.headers = headers or {}
        self._text = text if text is not None else ("" if body is None else json.dumps(body))

    def json(self):
        return json.loads(self._text)


class FakeTransport:
    """Callable standing in for ``requests.Session.request``."""

    def __init__(self, *responses):
        self.responses = list(responses) or [FakeResponse(204)]
        self.calls = []

    def __call__(self, method, url, headers=None, data=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "data": data, "timeout": timeout})
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture
def make_client():
    def _make(*responses, **kwargs):
        fake = FakeTransport(*responses)
        client = APIClient("acct-1", "key-1", "secret-1", transport=fake, **kwargs)
        return client, fake

    return _make
