import json

import pytest
import requests

from hoarder_sender.config import AppConfig
from hoarder_sender.models import Bookmark


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self):
        return json.loads(self.content)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stand-in for requests.Session that replays queued responses."""

    def __init__(self, responses=None):
        self.headers = {}
        self.responses = list(responses or [])
        self.calls = []

    def _next(self):
        if not self.responses:
            raise AssertionError("Unexpected extra request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, params=None, timeout=None):
        self.calls.append({"method": "GET", "url": url, "params": params})
        return self._next()

    def post(self, url, timeout=None, **kwargs):
        self.calls.append({"method": "POST", "url": url, **kwargs})
        return self._next()


def raw_bookmark(index, **overrides):
    record = {
        "id": f"bm-{index}",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "modifiedAt": "2024-01-02T00:00:00.000Z",
        "archived": False,
        "tags": [{"id": "t1", "name": "python"}],
        "content": {
            "type": "link",
            "url": f"https://example.com/{index}",
            "title": f"Bookmark {index}",
            "description": f"Description {index}",
        },
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_bookmark():
    def factory(index, **overrides):
        values = {
            "id": f"bm-{index}",
            "url": f"https://example.com/{index}",
            "title": f"Bookmark {index}",
            "description": f"Description {index}",
            "tags": ("python", "reading"),
            "created_at": "2024-01-01T00:00:00.000Z",
        }
        values.update(overrides)
        return Bookmark(**values)

    return factory


@pytest.fixture
def app_config():
    config = AppConfig(notification_method="rss")
    config.hoarder.server_url = "http://hoarder.local"
    config.hoarder.api_key = "secret"
    config.schedule.bookmarks_count = 3
    return config


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture(name="raw_bookmark")
def raw_bookmark_fixture():
    return raw_bookmark
