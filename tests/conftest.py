"""Shared fixtures for CabShare tests."""

import json
import re
from urllib.parse import unquote

import pytest
import responses

from cabshare.services.auth_service import Session
from cabshare.services.notification_service import NotificationService
from cabshare.services.session_store import SessionStore
from cabshare.services.simulation import Simulator
from cabshare.storage import FileKeyValueStore

TEST_KV_URL = "http://kv.test"


@pytest.fixture
def kv_store(tmp_path):
    """File-backed key-value store in a temporary directory."""
    return FileKeyValueStore(str(tmp_path / "storage.json"))


@pytest.fixture
def session_store(kv_store):
    return SessionStore(kv_store)


@pytest.fixture
def profile(session_store):
    """A freshly created profile."""
    return session_store.create_profile("rider@example.com", "Test Rider", "555-123-4567")


@pytest.fixture
def session(session_store, profile):
    """Signed-in session for the fixture profile."""
    return Session(user_id=profile.id, email=profile.email, token="test-token",
                   store=session_store)


@pytest.fixture
def simulator():
    """Simulator that skips every delay."""
    sim = Simulator(scale=0)
    yield sim
    sim.shutdown()


class RecordingSender:
    """Collects delivered notifications."""

    def __init__(self):
        self.sent = []

    def __call__(self, title, body):
        self.sent.append((title, body))


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(sender):
    return NotificationService(sender)


@pytest.fixture
def kv_server():
    """
    Fake key-value server mocked with responses.

    Yields the dict holding the server's data.
    """
    data = {}
    pattern = re.compile(re.escape(TEST_KV_URL) + r"/items/(.+)")

    def key_of(request):
        return unquote(pattern.match(request.url).group(1))

    def get_item(request):
        key = key_of(request)
        if key not in data:
            return (404, {}, json.dumps({"error": f"Key '{key}' not found"}))
        return (200, {}, json.dumps({"key": key, "value": data[key]}))

    def put_item(request):
        key = key_of(request)
        data[key] = json.loads(request.body)["value"]
        return (200, {}, json.dumps({"key": key, "value": data[key]}))

    def delete_item(request):
        key = key_of(request)
        if key not in data:
            return (404, {}, json.dumps({"error": f"Key '{key}' not found"}))
        value = data.pop(key)
        return (200, {}, json.dumps({"key": key, "value": value}))

    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add_callback(responses.GET, pattern, callback=get_item,
                          content_type="application/json")
        rsps.add_callback(responses.PUT, pattern, callback=put_item,
                          content_type="application/json")
        rsps.add_callback(responses.DELETE, pattern, callback=delete_item,
                          content_type="application/json")
        yield data
