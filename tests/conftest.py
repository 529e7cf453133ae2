import logging
import threading

import pytest

from shared.clients.platform.PlatformClientManager import PlatformClientManager
from shared.clients.platform.models.ContentItem import ContentItem, ContentPart
from shared.exceptions import PlatformClientError
from shared.helper.HelperConfig import HelperConfig


class FakeInjectionSession:
    def __init__(self, client: "FakePlatformClient"):
        self._client = client

    def create_content_item(self) -> ContentItem:
        return ContentItem(uri=self._client.item_uri)

    def create_content_item_with_part(self, mime_type, name, stream) -> ContentItem:
        item = self.create_content_item()
        self.add_content_part(item, mime_type, name, stream)
        return item

    def add_content_part(self, item, mime_type, name, stream) -> ContentPart:
        with self._client.lock:
            self._client.uploads.append((mime_type, name, stream.read()))
        part = ContentPart(uri=f"{item.uri}/part/{len(item.parts)}", mime_type=mime_type, name=name)
        item.parts.append(part)
        return part

    def submit_content_item(self, item) -> None:
        if self._client.fail_on_submit:
            raise PlatformClientError("MICO broker unavailable")
        with self._client.lock:
            self._client.submitted.append(item.uri)


class FakePlatformClient:
    def __init__(self, item_uri: str = "item://42", fail_on_submit: bool = False):
        self.item_uri = item_uri
        self.fail_on_submit = fail_on_submit
        self.uploads: list[tuple[str, str, bytes]] = []
        self.submitted: list[str] = []
        self.closed = False
        self.healthchecks = 0
        self.lock = threading.Lock()

    def boot(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def do_healthcheck(self) -> None:
        self.healthchecks += 1

    def get_engine_name(self) -> str:
        return "fake"

    def get_server(self) -> str:
        return "fake-server"

    def create_injector(self) -> FakeInjectionSession:
        return FakeInjectionSession(self)


class RecordingFactory:
    """Platform client factory that records its calls and returns a fixed client."""

    def __init__(self, client):
        self.client = client
        self.calls: list[tuple] = []

    def __call__(self, helper_config, server, user, password):
        self.calls.append((server, user, password))
        return self.client


@pytest.fixture(autouse=True)
def reset_platform_client():
    PlatformClientManager.reset()
    PlatformClientManager.set_factory(None)
    yield
    PlatformClientManager.reset()
    PlatformClientManager.set_factory(None)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("mico_bridge.tests"))


@pytest.fixture
def fake_platform() -> FakePlatformClient:
    return FakePlatformClient()


@pytest.fixture
def platform_factory(fake_platform) -> RecordingFactory:
    factory = RecordingFactory(fake_platform)
    PlatformClientManager.set_factory(factory)
    return factory
