"""
Shared fixtures for morning alarm tests
"""

from datetime import datetime

import pytest

from morning_alarm.capabilities import Capabilities
from morning_alarm.config import MediaSettings
from morning_alarm.media_cache import create_media_caches
from morning_alarm.models import DeliveryTier, ScheduledItem

FIXED_NOW = datetime(2024, 1, 1, 10, 0, 0)


class FakeNotificationHost:
    """In-memory notification host that records every call"""

    def __init__(self):
        self.items = {}
        self.register_calls = []
        self.cancel_calls = []
        self.listener = None
        self.fail_register = False

    def register(self, identifier, content, delay_seconds):
        if self.fail_register:
            raise RuntimeError("host rejected registration")
        self.register_calls.append((identifier, content, delay_seconds))
        self.items[identifier] = ScheduledItem(identifier, content, delay_seconds)

    def cancel(self, identifier):
        self.cancel_calls.append(identifier)
        self.items.pop(identifier, None)

    def list_scheduled(self):
        return list(self.items.values())

    def set_delivery_listener(self, listener):
        self.listener = listener

    def fire(self, identifier):
        item = self.items.pop(identifier)
        if self.listener:
            self.listener(identifier, item.content)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def capabilities():
    return Capabilities(delivery_tier=DeliveryTier.FULL, durable_storage=True)


@pytest.fixture
def media_settings(tmp_path):
    return MediaSettings(base_dir=str(tmp_path / "media"), transfer_timeout_s=5.0)


@pytest.fixture
def caches(media_settings, capabilities):
    return create_media_caches(media_settings, capabilities)


@pytest.fixture
def host():
    return FakeNotificationHost()
