"""Shared test fixtures for the detection client.

All service access goes through FakeApiClient, so tests run without a
detection backend or object storage.
"""
from __future__ import annotations

import pytest

from common.settings import ClientConfig
from common.types import ImageFile
from tests.fakes import FakeApiClient


@pytest.fixture()
def config(tmp_path) -> ClientConfig:
    return ClientConfig(
        api_base_url="http://api.test",
        storage_base_url="http://storage.test/detections",
        request_timeout_sec=5,
        page_size=10,
        profile_path=tmp_path / "profile.json",
    )


@pytest.fixture()
def fake_client() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture()
def image_file() -> ImageFile:
    return ImageFile(name="harbour.jpg", content=b"\xff\xd8\xff\xe0fake-jpeg", content_type="image/jpeg")


@pytest.fixture()
def session(fake_client, config):
    from detection import DetectionSession

    return DetectionSession(fake_client, config=config)


@pytest.fixture()
def controller_factory(fake_client, config):
    """Create a HistoryController bound to the fake client; accepts keyword overrides."""
    from history import HistoryController

    def _factory(**kwargs) -> HistoryController:
        return HistoryController(fake_client, config=config, **kwargs)

    return _factory
