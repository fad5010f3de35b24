"""Shared fixtures for cdn-image tests."""

from pathlib import Path

import pytest

from cdn_image.config import reset_config
from cdn_image.models import Config, Environment


@pytest.fixture(autouse=True)
def clean_default_config():
    """Each test starts and ends with an empty process-wide default."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config():
    """Configuration used by most URL tests."""
    return Config(cloud_name="test123")


@pytest.fixture
def http_page():
    """An http page with a 1x display."""
    return Environment(page_protocol="http:", device_pixel_ratio=lambda: 1.0)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point ~ and the working directory at an empty temp dir."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    monkeypatch.chdir(tmp_path)
    for key in ("CLOUDINARY_URL", "CLOUDINARY_CLOUD_NAME"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path
