"""Tests for client configuration."""

import pytest

from empire_client.config import ClientConfig, StagingBackend, get_client_config


def test_defaults():
    config = ClientConfig()

    assert config.staging_backend == StagingBackend.FILE
    assert config.header_delay == 0.4
    assert config.item_delay == 1.2
    assert config.fetch_attempts == 3


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("EMPIRE_CLIENT_STAGING_BACKEND", "memory")
    monkeypatch.setenv("EMPIRE_CLIENT_STAGING_PATH", "/tmp/orders")
    monkeypatch.setenv("EMPIRE_CLIENT_ITEM_DELAY", "0.5")
    monkeypatch.setenv("EMPIRE_CLIENT_FETCH_ATTEMPTS", "5")

    config = get_client_config()

    assert config.staging_backend == StagingBackend.MEMORY
    assert config.staging_path == "/tmp/orders"
    assert config.item_delay == 0.5
    assert config.header_delay == 0.4
    assert config.fetch_attempts == 5


def test_bad_number_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("EMPIRE_CLIENT_HEADER_DELAY", "fast")

    assert get_client_config().header_delay == 0.4
    assert "not a number" in caplog.text


def test_validation():
    with pytest.raises(ValueError, match="Invalid fetch_attempts"):
        ClientConfig(fetch_attempts=0)
    with pytest.raises(ValueError, match="Invalid item_delay"):
        ClientConfig(item_delay=-1)
    with pytest.raises(ValueError, match="Invalid countdown_tick"):
        ClientConfig(countdown_tick=0)
