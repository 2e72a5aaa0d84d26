"""
Unit tests for configuration accessors.
"""

from unittest.mock import patch

import pytest

from gitclient.config import (
    ConfigAccessor,
    get_default_backend,
    get_default_remote_name,
    get_network_shallow,
    get_network_timeout,
    get_ssh_command,
)


@pytest.mark.short
def test_defaults():
    assert get_default_backend() == "native"
    assert get_default_remote_name() == "origin"
    assert get_network_timeout() == 0
    assert get_network_shallow() is False
    assert get_ssh_command() == "ssh"


@pytest.mark.short
def test_custom_config(tmp_path):
    config_file = tmp_path / "gitclient.cfg"
    config = ConfigAccessor(config_file)
    config.set("client", "backend", "embedded")
    config.set("network", "timeout", "30")
    config.set("network", "shallow", "yes")
    config.set("ssh", "command", "ssh -p 2222")
    config.save()

    # Reload from disk
    with patch("gitclient.config.config", ConfigAccessor(config_file)):
        assert get_default_backend() == "embedded"
        assert get_network_timeout() == 30
        assert get_network_shallow() is True
        assert get_ssh_command() == "ssh -p 2222"


@pytest.mark.short
def test_invalid_timeout_falls_back(tmp_path, capture_logs):
    config = ConfigAccessor(tmp_path / "gitclient.cfg")
    config.set("network", "timeout", "soon")
    with patch("gitclient.config.config", config):
        assert get_network_timeout() == 0
    assert "Ignoring invalid network timeout" in capture_logs.getvalue()


@pytest.mark.short
def test_accessor_sections_and_options(tmp_path):
    config = ConfigAccessor(tmp_path / "missing.cfg")
    assert config.sections() == []
    assert config.options("client") == []
    assert config.get("client", "backend", default="fallback") == "fallback"
    config.set("client", "backend", "native")
    assert config.sections() == ["client"]
    assert config.options("client") == ["backend"]
