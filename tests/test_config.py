"""Tests for environment configuration and CLI overrides."""

from __future__ import annotations

import pytest

from trailhead_helper.__main__ import build_parser, config_from_args
from trailhead_helper.config import DEFAULT_CDP_PORTS, HelperConfig, detect_binary

_VARS = (
    "TRAILHEAD_CDP_HOST",
    "TRAILHEAD_CDP_PORTS",
    "TRAILHEAD_PROFILE_DIR",
    "TRAILHEAD_BROWSER",
    "TRAILHEAD_HEADLESS",
    "TRAILHEAD_DOMAINS",
    "TRAILHEAD_LAUNCH_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


class TestFromEnv:
    def test_defaults(self):
        config = HelperConfig.from_env()

        assert config.cdp_host == "127.0.0.1"
        assert config.cdp_ports == list(DEFAULT_CDP_PORTS)
        assert config.domains == ["trailhead.salesforce.com"]
        assert config.headless is False
        assert config.binary_path is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TRAILHEAD_CDP_HOST", "10.0.0.2")
        monkeypatch.setenv("TRAILHEAD_CDP_PORTS", "9333, 9334")
        monkeypatch.setenv("TRAILHEAD_HEADLESS", "true")
        monkeypatch.setenv("TRAILHEAD_DOMAINS", "Example.com,trailhead.salesforce.com")
        monkeypatch.setenv("TRAILHEAD_LAUNCH_TIMEOUT", "30")

        config = HelperConfig.from_env()

        assert config.cdp_host == "10.0.0.2"
        assert config.cdp_ports == [9333, 9334]
        assert config.headless is True
        assert config.domains == ["example.com", "trailhead.salesforce.com"]
        assert config.launch_timeout == 30.0

    def test_bad_ports(self, monkeypatch):
        monkeypatch.setenv("TRAILHEAD_CDP_PORTS", "9222,abc")

        with pytest.raises(ValueError, match="TRAILHEAD_CDP_PORTS"):
            HelperConfig.from_env()

    def test_profile_dir_expands_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("TRAILHEAD_PROFILE_DIR", "~/profiles/th")

        assert HelperConfig.from_env().resolved_profile_dir == str(tmp_path / "profiles" / "th")

    def test_explicit_binary_wins(self, monkeypatch):
        monkeypatch.setenv("TRAILHEAD_BROWSER", "/opt/chromium/chrome")

        assert HelperConfig.from_env().resolved_binary == "/opt/chromium/chrome"


class TestDetectBinary:
    def test_falls_back_to_path_then_name(self, monkeypatch):
        monkeypatch.setattr("trailhead_helper.config.DEFAULT_BINARY_CANDIDATES", [])
        monkeypatch.setattr("trailhead_helper.config.shutil.which", lambda name: None)

        assert detect_binary() == "google-chrome"

    def test_uses_path_lookup(self, monkeypatch):
        monkeypatch.setattr("trailhead_helper.config.DEFAULT_BINARY_CANDIDATES", [])
        monkeypatch.setattr(
            "trailhead_helper.config.shutil.which",
            lambda name: "/usr/local/bin/chromium" if name == "chromium" else None,
        )

        assert detect_binary() == "/usr/local/bin/chromium"


class TestCliOverrides:
    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("TRAILHEAD_CDP_PORTS", "9333")

        args = build_parser().parse_args(
            ["--cdp-port", "9400", "--cdp-port", "9401", "--domain", "Example.com", "--headless"]
        )
        config = config_from_args(args)

        assert config.cdp_ports == [9400, 9401]
        assert config.domains == ["example.com"]
        assert config.headless is True

    def test_environment_kept_without_flags(self, monkeypatch):
        monkeypatch.setenv("TRAILHEAD_CDP_PORTS", "9333")

        config = config_from_args(build_parser().parse_args([]))

        assert config.cdp_ports == [9333]
