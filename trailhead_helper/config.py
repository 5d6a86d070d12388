"""Runtime configuration, read from the environment.

Every setting has an environment variable and a default; the CLI
(``python -m trailhead_helper``) can override them with flags.

    TRAILHEAD_CDP_HOST        DevTools host (default 127.0.0.1)
    TRAILHEAD_CDP_PORTS       Ports probed for a running browser (9222,9223,9224)
    TRAILHEAD_PROFILE_DIR     Persistent profile for a launched browser
    TRAILHEAD_BROWSER         Browser binary (default: auto-detect)
    TRAILHEAD_HEADLESS        "1" to launch headless
    TRAILHEAD_DOMAINS         Comma separated site domains
    TRAILHEAD_LAUNCH_TIMEOUT  Seconds to wait for a launched browser
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CDP_PORTS: tuple[int, ...] = (9222, 9223, 9224)
DEFAULT_DOMAINS: tuple[str, ...] = ("trailhead.salesforce.com",)
DEFAULT_PROFILE_DIR = "~/.trailhead-helper/chrome-profile"

DEFAULT_BINARY_CANDIDATES: list[str] = [
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/google/chrome/chrome",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    # Snap builds ignore --user-data-dir outside $HOME/snap
    "/snap/bin/chromium",
]

# Names tried on PATH when none of the candidates exist
_PATH_NAMES = ("google-chrome", "chromium", "chromium-browser", "chrome")


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def detect_binary() -> str:
    """Return the first installed Chrome/Chromium binary.

    Falls back to the bare name ``google-chrome`` so the launch error
    (rather than detection) reports a missing browser.
    """
    for candidate in DEFAULT_BINARY_CANDIDATES:
        path = Path(candidate)
        if path.exists() and os.access(str(path), os.X_OK):
            return str(path)
    for name in _PATH_NAMES:
        found = shutil.which(name)
        if found:
            return found
    return "google-chrome"


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Timeouts:
    """Bounded waits, in seconds.

    Every wait in the tools is a poll that gives up after one of these;
    giving up is treated as "not there", never as a failure.
    """

    challenge_probe: float = 0.5
    quiz_widget_probe: float = 1.0
    challenge_wait: float = 5.0
    quiz_widget_wait: float = 5.0
    completion_wait: float = 10.0
    navigation: float = 30.0
    network_idle: float = 0.5
    liveness: float = 2.0
    poll_interval: float = 0.1


@dataclass
class HelperConfig:
    cdp_host: str = "127.0.0.1"
    cdp_ports: list[int] = field(default_factory=lambda: list(DEFAULT_CDP_PORTS))
    profile_dir: str = DEFAULT_PROFILE_DIR
    binary_path: str | None = None
    headless: bool = False
    domains: list[str] = field(default_factory=lambda: list(DEFAULT_DOMAINS))
    launch_timeout: float = 15.0
    timeouts: Timeouts = field(default_factory=Timeouts)

    @classmethod
    def from_env(cls) -> HelperConfig:
        config = cls()
        config.cdp_host = os.environ.get("TRAILHEAD_CDP_HOST", config.cdp_host)

        ports = os.environ.get("TRAILHEAD_CDP_PORTS")
        if ports:
            try:
                config.cdp_ports = [int(p) for p in _split_csv(ports)]
            except ValueError as exc:
                raise ValueError(f"TRAILHEAD_CDP_PORTS must be integers: {ports!r}") from exc

        config.profile_dir = os.environ.get("TRAILHEAD_PROFILE_DIR", config.profile_dir)
        config.binary_path = os.environ.get("TRAILHEAD_BROWSER") or None
        config.headless = _env_flag("TRAILHEAD_HEADLESS")

        domains = os.environ.get("TRAILHEAD_DOMAINS")
        if domains:
            config.domains = [d.lower() for d in _split_csv(domains)]

        timeout = os.environ.get("TRAILHEAD_LAUNCH_TIMEOUT")
        if timeout:
            config.launch_timeout = float(timeout)
        return config

    @property
    def resolved_profile_dir(self) -> str:
        return expand_path(self.profile_dir)

    @property
    def resolved_binary(self) -> str:
        if self.binary_path:
            return expand_path(self.binary_path)
        return detect_binary()
