"""Browser session provider: attach to a running browser or launch one."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

from trailhead_helper.cdp import CdpBrowser, _cdp_get_version
from trailhead_helper.config import HelperConfig
from trailhead_helper.errors import BrowserLaunchError

logger = logging.getLogger(__name__)

# Reopen the previous tabs and keep crash/first-run prompts out of the way.
LAUNCH_FLAGS: tuple[str, ...] = (
    "--restore-last-session",
    "--disable-session-crashed-bubble",
    "--hide-crash-restore-bubble",
    "--no-first-run",
    "--no-default-browser-check",
    "--remote-allow-origins=*",
)


def probe_endpoint(host: str, port: int, timeout: float = 0.5) -> bool:
    """Return True if a DevTools endpoint answers on ``host:port``."""
    try:
        _cdp_get_version(host, port, timeout=timeout)
        return True
    except Exception as exc:
        logger.debug("No DevTools endpoint on %s:%s (%s)", host, port, exc)
        return False


def build_launch_command(config: HelperConfig) -> list[str]:
    port = config.cdp_ports[0] if config.cdp_ports else 9222
    cmd = [
        config.resolved_binary,
        f"--remote-debugging-port={port}",
        f"--user-data-dir={config.resolved_profile_dir}",
        *LAUNCH_FLAGS,
    ]
    if config.headless:
        cmd.append("--headless=new")
    return cmd


def _browser(config: HelperConfig, port: int, process: subprocess.Popen | None = None) -> CdpBrowser:
    return CdpBrowser(
        config.cdp_host,
        port,
        process=process,
        liveness_timeout=config.timeouts.liveness,
        poll_interval=config.timeouts.poll_interval,
    )


def launch_browser(config: HelperConfig) -> CdpBrowser:
    """Start a browser on the first configured port and wait for DevTools.

    Raises:
        BrowserLaunchError: If the binary cannot be started or never
            opens its debugging endpoint.
    """
    cmd = build_launch_command(config)
    port = config.cdp_ports[0] if config.cdp_ports else 9222
    Path(config.resolved_profile_dir).mkdir(parents=True, exist_ok=True)

    logger.info("Launching browser: %s", " ".join(cmd))
    try:
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise BrowserLaunchError(f"Could not start browser {cmd[0]!r}: {exc}") from exc

    deadline = time.monotonic() + config.launch_timeout
    while time.monotonic() < deadline:
        if process.poll() is not None:
            raise BrowserLaunchError(
                f"Browser exited with status {process.returncode} before opening "
                f"port {port} (is the profile {config.resolved_profile_dir} in use?)"
            )
        if probe_endpoint(config.cdp_host, port, timeout=0.5):
            logger.info("Browser launched, DevTools on %s:%s", config.cdp_host, port)
            return _browser(config, port, process)
        time.sleep(0.1)

    process.terminate()
    raise BrowserLaunchError(
        f"Browser did not open DevTools on port {port} within {config.launch_timeout:g}s"
    )


def acquire_browser(config: HelperConfig) -> CdpBrowser:
    """Attach to the first browser answering on a known port, else launch one.

    Probe failures are treated as "try the next port"; only the launch
    step can fail.
    """
    for port in config.cdp_ports:
        if probe_endpoint(config.cdp_host, port):
            logger.info("Attached to running browser on %s:%s", config.cdp_host, port)
            return _browser(config, port)
    return launch_browser(config)
