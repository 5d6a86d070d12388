"""
Chrome DevTools Protocol (CDP) transport, tab and browser handles.

Talks to a Chromium browser started with --remote-debugging-port: the
HTTP endpoints (/json/version, /json/list, /json/new) enumerate and open
tabs, and one synchronous websocket per tab carries Runtime, Page and
Input commands.

Dependencies:
    pip install websocket-client
"""

from __future__ import annotations

import contextlib
import http.client
import itertools
import json
import logging
import subprocess
import threading
import time
from typing import Any
from urllib.parse import quote, urlparse, urlunparse

import websocket  # websocket-client

from trailhead_helper._base import Page
from trailhead_helper.errors import CdpError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# CDP Transport
# ---------------------------------------------------------------------------

_msg_id_lock = threading.Lock()
_msg_id_counter = itertools.count(1)


def _cdp_get_json(
    host: str,
    port: int,
    path: str,
    *,
    method: str = "GET",
    timeout: float = 5.0,
) -> Any:
    """Call one of the DevTools HTTP endpoints and decode the JSON body."""
    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request(method, path)
        resp = conn.getresponse()
        data = resp.read().decode("utf-8")
        if resp.status != 200:
            raise CdpError(f"GET {path} answered {resp.status}: {data.strip()[:200]}")
        return json.loads(data)
    finally:
        conn.close()


def _cdp_get_version(host: str, port: int, timeout: float = 5.0) -> dict:
    """Fetch browser identity, including the browser-level websocket URL."""
    return _cdp_get_json(host, port, "/json/version", timeout=timeout)


def _cdp_get_targets(host: str, port: int) -> list[dict]:
    """Fetch the list of CDP targets (browser tabs) via HTTP."""
    return _cdp_get_json(host, port, "/json/list")


def _cdp_new_target(host: str, port: int, url: str = "about:blank") -> dict:
    """Open a new tab.  Chrome only accepts PUT on this endpoint."""
    return _cdp_get_json(host, port, f"/json/new?{quote(url, safe=':/?&=#')}", method="PUT")


def _cdp_connect(ws_url: str, host: str | None = None) -> websocket.WebSocket:
    """Open a synchronous websocket connection to a CDP target.

    If *host* is given, the hostname in *ws_url* is replaced so that
    we always connect via the same address used for target discovery
    (avoids slow ``localhost`` DNS lookups on some systems).
    """
    if host:
        parts = urlparse(ws_url)
        ws_url = urlunparse(parts._replace(netloc=f"{host}:{parts.port}"))
    ws = websocket.WebSocket()
    ws.settimeout(30)
    ws.connect(ws_url)
    return ws


def _cdp_send(
    ws: websocket.WebSocket,
    method: str,
    params: dict | None = None,
    timeout: float = 30.0,
) -> dict:
    """Send a CDP command and wait for the matching response.

    Discards interleaved CDP event messages while waiting.
    """
    with _msg_id_lock:
        msg_id = next(_msg_id_counter)

    message: dict[str, Any] = {"id": msg_id, "method": method}
    if params:
        message["params"] = params

    old_timeout = ws.gettimeout()
    ws.settimeout(timeout)
    try:
        ws.send(json.dumps(message))
        while True:
            raw = ws.recv()
            resp = json.loads(raw)
            if resp.get("id") == msg_id:
                if "error" in resp:
                    err = resp["error"]
                    raise CdpError(f"CDP error {err.get('code')}: {err.get('message')}")
                return resp
            # anything else is an event notification; skip it
    finally:
        ws.settimeout(old_timeout)


def _cdp_close(ws: websocket.WebSocket) -> None:
    """Close a CDP websocket, ignoring a socket that is already gone."""
    with contextlib.suppress(Exception):
        ws.close()


def _exception_text(details: dict) -> str:
    """Best human-readable message from Runtime exceptionDetails."""
    exc = details.get("exception") or {}
    return exc.get("description") or details.get("text") or "script failed"


# ---------------------------------------------------------------------------
# Tab handle
# ---------------------------------------------------------------------------

_READY_STATE_JS = "() => document.readyState"
_TIME_ORIGIN_JS = "() => performance.timeOrigin"
_RESOURCE_COUNT_JS = "() => performance.getEntriesByType('resource').length"


class CdpPage(Page):
    """One browser tab, reached over its own websocket.

    The websocket is opened on first use and kept until :meth:`close` or a
    transport failure, after which the next call reconnects.
    """

    def __init__(
        self,
        target: dict,
        *,
        host: str | None = None,
        liveness_timeout: float = 2.0,
        poll_interval: float = 0.1,
    ) -> None:
        self._target = target
        self._host = host
        self._liveness_timeout = liveness_timeout
        self._poll_interval = poll_interval
        self._ws: websocket.WebSocket | None = None

    def __repr__(self) -> str:
        return f"CdpPage(id={self.target_id!r}, url={self._target.get('url', '')!r})"

    @property
    def target_id(self) -> str:
        return self._target.get("id", "")

    # -- transport ---------------------------------------------------------

    def _send(self, method: str, params: dict | None = None, timeout: float = 30.0) -> dict:
        if self._ws is None:
            ws_url = self._target.get("webSocketDebuggerUrl")
            if not ws_url:
                raise CdpError(
                    f"Tab {self.target_id} has no debugger URL (is DevTools already attached?)"
                )
            self._ws = _cdp_connect(ws_url, self._host)
        try:
            return _cdp_send(self._ws, method, params, timeout=timeout)
        except CdpError:
            raise
        except Exception:
            # Socket is in an unknown state; drop it so the next call reconnects.
            self.close()
            raise

    def _evaluate(self, function: str, args: tuple, *, timeout: float = 30.0) -> Any:
        expression = f"({function})(...{json.dumps(list(args))})"
        resp = self._send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "returnByValue": True,
                "awaitPromise": True,
                "userGesture": True,
            },
            timeout=timeout,
        )
        result = resp.get("result", {})
        details = result.get("exceptionDetails")
        if details:
            raise CdpError(_exception_text(details))
        return result.get("result", {}).get("value")

    # -- Page interface ----------------------------------------------------

    def url(self) -> str:
        return self._evaluate("() => location.href", ()) or ""

    def title(self) -> str:
        return self._evaluate("() => document.title", ()) or ""

    def is_alive(self) -> bool:
        try:
            return self._evaluate("() => 1", (), timeout=self._liveness_timeout) == 1
        except Exception as exc:
            logger.debug("Tab %s failed liveness check: %s", self.target_id, exc)
            return False

    def has_focus(self) -> bool:
        try:
            return bool(
                self._evaluate("() => document.hasFocus()", (), timeout=self._liveness_timeout)
            )
        except Exception as exc:
            logger.debug("Tab %s focus probe failed: %s", self.target_id, exc)
            return False

    def evaluate(self, function: str, *args: Any) -> Any:
        return self._evaluate(function, args)

    def mouse_click(self, x: float, y: float) -> None:
        for event_type in ("mouseMoved", "mousePressed", "mouseReleased"):
            params: dict[str, Any] = {"type": event_type, "x": x, "y": y}
            if event_type != "mouseMoved":
                params.update({"button": "left", "clickCount": 1})
            self._send("Input.dispatchMouseEvent", params)

    def navigate(self, url: str, *, timeout: float, idle: float) -> None:
        deadline = time.monotonic() + timeout
        try:
            origin_before = self._evaluate(_TIME_ORIGIN_JS, ())
        except CdpError:
            origin_before = None

        resp = self._send("Page.navigate", {"url": url}, timeout=timeout)
        result = resp.get("result", {})
        if result.get("errorText"):
            raise CdpError(f"{result['errorText']} at {url}")
        # Same-document navigations carry no loaderId and keep the old origin.
        cross_document = bool(result.get("loaderId"))

        while True:
            try:
                state = self._evaluate(_READY_STATE_JS, ())
                origin = self._evaluate(_TIME_ORIGIN_JS, ())
            except CdpError:
                # Execution context swapped mid-navigation
                state, origin = None, origin_before
            if state == "complete" and (not cross_document or origin != origin_before):
                break
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Navigation timeout of {timeout:g} s exceeded")
            time.sleep(self._poll_interval)

        self._wait_network_idle(deadline, idle)

    def _wait_network_idle(self, deadline: float, idle: float) -> None:
        """Wait until no new resources load for *idle* seconds (or deadline)."""
        last_count = -1
        quiet_since = time.monotonic()
        while time.monotonic() < deadline:
            try:
                count = self._evaluate(_RESOURCE_COUNT_JS, ())
            except CdpError:
                count = -1
            now = time.monotonic()
            if count != last_count:
                last_count = count
                quiet_since = now
            elif now - quiet_since >= idle:
                return
            time.sleep(self._poll_interval)
        logger.debug("Network did not settle before the navigation deadline")

    def close(self) -> None:
        if self._ws is not None:
            _cdp_close(self._ws)
            self._ws = None


# ---------------------------------------------------------------------------
# Browser handle
# ---------------------------------------------------------------------------


class CdpBrowser:
    """A debuggable browser reachable at ``host:port``.

    ``process`` is set only when this process launched the browser.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        process: subprocess.Popen | None = None,
        liveness_timeout: float = 2.0,
        poll_interval: float = 0.1,
    ) -> None:
        self.host = host
        self.port = port
        self.process = process
        self._liveness_timeout = liveness_timeout
        self._poll_interval = poll_interval

    def __repr__(self) -> str:
        owner = "launched" if self.process is not None else "attached"
        return f"CdpBrowser({self.host}:{self.port}, {owner})"

    def _page(self, target: dict) -> CdpPage:
        return CdpPage(
            target,
            host=self.host,
            liveness_timeout=self._liveness_timeout,
            poll_interval=self._poll_interval,
        )

    def version(self) -> dict:
        return _cdp_get_version(self.host, self.port)

    def pages(self) -> list[CdpPage]:
        """Return all page targets (tabs) in the browser's listing order."""
        targets = _cdp_get_targets(self.host, self.port)
        return [self._page(t) for t in targets if t.get("type") == "page"]

    def new_page(self, url: str = "about:blank") -> CdpPage:
        target = _cdp_new_target(self.host, self.port, url)
        logger.info("Opened new tab %s", target.get("id"))
        return self._page(target)

    def close(self, *, timeout: float = 5.0) -> None:
        """Ask the browser to shut down; never raises."""
        try:
            ws_url = self.version().get("webSocketDebuggerUrl")
            if ws_url:
                ws = _cdp_connect(ws_url, self.host)
                try:
                    _cdp_send(ws, "Browser.close", timeout=timeout)
                finally:
                    _cdp_close(ws)
        except Exception as exc:
            # The socket usually drops before Browser.close is answered.
            logger.debug("Browser.close on %s:%s: %s", self.host, self.port, exc)

        proc = self.process
        if proc is None:
            return
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Browser did not exit, terminating pid %s", proc.pid)
            with contextlib.suppress(Exception):
                proc.terminate()
            try:
                proc.wait(timeout=2.0)
            except subprocess.TimeoutExpired:
                with contextlib.suppress(Exception):
                    proc.kill()
