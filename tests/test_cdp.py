"""Tests for the CDP transport and tab handle with a mocked websocket."""

from __future__ import annotations

import json

import pytest

from trailhead_helper import cdp
from trailhead_helper.cdp import CdpBrowser, CdpPage, _cdp_send, _exception_text
from trailhead_helper.errors import CdpError


class MockWS:
    """Records sent commands; answers each with ``results[method]``.

    ``events`` are delivered before the first answer to exercise the
    discard loop.
    """

    def __init__(self, results=None, events=None):
        self.calls = []
        self.results = results or {}
        self.events = list(events or [])
        self.closed = False
        self._timeout = 30

    def gettimeout(self):
        return self._timeout

    def settimeout(self, t):
        self._timeout = t

    def send(self, data):
        self.calls.append(json.loads(data))

    def recv(self):
        if self.events:
            return json.dumps(self.events.pop(0))
        call = self.calls[-1]
        answer = self.results.get(call["method"], {})
        if callable(answer):
            answer = answer(call.get("params", {}))
        if isinstance(answer, Exception):
            raise answer
        if "error" in answer:
            return json.dumps({"id": call["id"], "error": answer["error"]})
        return json.dumps({"id": call["id"], "result": answer})

    def close(self):
        self.closed = True


def _value(value):
    return {"result": {"type": "object", "value": value}}


def _page(monkeypatch, ws):
    monkeypatch.setattr(cdp, "_cdp_connect", lambda url, host=None: ws)
    return CdpPage({"id": "T1", "url": "about:blank", "webSocketDebuggerUrl": "ws://x/devtools/page/T1"})


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TestCdpSend:
    def test_events_are_discarded(self):
        ws = MockWS(
            results={"Runtime.evaluate": _value(3)},
            events=[{"method": "Page.loadEventFired", "params": {}}],
        )

        resp = _cdp_send(ws, "Runtime.evaluate", {"expression": "1+2"})

        assert resp["result"]["result"]["value"] == 3
        assert ws.calls[0]["params"] == {"expression": "1+2"}

    def test_error_raises_cdp_error(self):
        ws = MockWS(results={"Page.navigate": {"error": {"code": -32000, "message": "Cannot navigate"}}})

        with pytest.raises(CdpError, match="Cannot navigate"):
            _cdp_send(ws, "Page.navigate", {"url": "x"})

    def test_timeout_restored(self):
        ws = MockWS()

        _cdp_send(ws, "Browser.getVersion", timeout=2.0)

        assert ws.gettimeout() == 30

    def test_message_ids_increase(self):
        ws = MockWS()

        _cdp_send(ws, "A.a")
        _cdp_send(ws, "B.b")

        assert ws.calls[1]["id"] > ws.calls[0]["id"]


class TestExceptionText:
    def test_prefers_description(self):
        details = {"text": "Uncaught", "exception": {"description": "TypeError: x is null"}}
        assert _exception_text(details) == "TypeError: x is null"

    def test_falls_back_to_text(self):
        assert _exception_text({"text": "Uncaught"}) == "Uncaught"


# ---------------------------------------------------------------------------
# CdpPage
# ---------------------------------------------------------------------------


class TestCdpPage:
    def test_evaluate_passes_arguments_as_json(self, monkeypatch):
        ws = MockWS(results={"Runtime.evaluate": _value("ok")})
        page = _page(monkeypatch, ws)

        assert page.evaluate("(a, b) => a", "sel'ector", 5) == "ok"

        params = ws.calls[0]["params"]
        assert params["expression"] == '((a, b) => a)(...["sel\'ector", 5])'
        assert params["returnByValue"] is True
        assert params["awaitPromise"] is True

    def test_script_exception_raises(self, monkeypatch):
        ws = MockWS(
            results={
                "Runtime.evaluate": {
                    "result": {"type": "object"},
                    "exceptionDetails": {"text": "Uncaught", "exception": {"description": "SyntaxError: bad"}},
                }
            }
        )
        page = _page(monkeypatch, ws)

        with pytest.raises(CdpError, match="SyntaxError: bad"):
            page.evaluate("() => {")

    def test_undefined_result_is_none(self, monkeypatch):
        ws = MockWS(results={"Runtime.evaluate": {"result": {"type": "undefined"}}})
        page = _page(monkeypatch, ws)

        assert page.evaluate("() => undefined") is None

    def test_is_alive(self, monkeypatch):
        page = _page(monkeypatch, MockWS(results={"Runtime.evaluate": _value(1)}))

        assert page.is_alive() is True

    def test_is_alive_false_when_socket_fails(self, monkeypatch):
        ws = MockWS(results={"Runtime.evaluate": ConnectionResetError("gone")})
        page = _page(monkeypatch, ws)

        assert page.is_alive() is False
        assert ws.closed

    def test_has_focus_false_on_error(self, monkeypatch):
        ws = MockWS(results={"Runtime.evaluate": {"error": {"code": -1, "message": "detached"}}})
        page = _page(monkeypatch, ws)

        assert page.has_focus() is False

    def test_missing_debugger_url(self):
        page = CdpPage({"id": "T2"})

        with pytest.raises(CdpError, match="no debugger URL"):
            page.evaluate("() => 1")

    def test_mouse_click_sends_three_events(self, monkeypatch):
        ws = MockWS()
        page = _page(monkeypatch, ws)

        page.mouse_click(10.0, 20.0)

        types = [c["params"]["type"] for c in ws.calls]
        assert types == ["mouseMoved", "mousePressed", "mouseReleased"]
        assert ws.calls[1]["params"]["button"] == "left"

    def test_navigate_error_text(self, monkeypatch):
        ws = MockWS(
            results={
                "Runtime.evaluate": _value(1.0),
                "Page.navigate": {"frameId": "F", "errorText": "net::ERR_NAME_NOT_RESOLVED"},
            }
        )
        page = _page(monkeypatch, ws)

        with pytest.raises(CdpError, match="ERR_NAME_NOT_RESOLVED"):
            page.navigate("https://nowhere.invalid/", timeout=1.0, idle=0.0)

    def test_navigate_waits_for_new_document(self, monkeypatch):
        origins = iter([1.0, 1.0, 2.0])

        def evaluate(params):
            expression = params["expression"]
            if "timeOrigin" in expression:
                return _value(next(origins, 2.0))
            if "readyState" in expression:
                return _value("complete")
            return _value(4)

        ws = MockWS(results={"Runtime.evaluate": evaluate, "Page.navigate": {"frameId": "F", "loaderId": "L"}})
        page = _page(monkeypatch, ws)
        monkeypatch.setattr(cdp.time, "sleep", lambda s: None)

        page.navigate("https://trailhead.salesforce.com/", timeout=5.0, idle=0.0)

        methods = [c["method"] for c in ws.calls]
        assert "Page.navigate" in methods
        ready_checks = [c for c in ws.calls if "readyState" in c.get("params", {}).get("expression", "")]
        assert len(ready_checks) == 2

    def test_navigate_timeout(self, monkeypatch):
        def evaluate(params):
            if "readyState" in params["expression"]:
                return _value("loading")
            return _value(1.0)

        ws = MockWS(results={"Runtime.evaluate": evaluate, "Page.navigate": {"frameId": "F"}})
        page = _page(monkeypatch, ws)

        with pytest.raises(TimeoutError, match="Navigation timeout"):
            page.navigate("https://trailhead.salesforce.com/", timeout=0.05, idle=0.0)


# ---------------------------------------------------------------------------
# CdpBrowser
# ---------------------------------------------------------------------------


class TestCdpBrowser:
    def test_pages_keeps_only_page_targets(self, monkeypatch):
        targets = [
            {"id": "A", "type": "page", "url": "https://trailhead.salesforce.com/"},
            {"id": "W", "type": "service_worker", "url": "https://x/sw.js"},
            {"id": "B", "type": "page", "url": "about:blank"},
        ]
        monkeypatch.setattr(cdp, "_cdp_get_targets", lambda host, port: targets)

        pages = CdpBrowser("127.0.0.1", 9222).pages()

        assert [p.target_id for p in pages] == ["A", "B"]

    def test_new_page_uses_new_target(self, monkeypatch):
        seen = []

        def new_target(host, port, url="about:blank"):
            seen.append((host, port, url))
            return {"id": "N", "type": "page", "url": url}

        monkeypatch.setattr(cdp, "_cdp_new_target", new_target)

        page = CdpBrowser("127.0.0.1", 9223).new_page()

        assert page.target_id == "N"
        assert seen == [("127.0.0.1", 9223, "about:blank")]

    def test_close_never_raises(self, monkeypatch):
        def unreachable(host, port, timeout=5.0):
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(cdp, "_cdp_get_version", unreachable)

        CdpBrowser("127.0.0.1", 9222).close()

    def test_close_sends_browser_close(self, monkeypatch):
        ws = MockWS()
        monkeypatch.setattr(
            cdp,
            "_cdp_get_version",
            lambda host, port, timeout=5.0: {"webSocketDebuggerUrl": "ws://x/devtools/browser/B"},
        )
        monkeypatch.setattr(cdp, "_cdp_connect", lambda url, host=None: ws)

        CdpBrowser("127.0.0.1", 9222).close()

        assert [c["method"] for c in ws.calls] == ["Browser.close"]
        assert ws.closed
