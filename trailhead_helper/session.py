"""Session: the browser and active tab owned by one server process.

Every tool goes through a :class:`Session`.  It acquires the browser on
first use, re-selects the tab whenever the cached one dies, serializes
tool bodies and turns any failure into a :class:`ToolResponse` so nothing
escapes to the transport, except a browser that cannot be started at all.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from trailhead_helper.config import HelperConfig
from trailhead_helper.debug import debug_selector
from trailhead_helper.errors import BrowserLaunchError, MultipleCandidatesError
from trailhead_helper.launcher import acquire_browser
from trailhead_helper.pages import select_page
from trailhead_helper.quiz import INELIGIBLE_MESSAGE, extract_content, extract_quiz, page_is_eligible
from trailhead_helper.submit import submit_answers

if TYPE_CHECKING:
    from trailhead_helper._base import Page
    from trailhead_helper.cdp import CdpBrowser

logger = logging.getLogger(__name__)


@dataclass
class ToolResponse:
    """Text handed back to the caller; ``is_error`` marks a failed call."""

    text: str
    is_error: bool = False


_SCHEME = re.compile(r"[a-z][a-z0-9+.-]*\Z")

# Schemes that are meaningless without a host
_HOST_SCHEMES = ("http", "https", "ws", "wss", "ftp")


def is_absolute_url(url: str) -> bool:
    """True for any address with a scheme, e.g. ``https://...``, ``about:blank``
    or ``file:///tmp/unit.html``."""
    parsed = urlparse(url.strip())
    if not _SCHEME.match(parsed.scheme):
        return False
    if parsed.scheme in _HOST_SCHEMES:
        return bool(parsed.netloc)
    return bool(parsed.netloc or parsed.path)


class Session:
    """Owns the browser handle and the cached active tab.

    Example::

        with Session(HelperConfig.from_env()) as session:
            session.goto("https://trailhead.salesforce.com/...")
            print(session.get_quiz().text)
    """

    def __init__(
        self,
        config: HelperConfig | None = None,
        *,
        browser_factory: Callable[[HelperConfig], CdpBrowser] = acquire_browser,
    ) -> None:
        self.config = config or HelperConfig.from_env()
        self._browser_factory = browser_factory
        self._browser: CdpBrowser | None = None
        self._page: Page | None = None
        # Tool bodies share the cached page; run them one at a time.
        self._lock = threading.RLock()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- browser / page ----------------------------------------------------

    @property
    def browser(self) -> CdpBrowser:
        """The browser, attached or launched on first access."""
        if self._browser is None:
            self._browser = self._browser_factory(self.config)
        return self._browser

    def current_page(self) -> Page:
        """Return the tab to operate on, re-selecting it if the cached one died.

        Raises:
            MultipleCandidatesError: If several site tabs are open.
        """
        page = select_page(self.browser, self._page, self.config.domains)
        if page is not self._page:
            if self._page is not None:
                self._page.close()
            self._page = page
        return page

    def close(self) -> None:
        """Shut the browser down.  Safe to call more than once."""
        acquired = self._lock.acquire(timeout=5.0)
        try:
            if self._page is not None:
                self._page.close()
                self._page = None
            if self._browser is not None:
                logger.info("Closing browser %r", self._browser)
                self._browser.close()
                self._browser = None
        finally:
            if acquired:
                self._lock.release()

    # -- tool boundary -----------------------------------------------------

    def _run(self, tool: str, body: Callable[[], ToolResponse]) -> ToolResponse:
        with self._lock:
            try:
                return body()
            except BrowserLaunchError:
                raise
            except MultipleCandidatesError as exc:
                logger.warning("%s: %s", tool, exc)
                return ToolResponse(str(exc), is_error=True)
            except Exception as exc:
                logger.exception("Error in %s tool", tool)
                return ToolResponse(f"Error: {exc}", is_error=True)

    def _eligible_page(self) -> Page | None:
        page = self.current_page()
        if page_is_eligible(page, self.config.domains):
            return page
        return None

    # -- tools -------------------------------------------------------------

    def get_content(self) -> ToolResponse:
        def body() -> ToolResponse:
            page = self._eligible_page()
            if page is None:
                return ToolResponse(INELIGIBLE_MESSAGE, is_error=True)
            return ToolResponse(extract_content(page))

        return self._run("get-current-trail-content", body)

    def get_quiz(self) -> ToolResponse:
        def body() -> ToolResponse:
            page = self._eligible_page()
            if page is None:
                return ToolResponse(INELIGIBLE_MESSAGE, is_error=True)
            return ToolResponse(extract_quiz(page, self.config.timeouts).to_json())

        return self._run("get-trail-quiz-questions", body)

    def answer_quiz(self, option_ids: Sequence[str]) -> ToolResponse:
        def body() -> ToolResponse:
            page = self._eligible_page()
            if page is None:
                return ToolResponse(INELIGIBLE_MESSAGE, is_error=True)
            return ToolResponse(submit_answers(page, option_ids, self.config.timeouts))

        return self._run("answer-trail-quiz", body)

    def goto(self, url: str) -> ToolResponse:
        def body() -> ToolResponse:
            if not is_absolute_url(url):
                return ToolResponse(
                    f"Error navigating to page: {url!r} is not an absolute URL",
                    is_error=True,
                )
            page = self.current_page()
            timeouts = self.config.timeouts
            try:
                page.navigate(url, timeout=timeouts.navigation, idle=timeouts.network_idle)
                title = page.title()
            except Exception as exc:
                logger.warning("Navigation to %s failed: %s", url, exc)
                return ToolResponse(f"Error navigating to page: {exc}", is_error=True)
            return ToolResponse(f"Successfully navigated to: {title}")

        return self._run("goto-page", body)

    def debug(self, selector: str, verbose: bool = False) -> ToolResponse:
        def body() -> ToolResponse:
            if not selector.strip():
                return ToolResponse("Error: selector must not be empty", is_error=True)
            return ToolResponse(debug_selector(self.current_page(), selector, verbose=verbose))

        return self._run("debug-selector", body)
