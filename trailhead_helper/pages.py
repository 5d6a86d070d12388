"""Page selection: decide which open tab the tools operate on."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from trailhead_helper.errors import MultipleCandidatesError

if TYPE_CHECKING:
    from trailhead_helper._base import Page
    from trailhead_helper.cdp import CdpBrowser

logger = logging.getLogger(__name__)


def url_matches(url: str, domains: Iterable[str]) -> bool:
    """Return True if *url*'s host is one of *domains* or a subdomain of one."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


def select_page(
    browser: CdpBrowser,
    cached: Page | None,
    domains: Iterable[str],
) -> Page:
    """Pick the tab subsequent tools should use.

    Order of preference:
        1. the cached page, if still alive;
        2. the single live tab on a site domain;
        3. the first live tab reporting focus, else the first live tab;
        4. a fresh blank tab when no live tab exists.

    Raises:
        MultipleCandidatesError: If more than one live tab is on a site
            domain.  Zero matches falls back to focus, many matches does
            not: the user must close the extras.
    """
    if cached is not None and cached.is_alive():
        return cached

    candidates = browser.pages()
    chosen = None
    try:
        chosen = _choose(candidates, domains)
    finally:
        # Probing opened a connection to every tab; keep only the winner's.
        for page in candidates:
            if page is not chosen:
                page.close()
    if chosen is None:
        logger.info("No usable tabs, opening a blank one")
        return browser.new_page()
    return chosen


def _choose(candidates: list[Page], domains: Iterable[str]) -> Page | None:
    live = [page for page in candidates if page.is_alive()]
    if not live:
        return None

    domains = list(domains)
    located = [(page, page.url()) for page in live]
    matching = [(page, url) for page, url in located if url_matches(url, domains)]

    if len(matching) == 1:
        page, url = matching[0]
        logger.info("Selected site tab %s", url)
        return page
    if len(matching) > 1:
        raise MultipleCandidatesError([url for _, url in matching])

    for page in live:
        if page.has_focus():
            logger.info("No site tab open, using the focused tab")
            return page

    logger.info("No site tab or focused tab, using the first tab")
    return live[0]
