"""DOM queries, bounded waits and clicks on top of :class:`Page`.

Selectors may use ``>>>`` between segments to descend into shadow roots,
e.g. ``"article >>> div#challenge >>> .quiz-container .questions"``.
Each segment is itself searched through every nested shadow root, so a
plain selector also finds elements inside web components.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, TypeVar

from trailhead_helper.errors import CdpError

if TYPE_CHECKING:
    from trailhead_helper._base import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# ---------------------------------------------------------------------------
# Shadow-piercing query prelude, spliced into every script below
# ---------------------------------------------------------------------------

_DEEP_QUERY = """
    const __collect = (root, sel, out) => {
        root.querySelectorAll(sel).forEach((el) => {
            if (!out.includes(el)) out.push(el);
        });
        if (root.shadowRoot) __collect(root.shadowRoot, sel, out);
        root.querySelectorAll('*').forEach((el) => {
            if (el.shadowRoot) __collect(el.shadowRoot, sel, out);
        });
    };
    const deepQueryAll = (selector, scope) => {
        const segments = selector.split('>>>').map((s) => s.trim()).filter(Boolean);
        if (!segments.length) return [];
        let roots = [scope || document];
        for (const segment of segments) {
            const next = [];
            for (const root of roots) __collect(root, segment, next);
            roots = next;
        }
        return roots;
    };
    const deepQuery = (selector, scope) => deepQueryAll(selector, scope)[0] || null;
"""


def with_deep_query(source: str) -> str:
    """Splice the deep-query helpers into a function at ``/*DEEP_QUERY*/``."""
    return source.replace("/*DEEP_QUERY*/", _DEEP_QUERY)


EXISTS_JS = with_deep_query(
    """(selector) => {
    /*DEEP_QUERY*/
    return deepQueryAll(selector).length > 0;
}"""
)

TEXT_JS = with_deep_query(
    """(selector) => {
    /*DEEP_QUERY*/
    const el = deepQuery(selector);
    return el ? (el.textContent || '').trim() : null;
}"""
)

CLICK_POINT_JS = with_deep_query(
    """(selector) => {
    /*DEEP_QUERY*/
    const el = deepQuery(selector);
    if (!el) return null;
    el.scrollIntoView({block: 'center', inline: 'center'});
    const r = el.getBoundingClientRect();
    return {x: r.x + r.width / 2, y: r.y + r.height / 2, width: r.width, height: r.height};
}"""
)

CLICK_JS = with_deep_query(
    """(selector) => {
    /*DEEP_QUERY*/
    const el = deepQuery(selector);
    if (!el) return false;
    el.click();
    return true;
}"""
)

ENABLED_JS = with_deep_query(
    """(selector) => {
    /*DEEP_QUERY*/
    const el = deepQuery(selector);
    if (!el) return null;
    return !(el.disabled || el.hasAttribute('disabled')
             || el.getAttribute('aria-disabled') === 'true');
}"""
)

CLICK_BY_ID_JS = with_deep_query(
    """(elementId) => {
    /*DEEP_QUERY*/
    const el = deepQuery('#' + CSS.escape(elementId));
    if (!el) return null;
    if (el.tagName === 'INPUT' && el.parentElement) {
        el.parentElement.click();
        return 'label';
    }
    el.click();
    return el.tagName === 'INPUT' ? 'input' : 'element';
}"""
)

CLICK_BUTTON_BY_TEXT_JS = with_deep_query(
    """(labels) => {
    /*DEEP_QUERY*/
    for (const button of deepQueryAll('button, [role="button"]')) {
        const text = (button.innerText || button.textContent || '').trim();
        if (labels.includes(text)) {
            button.click();
            return text;
        }
    }
    return null;
}"""
)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def query_exists(page: Page, selector: str) -> bool:
    return bool(page.evaluate(EXISTS_JS, selector))


def text_content(page: Page, selector: str) -> str | None:
    """Trimmed text of the first match, or None when nothing matches."""
    return page.evaluate(TEXT_JS, selector)


def is_enabled(page: Page, selector: str) -> bool | None:
    """Enabled state of the first match only; None when nothing matches."""
    return page.evaluate(ENABLED_JS, selector)


def wait_for_selector(
    page: Page,
    selector: str,
    timeout: float,
    *,
    interval: float = 0.1,
) -> bool:
    """Poll until *selector* matches.  Returns False on timeout, never raises
    for script errors (the element may be mid-render)."""
    return wait_for_any(page, [selector], timeout, interval=interval) is not None


def wait_for_any(
    page: Page,
    selectors: Iterable[str],
    timeout: float,
    *,
    interval: float = 0.1,
) -> str | None:
    """Poll until one of *selectors* matches and return it, or None."""
    selectors = list(selectors)
    deadline = time.monotonic() + timeout
    while True:
        for selector in selectors:
            try:
                if query_exists(page, selector):
                    return selector
            except CdpError as exc:
                logger.debug("Query %r failed while waiting: %s", selector, exc)
        if time.monotonic() >= deadline:
            return None
        time.sleep(interval)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def click(page: Page, selector: str) -> bool:
    """Scroll the first match into view and click its center.

    Zero-sized elements cannot be hit by a mouse event, so they get a
    scripted ``click()`` instead.  Returns False when nothing matches.
    """
    point = page.evaluate(CLICK_POINT_JS, selector)
    if point is None:
        return False
    if point.get("width") and point.get("height"):
        page.mouse_click(point["x"], point["y"])
        return True
    return bool(page.evaluate(CLICK_JS, selector))


def click_by_id(page: Page, element_id: str) -> str | None:
    """Click the element with *element_id* (an input through its parent
    label).  Returns what was clicked ("label"/"input"/"element") or None."""
    return page.evaluate(CLICK_BY_ID_JS, element_id)


def click_button_with_text(page: Page, labels: Iterable[str]) -> str | None:
    """Click the first button whose visible text is exactly one of *labels*."""
    return page.evaluate(CLICK_BUTTON_BY_TEXT_JS, list(labels))


# ---------------------------------------------------------------------------
# Priority lists
# ---------------------------------------------------------------------------


def first_match(
    candidates: Iterable[T],
    probe: Callable[[T], R | None],
) -> tuple[T, R] | None:
    """Try *candidates* in order; return the first ``(candidate, result)``
    whose probe result is truthy, or None when every probe fails."""
    for candidate in candidates:
        result = probe(candidate)
        if result:
            return candidate, result
    return None
