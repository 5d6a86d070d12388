"""Selector debugger: report what a (shadow-piercing) selector matches.

Read-only.  Meant for troubleshooting markup drift interactively, e.g.
when the quiz selectors stop matching after a site update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from trailhead_helper.dom import with_deep_query
from trailhead_helper.errors import CdpError

if TYPE_CHECKING:
    from trailhead_helper._base import Page

logger = logging.getLogger(__name__)

DEBUG_MATCH_LIMIT = 5
TEXT_SNIPPET = 80
VERBOSE_TEXT_SNIPPET = 300

DESCRIBE_JS = with_deep_query(
    """(selector, limit) => {
    /*DEEP_QUERY*/
    const summary = (el) => el ? {
        tag: el.tagName.toLowerCase(),
        id: el.id || '',
        classes: Array.from(el.classList || []),
    } : null;
    const matches = deepQueryAll(selector);
    return {
        count: matches.length,
        matches: matches.slice(0, limit).map((el) => {
            const r = el.getBoundingClientRect();
            const style = getComputedStyle(el);
            const attributes = {};
            for (const attr of Array.from(el.attributes || [])) attributes[attr.name] = attr.value;
            const host = el.getRootNode() && el.getRootNode().host;
            return Object.assign(summary(el), {
                attributes,
                text: (el.innerText || el.textContent || '').trim().slice(0, 1000),
                rect: {x: Math.round(r.x), y: Math.round(r.y),
                       w: Math.round(r.width), h: Math.round(r.height)},
                enabled: !(el.disabled || el.getAttribute('aria-disabled') === 'true'),
                visible: r.width > 0 && r.height > 0
                    && style.visibility !== 'hidden' && style.display !== 'none',
                parent: summary(el.parentElement || host || null),
                shadowHost: host ? summary(host) : null,
            });
        }),
    };
}"""
)


def _summary(node: dict | None) -> str:
    if not node:
        return "-"
    out = node["tag"]
    if node.get("id"):
        out += f"#{node['id']}"
    for cls in node.get("classes", []):
        out += f".{cls}"
    return out


def _snippet(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) > limit:
        text = text[:limit] + "..."
    return text.replace('"', '\\"')


def format_report(selector: str, data: dict[str, Any], *, verbose: bool = False) -> str:
    """Render a DESCRIBE_JS result as text."""
    count = data.get("count", 0)
    matches = data.get("matches") or []
    lines = [f"# {count} match{'es' if count != 1 else ''} for {selector!r}"]
    if count > len(matches):
        lines.append(f"# showing first {len(matches)}")

    limit = VERBOSE_TEXT_SNIPPET if verbose else TEXT_SNIPPET
    for i, match in enumerate(matches):
        rect = match.get("rect") or {}
        states = [
            "enabled" if match.get("enabled") else "disabled",
            "visible" if match.get("visible") else "hidden",
        ]
        lines.append("")
        lines.append(f"[{i}] {_summary(match)}")
        lines.append(f"    text: \"{_snippet(match.get('text', ''), limit)}\"")
        lines.append(
            f"    box: {rect.get('x', 0)},{rect.get('y', 0)} "
            f"{rect.get('w', 0)}x{rect.get('h', 0)} {{{','.join(states)}}}"
        )
        lines.append(f"    parent: {_summary(match.get('parent'))}")
        if match.get("shadowHost"):
            lines.append(f"    shadow host: {_summary(match['shadowHost'])}")
        if verbose:
            for name, value in (match.get("attributes") or {}).items():
                lines.append(f"    @{name}={_snippet(str(value), 120)!s}")

    return "\n".join(lines) + "\n"


def debug_selector(page: Page, selector: str, *, verbose: bool = False) -> str:
    """Evaluate *selector* on *page* and describe up to five matches."""
    try:
        data = page.evaluate(DESCRIBE_JS, selector, DEBUG_MATCH_LIMIT)
    except CdpError as exc:
        logger.debug("Selector %r failed: %s", selector, exc)
        return f"# selector {selector!r} failed: {exc}\n"
    return format_report(selector, data or {}, verbose=verbose)
