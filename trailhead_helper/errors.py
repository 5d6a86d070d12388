"""Exception hierarchy for trailhead-helper."""

from __future__ import annotations


class TrailheadHelperError(Exception):
    """Base class for all errors raised by this package."""


class BrowserLaunchError(TrailheadHelperError):
    """No debuggable browser could be attached to or launched.

    This is the only failure that is allowed to take the process down.
    """


class CdpError(TrailheadHelperError):
    """The browser answered a DevTools command with an error."""


class MultipleCandidatesError(TrailheadHelperError):
    """More than one open tab belongs to the learning site.

    The selector refuses to guess; the user has to close the extra tabs.
    """

    def __init__(self, urls: list[str]) -> None:
        self.urls = list(urls)
        listing = "\n".join(f"  - {url}" for url in self.urls)
        super().__init__(
            f"Found {len(self.urls)} open Trailhead tabs, expected exactly one. "
            f"Close the extra tabs and try again:\n{listing}"
        )
