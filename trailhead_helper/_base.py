"""Abstract base for a controllable browser tab."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Page(ABC):
    """Interface the tools use to talk to one browser tab.

    The DevTools implementation lives in ``trailhead_helper.cdp``.  Tools
    only ever call the methods defined here, which keeps the selection,
    extraction and submission logic independent of the wire protocol.
    """

    # ---- identity --------------------------------------------------------

    @abstractmethod
    def url(self) -> str:
        """Return the tab's current address."""
        ...

    @abstractmethod
    def title(self) -> str:
        """Return the document title."""
        ...

    # ---- state probes ----------------------------------------------------

    @abstractmethod
    def is_alive(self) -> bool:
        """Return True if a trivial script can be evaluated in the tab.

        Must never raise: a closed or crashed tab simply answers False.
        """
        ...

    @abstractmethod
    def has_focus(self) -> bool:
        """Return True if the document reports input focus."""
        ...

    # ---- scripting -------------------------------------------------------

    @abstractmethod
    def evaluate(self, function: str, *args: Any) -> Any:
        """Call a JavaScript function declaration with JSON arguments.

        Args:
            function: Source of a JS function, e.g. ``"(sel) => ..."``.
            *args: JSON-serializable arguments passed to the function.

        Returns:
            The function's return value, deserialized by value.

        Raises:
            CdpError: If the script threw or the browser rejected the call.
        """
        ...

    # ---- input / navigation ----------------------------------------------

    @abstractmethod
    def mouse_click(self, x: float, y: float) -> None:
        """Dispatch a left click at viewport coordinates."""
        ...

    @abstractmethod
    def navigate(self, url: str, *, timeout: float, idle: float) -> None:
        """Load *url* and wait until the network settles.

        Raises:
            CdpError: If the browser reports a navigation error.
            TimeoutError: If the document never finishes loading.
        """
        ...

    def close(self) -> None:
        """Release any connection held to the tab (the tab stays open)."""
