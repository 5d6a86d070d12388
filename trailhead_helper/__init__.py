"""
Trailhead Helper -- browser tools for working through Trailhead units.

Reads the current unit's text and quiz, submits answers and navigates,
by driving a Chromium browser over the DevTools protocol.  Usually run
as an MCP server (``python -m trailhead_helper``), but usable directly::

    from trailhead_helper import HelperConfig, Session

    with Session(HelperConfig.from_env()) as session:
        session.goto("https://trailhead.salesforce.com/content/learn/modules/...")
        print(session.get_content().text)
        print(session.get_quiz().text)            # JSON with option ids
        print(session.answer_quiz(["opt-a"]).text)
"""

from __future__ import annotations

from trailhead_helper.config import HelperConfig, Timeouts
from trailhead_helper.errors import (
    BrowserLaunchError,
    CdpError,
    MultipleCandidatesError,
    TrailheadHelperError,
)
from trailhead_helper.quiz import QuizOption, QuizQuestion, QuizStructure
from trailhead_helper.session import Session, ToolResponse

__version__ = "1.0.0"

__all__ = [
    "Session",
    "ToolResponse",
    "HelperConfig",
    "Timeouts",
    "QuizOption",
    "QuizQuestion",
    "QuizStructure",
    # Errors
    "TrailheadHelperError",
    "BrowserLaunchError",
    "CdpError",
    "MultipleCandidatesError",
]
