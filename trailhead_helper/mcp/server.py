"""Trailhead Helper MCP server: lesson, quiz and navigation tools for AI agents.

Exposes a handful of focused tools over stdio.  The browser session is
owned by a :class:`~trailhead_helper.session.Session` passed to
:func:`create_server`; tools only translate its responses for MCP.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from trailhead_helper.errors import BrowserLaunchError
from trailhead_helper.session import Session, ToolResponse

INSTRUCTIONS = (
    "Trailhead Helper drives the user's browser on Salesforce Trailhead.\n\n"
    "WORKFLOW (follow this pattern):\n"
    "1. goto-page to open a unit (skip if the user already has it open)\n"
    "2. get-current-trail-content to read the unit text\n"
    "3. get-trail-quiz-questions to get the questions and option ids\n"
    "4. answer-trail-quiz with one option id per question, chosen from the "
    "unit text\n\n"
    "Only one Trailhead tab may be open; if a tool reports several, ask the "
    "user to close the extras.\n\n"
    "Option ids are only valid for the page they were read from. After "
    "navigating, read the questions again.\n\n"
    "Use debug-selector only to troubleshoot when a tool cannot find the "
    "content or quiz on a page that clearly has one."
)


def create_server(
    session: Session,
    *,
    on_fatal: Callable[[BrowserLaunchError], None] | None = None,
) -> FastMCP:
    """Build the MCP server with every tool bound to *session*.

    The SDK turns any exception raised by a tool into an error result, so a
    browser that cannot be launched would otherwise never stop the server.
    *on_fatal* is called with that error before it is re-raised; the CLI
    uses it to shut down.
    """
    mcp = FastMCP(name="trailhead-helper", instructions=INSTRUCTIONS)

    def respond(call: Callable[[], ToolResponse]) -> str:
        """Return the text, or raise so the SDK flags the result with isError."""
        try:
            response = call()
        except BrowserLaunchError as exc:
            if on_fatal is not None:
                on_fatal(exc)
            raise
        if response.is_error:
            raise ToolError(response.text)
        return response.text

    # -----------------------------------------------------------------------
    # Lesson tools
    # -----------------------------------------------------------------------

    @mcp.tool(
        name="get-current-trail-content",
        description=(
            "Get the current Salesforce Trailhead page's content as text. "
            "The answers to the quizzes will be based on this content."
        ),
    )
    def get_current_trail_content() -> str:
        return respond(session.get_content)

    @mcp.tool(
        name="get-trail-quiz-questions",
        description=(
            "Get the current page's quiz questions as a JSON string: "
            '{"questions": [{"text", "options": [{"id", "text", "index"}]}], "error"?}'
        ),
    )
    def get_trail_quiz_questions() -> str:
        return respond(session.get_quiz)

    @mcp.tool(
        name="answer-trail-quiz",
        description=(
            "Submit answers to the quiz using option IDs. It is important that "
            "you use the current Trailhead page's content, and think very "
            "carefully to select the right option for each quiz question "
            "before calling this."
        ),
    )
    def answer_trail_quiz(
        optionIds: Annotated[
            list[str],
            Field(
                description=(
                    "Option IDs to select (one per question), based on the "
                    "Trailhead page's content"
                )
            ),
        ],
    ) -> str:
        return respond(lambda: session.answer_quiz(optionIds))

    # -----------------------------------------------------------------------
    # Navigation / diagnostics
    # -----------------------------------------------------------------------

    @mcp.tool(name="goto-page", description="Navigate to a specific page")
    def goto_page(
        url: Annotated[str, Field(description="The absolute URL to navigate to")],
    ) -> str:
        return respond(lambda: session.goto(url))

    @mcp.tool(
        name="debug-selector",
        description=(
            "Troubleshooting only: report how many elements a CSS selector "
            "matches on the current page (use '>>>' to descend into shadow "
            "roots) with tag, id, classes, text, box, state and parent of the "
            "first few matches."
        ),
    )
    def debug_selector(
        selector: Annotated[str, Field(description="CSS selector, segments may be joined with '>>>'")],
        verbose: Annotated[bool, Field(description="Include attributes and longer text")] = False,
    ) -> str:
        return respond(lambda: session.debug(selector, verbose))

    return mcp
