"""Quiz answer submission.

Every step degrades to a line of text instead of raising: the site's
markup changes without notice, so the goal is to never fail silently,
not to guarantee the submit went through.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from trailhead_helper.dom import (
    click,
    click_button_with_text,
    click_by_id,
    first_match,
    is_enabled,
    wait_for_selector,
)
from trailhead_helper.quiz import expand_challenge

if TYPE_CHECKING:
    from trailhead_helper._base import Page
    from trailhead_helper.config import Timeouts

logger = logging.getLogger(__name__)

# Tried in order; only the first element each selector matches is probed.
SUBMIT_BUTTON_SELECTORS: tuple[str, ...] = (
    "th-enhanced-quiz >>> .submit-button",
    "button.tds-button--primary",
    ".challenge-quiz-submit",
    'tds-button[type="submit"]',
    "button.submit",
)

COMPLETION_SELECTOR = ".challenge-completed"

NEXT_UNIT_LABELS: tuple[str, ...] = (
    "Tackle the Next Unit",
    "Tackle the next unit",
    "Next Unit",
)

SUCCESS_MESSAGE = "Quiz completed successfully!"
UNCONFIRMED_MESSAGE = "Quiz was submitted, but couldn't confirm success. Please check manually."
NO_SUBMIT_MESSAGE = "Could not find a submit button to click. Please check manually."


def select_options(page: Page, option_ids: Sequence[str]) -> list[str]:
    """Click each option in order; return one failure line per miss."""
    failures: list[str] = []
    for option_id in option_ids:
        try:
            clicked = click_by_id(page, option_id)
        except Exception as exc:
            logger.warning("Error selecting option %s: %s", option_id, exc)
            failures.append(f"Failed to select option {option_id}: {str(exc) or type(exc).__name__}")
            continue
        if clicked is None:
            failures.append(f"Failed to select option {option_id}: no element with that id")
        else:
            logger.info("Selected answer with ID %s", option_id)
    return failures


def find_submit_button(page: Page) -> str | None:
    """First selector whose first match exists and is enabled."""

    def probe(selector: str) -> bool | None:
        try:
            return is_enabled(page, selector)
        except Exception as exc:
            logger.debug("Submit selector %r failed: %s", selector, exc)
            return None

    found = first_match(SUBMIT_BUTTON_SELECTORS, probe)
    return found[0] if found else None


def advance_to_next_unit(page: Page) -> str:
    """Best effort click on the "next unit" button; returns a status line."""
    try:
        label = click_button_with_text(page, NEXT_UNIT_LABELS)
    except Exception as exc:
        logger.warning("Could not open the next unit: %s", exc)
        return f"Could not open the next unit: {exc}"
    if label is None:
        return "No next unit button found, navigate to the next unit manually."
    logger.info("Clicked %r", label)
    return f'Opened the next unit via "{label}".'


def submit_answers(page: Page, option_ids: Sequence[str], timeouts: Timeouts) -> str:
    """Select *option_ids*, submit the quiz and report what happened.

    The first line is the overall outcome; any per-option failures follow.
    """
    expand_challenge(
        page,
        timeouts.challenge_wait,
        timeouts.quiz_widget_wait,
        timeouts.poll_interval,
    )
    failures = select_options(page, option_ids)

    selector = find_submit_button(page)
    if selector is None or not click(page, selector):
        outcome = NO_SUBMIT_MESSAGE
    else:
        logger.info("Submitted quiz with selector: %s", selector)
        if wait_for_selector(
            page,
            COMPLETION_SELECTOR,
            timeouts.completion_wait,
            interval=timeouts.poll_interval,
        ):
            outcome = f"{SUCCESS_MESSAGE}\n{advance_to_next_unit(page)}"
        else:
            outcome = UNCONFIRMED_MESSAGE

    return "\n".join([outcome, *failures])
