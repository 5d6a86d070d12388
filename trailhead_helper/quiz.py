"""Lesson content and quiz structure extraction.

The quiz widget has shipped in two markups: a legacy light-DOM version
and the current ``th-enhanced-quiz`` web component whose questions live in
shadow roots.  Both are covered by ordered selector lists; the first
selector that finds a questions container wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from trailhead_helper.dom import (
    click,
    first_match,
    query_exists,
    text_content,
    wait_for_any,
    wait_for_selector,
    with_deep_query,
)
from trailhead_helper.pages import url_matches

if TYPE_CHECKING:
    from trailhead_helper._base import Page
    from trailhead_helper.config import Timeouts

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------------

LESSON_CONTENT_SELECTOR = "article > div.unit-content"
CHALLENGE_SELECTOR = "article > div#challenge"

# Either marker means the quiz UI has rendered.
QUIZ_WIDGET_SELECTORS: tuple[str, ...] = ("th-enhanced-quiz", ".quiz-container")

QUESTION_CONTAINER_SELECTORS: tuple[str, ...] = (
    "article >>> div#challenge >>> .quiz-container .questions",
    "th-enhanced-quiz >>> .questions",
    "#challenge .questions",
)

INELIGIBLE_MESSAGE = (
    "The current tab is not a Trailhead unit page. Open the unit with "
    "goto-page (or navigate to it in the browser), make sure it is the only "
    "Trailhead tab, then try again."
)

NO_QUESTIONS_ERROR = "Couldn't find the quiz questions container on this page"

QUESTIONS_JS = with_deep_query(
    """(containerSelector) => {
    /*DEEP_QUERY*/
    const container = deepQuery(containerSelector);
    if (!container) return null;
    const textOf = (el) => (el ? (el.textContent || '').trim() : null);
    return {
        questions: deepQueryAll('.question', container).map((question, qi) => ({
            label: textOf(deepQuery('.question-label', question)),
            options: deepQueryAll('.option', question).map((option, oi) => {
                // Submission clicks by id, so tag anything that has none.
                const target = deepQuery('input', option) || option;
                if (!target.id) target.id = 'q' + qi + '_o' + oi;
                return {
                    text: textOf(deepQuery('.option-text', option) || deepQuery('label', option)) || '',
                    inputId: target.id,
                };
            }),
        })),
    };
}"""
)

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class QuizOption:
    """One answer choice.  ``id`` is echoed back to answer-trail-quiz."""

    id: str
    text: str
    index: int


@dataclass
class QuizQuestion:
    text: str
    options: list[QuizOption] = field(default_factory=list)


@dataclass
class QuizStructure:
    """Extraction result.  An empty ``questions`` list with ``error`` set
    means no quiz could be read; extraction never raises instead."""

    questions: list[QuizQuestion] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"questions": [asdict(q) for q in self.questions]}
        if self.error is not None:
            data["error"] = self.error
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


# ---------------------------------------------------------------------------
# Eligibility gate
# ---------------------------------------------------------------------------


def page_is_eligible(page: Page, domains: Iterable[str]) -> bool:
    """True when the tab is on a site domain and shows a lesson.

    The address is checked first so foreign pages get no DOM queries.
    """
    if not url_matches(page.url(), domains):
        return False
    return query_exists(page, LESSON_CONTENT_SELECTOR)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_content(page: Page) -> str:
    """Trimmed lesson body text, or "" when the page has none."""
    return text_content(page, LESSON_CONTENT_SELECTOR) or ""


def expand_challenge(page: Page, challenge_timeout: float, widget_timeout: float, interval: float) -> bool:
    """Click the (possibly collapsed) challenge section open.

    Returns False when there is no challenge container.  A quiz widget
    that never shows up is logged and otherwise ignored, since older
    markup has no widget marker at all.
    """
    if not wait_for_selector(page, CHALLENGE_SELECTOR, challenge_timeout, interval=interval):
        logger.debug("No challenge container (quiz collapsed or not present)")
        return False
    click(page, CHALLENGE_SELECTOR)
    if wait_for_any(page, QUIZ_WIDGET_SELECTORS, widget_timeout, interval=interval) is None:
        logger.debug("Quiz widget marker did not appear, trying known markups anyway")
    return True


def _build_question(raw: dict, question_index: int) -> QuizQuestion:
    options = [
        QuizOption(
            # Same form the page script tags id-less options with
            id=opt.get("inputId") or f"q{question_index}_o{option_index}",
            text=opt.get("text") or "",
            index=option_index,
        )
        for option_index, opt in enumerate(raw.get("options") or [])
    ]
    return QuizQuestion(
        text=raw.get("label") or f"Question {question_index + 1}",
        options=options,
    )


def extract_quiz(page: Page, timeouts: Timeouts) -> QuizStructure:
    """Read every question and its options from the current unit.

    Never raises: a missing quiz and a failed extraction both come back
    as an empty structure with ``error`` set.
    """
    try:
        expand_challenge(
            page,
            timeouts.challenge_probe,
            timeouts.quiz_widget_probe,
            timeouts.poll_interval,
        )
        found = first_match(
            QUESTION_CONTAINER_SELECTORS,
            lambda selector: page.evaluate(QUESTIONS_JS, selector),
        )
        if found is None:
            return QuizStructure(questions=[], error=NO_QUESTIONS_ERROR)

        selector, data = found
        logger.debug("Questions container matched %r", selector)
        questions = [_build_question(raw, i) for i, raw in enumerate(data.get("questions") or [])]
        return QuizStructure(questions=questions)
    except Exception as exc:
        logger.exception("Error getting quiz structure")
        return QuizStructure(questions=[], error=str(exc) or type(exc).__name__)
