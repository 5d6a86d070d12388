"""Tests for the quiz structure JSON schema using jsonschema."""

from __future__ import annotations

import json
import pathlib

import pytest
from fakes import FAST, lesson_page
from jsonschema import ValidationError, validate

from trailhead_helper.quiz import QuizOption, QuizQuestion, QuizStructure, extract_quiz

SCHEMA_DIR = pathlib.Path(__file__).resolve().parent.parent / "schema"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def schema():
    with open(SCHEMA_DIR / "quiz.schema.json", encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Valid structures
# ---------------------------------------------------------------------------


class TestValidStructures:
    def test_schema_valid_json(self, schema):
        assert "$schema" in schema
        assert schema["required"] == ["questions"]

    def test_extracted_quiz_valid(self, schema):
        structure = extract_quiz(lesson_page(), FAST)

        validate(instance=json.loads(structure.to_json()), schema=schema)

    def test_missing_quiz_valid(self, schema):
        structure = extract_quiz(lesson_page(with_quiz=False), FAST)

        validate(instance=json.loads(structure.to_json()), schema=schema)

    def test_synthesized_ids_valid(self, schema):
        page = lesson_page(questions=[{"label": None, "options": [{"text": "", "inputId": None}]}])

        validate(instance=extract_quiz(page, FAST).to_dict(), schema=schema)


# ---------------------------------------------------------------------------
# Invalid structures
# ---------------------------------------------------------------------------


class TestInvalidStructures:
    def test_missing_questions(self, schema):
        with pytest.raises(ValidationError):
            validate(instance={"error": "no quiz"}, schema=schema)

    def test_empty_option_id(self, schema):
        structure = QuizStructure(
            questions=[QuizQuestion(text="Q", options=[QuizOption(id="", text="A", index=0)])]
        )

        with pytest.raises(ValidationError):
            validate(instance=structure.to_dict(), schema=schema)

    def test_negative_index(self, schema):
        structure = QuizStructure(
            questions=[QuizQuestion(text="Q", options=[QuizOption(id="a", text="A", index=-1)])]
        )

        with pytest.raises(ValidationError):
            validate(instance=structure.to_dict(), schema=schema)

    def test_unknown_field(self, schema):
        with pytest.raises(ValidationError):
            validate(instance={"questions": [], "extra": True}, schema=schema)
