"""
Unit tests for credential generation and the lesson pool.

Key SDET Concepts Demonstrated:
- Probabilistic uniqueness check over a large sample
- Seeded randomness for deterministic sampling assertions
- Negative-path validation of fixture files
"""

from __future__ import annotations

import json
import random

import pytest

from lesson_loadtest.config import DATA_DIR
from lesson_loadtest.fixtures import (
    DEFAULT_PASSWORD,
    LessonFixture,
    LessonPool,
    load_lessons,
    unique_credentials,
)

pytestmark = pytest.mark.unit


def test_generated_credentials_are_unique():
    """Test that 5000 identities generated back to back never collide."""
    generated = [unique_credentials(vu=1, iteration=0) for _ in range(5000)]

    assert len({c.email for c in generated}) == len(generated)
    assert len({c.name for c in generated}) == len(generated)


def test_email_embeds_vu_and_iteration():
    """Test the email local part carries the VU and iteration identifiers."""
    credentials = unique_credentials(vu=7, iteration=3)

    local, domain = credentials.email.split("@")
    assert domain == "mail.com"
    assert local.startswith("userqa_")
    assert "_7_3_" in local


def test_defaults_used_outside_a_virtual_user():
    """Test the placeholders used when no VU/iteration is known."""
    credentials = unique_credentials()

    assert "_vu_iter_" in credentials.email
    assert credentials.password == DEFAULT_PASSWORD


def test_load_packaged_lessons():
    """Test that the shipped fixture file loads as a non-empty pool."""
    pool = load_lessons(DATA_DIR / "lessons.data.json")

    assert len(pool) > 0
    assert all(isinstance(lesson, LessonFixture) for lesson in pool)


def test_pick_samples_only_pool_members():
    """Test that seeded sampling always returns lessons from the pool."""
    lessons = [LessonFixture(f"Lesson {n}", f"Description {n}") for n in range(5)]
    pool = LessonPool(lessons)
    rng = random.Random(42)

    picks = [pool.pick(rng) for _ in range(200)]

    assert set(picks) <= set(lessons)
    assert len(set(picks)) == len(lessons)


def test_empty_pool_is_rejected():
    """Test that a pool needs at least one lesson."""
    with pytest.raises(ValueError):
        LessonPool([])


@pytest.mark.parametrize(
    "document",
    [
        {"title": "not a list"},
        [],
        ["just a string"],
        [{"title": "Missing description"}],
        [{"title": 1, "description": "Numeric title"}],
    ],
)
def test_invalid_lesson_files_are_rejected(tmp_path, document):
    """Test that malformed fixture documents raise ValueError."""
    path = tmp_path / "lessons.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(ValueError):
        load_lessons(path)


def test_non_json_lesson_file_is_rejected(tmp_path):
    """Test that a file that is not JSON raises ValueError."""
    path = tmp_path / "lessons.json"
    path.write_text("title,description\n", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid JSON"):
        load_lessons(path)


def test_lesson_payload_contains_title_and_description(lesson):
    """Test the request body built from a fixture."""
    assert lesson.as_payload() == {"title": lesson.title, "description": lesson.description}
