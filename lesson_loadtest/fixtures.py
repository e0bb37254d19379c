"""
Synthetic identities and lesson fixtures.

Credentials must never collide across virtual users, iterations or
back-to-back runs, so every email combines a millisecond timestamp, the
virtual-user and iteration identifiers, and a random suffix.  Lessons
come from a fixed JSON pool that is loaded once per run and shared
read-only by every virtual user.
"""

from __future__ import annotations

import json
import random
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_PASSWORD = "123456"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Credentials:
    """Instructor identity used by the setup phase."""

    name: str
    email: str
    password: str


@dataclass(frozen=True)
class LessonFixture:
    title: str
    description: str

    def as_payload(self) -> dict[str, str]:
        return {"title": self.title, "description": self.description}


def _random_suffix(length: int = 8) -> str:
    return "".join(random.choices(_SUFFIX_ALPHABET, k=length))


def unique_credentials(vu: int | str = "vu", iteration: int | str = "iter") -> Credentials:
    """
    Generate credentials that are unique for all practical purposes.

    Args:
        vu: Identifier of the virtual user asking for the identity.
        iteration: Iteration counter of that virtual user.

    Returns:
        A :class:`Credentials` with a fixed password; security of test
        accounts is not a concern.
    """
    now = int(time.time() * 1000)
    suffix = _random_suffix()
    return Credentials(
        name=f"UserQA_{now}_{suffix}",
        email=f"userqa_{now}_{vu}_{iteration}_{suffix}@mail.com",
        password=DEFAULT_PASSWORD,
    )


class LessonPool:
    """
    Immutable pool of lessons sampled uniformly with replacement.

    Built once per run; virtual users only ever read from it.
    """

    def __init__(self, lessons: list[LessonFixture] | tuple[LessonFixture, ...]):
        if not lessons:
            raise ValueError("Lesson pool must contain at least one lesson")
        self._lessons = tuple(lessons)

    def __len__(self) -> int:
        return len(self._lessons)

    def __iter__(self):
        return iter(self._lessons)

    def pick(self, rng: random.Random | None = None) -> LessonFixture:
        return (rng or random).choice(self._lessons)


def _lesson_from_record(index: int, record: Any) -> LessonFixture:
    if not isinstance(record, dict):
        raise ValueError(f"Lesson #{index} must be an object, got {type(record).__name__}")

    title = record.get("title")
    description = record.get("description")
    if not isinstance(title, str) or not isinstance(description, str):
        raise ValueError(f"Lesson #{index} must have string title and description")
    return LessonFixture(title=title, description=description)


def load_lessons(path: Path) -> LessonPool:
    """
    Load the lesson pool from a JSON array of ``{title, description}`` records.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the document is not a non-empty array of lessons.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        try:
            records = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Lesson file {path} is not valid JSON") from exc

    if not isinstance(records, list):
        raise ValueError(f"Lesson file {path} must contain a JSON array")
    return LessonPool([_lesson_from_record(index, record) for index, record in enumerate(records)])
