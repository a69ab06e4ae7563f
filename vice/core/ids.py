"""Slug IDs derived from human titles."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, TypeVar

_NON_ID_CHARS = re.compile(r"[^a-z0-9_]+")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_VALID_ID = re.compile(r"[a-z0-9_]+")


def generate_id_from_title(title: str, fallback: str = "unnamed_habit") -> str:
    """Lowercase, collapse anything outside ``[a-z0-9_]`` to ``_``, trim underscores.

    >>> generate_id_from_title("Sleep Quality (1-10)")
    'sleep_quality_1_10'
    """
    slug = _NON_ID_CHARS.sub("_", title.lower())
    slug = _REPEATED_UNDERSCORES.sub("_", slug).strip("_")
    return slug or fallback


def is_valid_id(value: str) -> bool:
    return bool(value) and _VALID_ID.fullmatch(value) is not None


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Normalized(Generic[T]):
    """A validated copy plus whether validation had to generate IDs for it."""

    value: T
    ids_generated: bool = False
