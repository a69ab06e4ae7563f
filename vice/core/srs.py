"""Spaced-repetition data carried in note frontmatter.

Only the numeric bounds are enforced here; scheduling happens elsewhere.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field, ValidationError

from vice.errors import ConsistencyError, FormatError

DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3


class Quality(IntEnum):
    no_review = 0
    incorrect_blackout = 1
    incorrect_familiar = 2
    incorrect_easy = 3
    correct_hard = 4
    correct_effort = 5
    correct_easy = 6

    @property
    def is_correct(self) -> bool:
        return self >= Quality.correct_hard


def validate_quality(value: int) -> Quality:
    try:
        return Quality(value)
    except ValueError as exc:
        raise ConsistencyError("invalid quality: must be between 0 and 6") from exc


class ReviewRecord(BaseModel):
    timestamp: int  # unix seconds
    quality: int

    def validate(self) -> None:  # type: ignore[override]
        if self.timestamp < 0:
            raise ConsistencyError(f"review timestamp cannot be negative: {self.timestamp}")
        validate_quality(self.quality)


class SRSData(BaseModel):
    easiness: float = DEFAULT_EASINESS
    consecutive_correct: int = 0
    due: int = 0  # unix seconds; 0 means never reviewed
    total_reviews: int = 0
    review_history: list[ReviewRecord] = Field(default_factory=list)

    def validate(self) -> None:  # type: ignore[override]
        if self.easiness < MIN_EASINESS:
            raise ConsistencyError(
                f"easiness ({self.easiness:.2f}) cannot be below {MIN_EASINESS}"
            )
        for name in ("consecutive_correct", "due", "total_reviews"):
            if getattr(self, name) < 0:
                raise ConsistencyError(f"{name} cannot be negative: {getattr(self, name)}")
        if self.consecutive_correct > self.total_reviews:
            raise ConsistencyError(
                f"consecutive_correct ({self.consecutive_correct}) cannot exceed "
                f"total_reviews ({self.total_reviews})"
            )
        for i, record in enumerate(self.review_history):
            try:
                record.validate()
            except ConsistencyError as exc:
                raise exc.wrap(f"review at index {i}") from exc

    @property
    def is_new(self) -> bool:
        return self.total_reviews == 0

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> SRSData:
        if not data:
            raise FormatError("empty SRS data")
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            raise FormatError(f"invalid SRS data: {exc}") from exc
