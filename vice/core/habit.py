"""Habit schema models and validation.

Validation is pure: ``validate()`` returns a normalized copy (generated IDs,
assigned positions) and leaves the receiver untouched. The first violation
found is raised as a ``ViceError`` subclass.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vice.core.codec import is_valid_date
from vice.core.conditions import Criteria
from vice.core.ids import Normalized, generate_id_from_title, is_valid_id
from vice.errors import (
    ConsistencyError,
    DuplicateError,
    FormatError,
    MissingFieldError,
    ReferenceNotFoundError,
    ViceError,
)

_LOGGER = logging.getLogger(__name__)


class HabitType(str, Enum):
    simple = "simple"  # pass/fail
    elastic = "elastic"  # mini/midi/maxi tiers
    informational = "informational"  # recorded, never scored
    checklist = "checklist"


class ScoringType(str, Enum):
    manual = "manual"
    automatic = "automatic"


class FieldKind(str, Enum):
    text = "text"
    boolean = "boolean"
    unsigned_int = "unsigned_int"
    unsigned_decimal = "unsigned_decimal"
    decimal = "decimal"
    time = "time"
    duration = "duration"
    checklist = "checklist"


NUMERIC_FIELD_KINDS = frozenset(
    k.value
    for k in (FieldKind.unsigned_int, FieldKind.unsigned_decimal, FieldKind.decimal, FieldKind.duration)
)
DURATION_FORMATS = ("HH:MM:SS", "minutes", "seconds")
HABIT_TYPES = frozenset(t.value for t in HabitType)
SCORING_TYPES = frozenset(t.value for t in ScoringType)


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class FieldType(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str = ""
    multiline: bool | None = None
    default: bool | None = None
    unit: str | None = None
    min: int | float | None = None
    max: int | float | None = None
    format: str | None = None
    checklist_id: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _unwrap_enum(cls, value: Any) -> Any:
        return _enum_value(value)

    def validate(self) -> None:  # type: ignore[override]
        if not self.type:
            raise MissingFieldError("field type is required")

        if self.type in (FieldKind.text, FieldKind.boolean, FieldKind.decimal):
            pass
        elif self.type in (FieldKind.unsigned_int, FieldKind.unsigned_decimal):
            if self.min is not None and self.min < 0:
                raise ConsistencyError("unsigned fields cannot have negative min value")
        elif self.type == FieldKind.time:
            if self.format and self.format != "HH:MM":
                raise FormatError("time fields only support HH:MM format")
        elif self.type == FieldKind.duration:
            if self.format and self.format not in DURATION_FORMATS:
                raise FormatError(f"duration format must be one of: [{' '.join(DURATION_FORMATS)}]")
        elif self.type == FieldKind.checklist:
            if not self.checklist_id:
                raise MissingFieldError("checklist_id is required for checklist field type")
        else:
            raise FormatError(f"unknown field type: {self.type}")

        if self.min is not None and self.max is not None and self.min > self.max:
            raise ConsistencyError(
                f"min value ({self.min:g}) cannot be greater than max value ({self.max:g})"
            )

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_FIELD_KINDS


class Habit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = ""
    id: str = ""
    position: int = 0
    description: str | None = None
    habit_type: str = ""
    field_type: FieldType = Field(default_factory=FieldType)
    scoring_type: str | None = None
    criteria: Criteria | None = None

    mini_criteria: Criteria | None = None
    midi_criteria: Criteria | None = None
    maxi_criteria: Criteria | None = None

    direction: str | None = None  # informational habits: "higher_better" | "lower_better" | "neutral"

    prompt: str | None = None
    help_text: str | None = None

    @field_validator("habit_type", "scoring_type", mode="before")
    @classmethod
    def _unwrap_enums(cls, value: Any) -> Any:
        return _enum_value(value)

    # -- predicates --------------------------------------------------------

    @property
    def is_simple(self) -> bool:
        return self.habit_type == HabitType.simple

    @property
    def is_elastic(self) -> bool:
        return self.habit_type == HabitType.elastic

    @property
    def is_informational(self) -> bool:
        return self.habit_type == HabitType.informational

    @property
    def is_checklist(self) -> bool:
        return self.habit_type == HabitType.checklist

    @property
    def requires_automatic_scoring(self) -> bool:
        return self.scoring_type == ScoringType.automatic

    @property
    def requires_manual_scoring(self) -> bool:
        return self.scoring_type == ScoringType.manual

    # -- validation --------------------------------------------------------

    def validate(self) -> Habit:  # type: ignore[override]
        return self.validate_and_track_changes().value

    def validate_and_track_changes(self) -> Normalized[Habit]:
        """Validate, generating the ID from the title when absent.

        ``ids_generated`` tells the caller the normalized habit differs from
        what was loaded and is worth writing back.
        """
        if not self.title.strip():
            raise MissingFieldError("habit title is required")

        habit = self.model_copy(deep=True)
        generated = False
        if not habit.id:
            habit.id = generate_id_from_title(habit.title)
            generated = True
            _LOGGER.debug("Generated habit ID %r from title %r", habit.id, habit.title)

        habit._check()
        return Normalized(habit, generated)

    def validate_with_checklist_context(self, checklist_exists: Callable[[str], bool]) -> Habit:
        habit = self.validate()
        if habit.is_checklist and habit.field_type.checklist_id:
            if not checklist_exists(habit.field_type.checklist_id):
                raise ReferenceNotFoundError(
                    f"checklist habit '{habit.title}' references non-existent checklist "
                    f"'{habit.field_type.checklist_id}'"
                )
        return habit

    def _check(self) -> None:
        if not is_valid_id(self.id):
            raise FormatError(
                f"habit ID '{self.id}' is invalid: must contain only letters, numbers, and underscores"
            )

        if not self.habit_type:
            raise MissingFieldError("habit_type is required")
        if self.habit_type not in HABIT_TYPES:
            raise FormatError(f"invalid habit_type: {self.habit_type}")

        try:
            self.field_type.validate()
        except ViceError as exc:
            raise exc.wrap("invalid field_type") from exc

        if self.scoring_type and self.scoring_type not in SCORING_TYPES:
            raise FormatError(f"invalid scoring_type: {self.scoring_type}")

        if self.is_simple:
            if not self.scoring_type:
                raise MissingFieldError("scoring_type is required for simple habits")
            if self.requires_automatic_scoring and self.criteria is None:
                raise MissingFieldError("criteria is required for automatic scoring")

        if self.is_elastic:
            if not self.scoring_type:
                raise MissingFieldError("scoring_type is required for elastic habits")
            if self.requires_automatic_scoring:
                for tier in ("mini", "midi", "maxi"):
                    if getattr(self, f"{tier}_criteria") is None:
                        raise MissingFieldError(
                            f"{tier}_criteria is required for automatic scoring of elastic habits"
                        )
                try:
                    self._check_tier_ordering()
                except ViceError as exc:
                    raise exc.wrap("invalid elastic criteria ordering") from exc

        if self.is_checklist:
            if not self.scoring_type:
                raise MissingFieldError("scoring_type is required for checklist habits")
            if self.field_type.type != FieldKind.checklist:
                raise ConsistencyError("checklist habits must use checklist field type")
            if not self.field_type.checklist_id:
                raise MissingFieldError("checklist_id is required for checklist field type")
            if self.requires_automatic_scoring and self.criteria is None:
                raise MissingFieldError("criteria is required for automatic scoring of checklist habits")
            if self.criteria is not None:
                try:
                    _check_checklist_criteria(self.criteria)
                except ViceError as exc:
                    raise exc.wrap(f"invalid checklist criteria for habit '{self.title}'") from exc

    def _check_tier_ordering(self) -> None:
        if not self.field_type.is_numeric:
            return

        bounds = [
            tier.condition.numeric_bound() if tier is not None and tier.condition is not None else None
            for tier in (self.mini_criteria, self.midi_criteria, self.maxi_criteria)
        ]
        if any(b is None for b in bounds):
            _LOGGER.debug("Skipping tier ordering for %r: bound not extractable", self.id)
            return

        mini, midi, maxi = bounds
        if mini > midi:
            raise ConsistencyError(
                f"mini criteria value ({mini:.2f}) must be ≤ midi criteria value ({midi:.2f})"
            )
        if midi > maxi:
            raise ConsistencyError(
                f"midi criteria value ({midi:.2f}) must be ≤ maxi criteria value ({maxi:.2f})"
            )

    def to_document(self) -> dict[str, Any]:
        return _dump(self)


def _check_checklist_criteria(criteria: Criteria) -> None:
    if criteria.condition is None:
        raise MissingFieldError("criteria condition is required")
    if criteria.condition.checklist_completion is not None:
        try:
            criteria.condition.checklist_completion.validate()
        except ViceError as exc:
            raise exc.wrap("invalid checklist completion condition") from exc


class Schema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = ""
    created_date: str = ""
    habits: list[Habit] = Field(default_factory=list)

    def validate(self) -> Schema:  # type: ignore[override]
        return self.validate_and_track_changes().value

    def validate_and_track_changes(self) -> Normalized[Schema]:
        if not self.version:
            raise MissingFieldError("schema version is required")
        if self.created_date and not is_valid_date(self.created_date):
            raise FormatError(
                f"invalid created_date format, expected YYYY-MM-DD: {self.created_date}"
            )

        habits: list[Habit] = []
        seen: set[str] = set()
        generated = False
        for i, habit in enumerate(self.habits):
            # Stored positions are ignored; order in the file is authoritative.
            positioned = habit.model_copy(update={"position": i + 1})
            try:
                result = positioned.validate_and_track_changes()
            except ViceError as exc:
                raise exc.wrap(f"habit at index {i}") from exc
            generated = generated or result.ids_generated

            if result.value.id in seen:
                raise DuplicateError(f"duplicate habit ID: {result.value.id}")
            seen.add(result.value.id)
            habits.append(result.value)

        return Normalized(self.model_copy(update={"habits": habits}), generated)

    def get_habit(self, habit_id: str) -> Habit | None:
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    def habits_of_type(self, habit_type: HabitType | str) -> list[Habit]:
        wanted = _enum_value(habit_type)
        return [h for h in self.habits if h.habit_type == wanted]

    def field_types(self) -> dict[str, str]:
        """Map of habit ID to field type name, used to decode entry values."""
        return {h.id: h.field_type.type for h in self.habits if h.id}

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "created_date": self.created_date,
            "habits": [h.to_document() for h in self.habits],
        }
