"""Daily entry log: per-day, per-habit completion records."""

from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator

from vice.config import settings
from vice.core import clock
from vice.core.codec import (
    DATE_FORMAT,
    EntryValue,
    decode_value,
    encode_value,
    format_timestamp,
    parse_date,
    parse_timestamp,
)
from vice.errors import (
    ConsistencyError,
    DuplicateError,
    FormatError,
    MissingFieldError,
    ViceError,
)

_LOGGER = logging.getLogger(__name__)


class EntryStatus(str, Enum):
    completed = "completed"
    skipped = "skipped"
    failed = "failed"


class AchievementLevel(str, Enum):
    none = "none"
    mini = "mini"
    midi = "midi"
    maxi = "maxi"


ENTRY_STATUSES = frozenset(s.value for s in EntryStatus)
ACHIEVEMENT_LEVELS = frozenset(level.value for level in AchievementLevel)


def is_valid_achievement_level(level: str) -> bool:
    return level in ACHIEVEMENT_LEVELS


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class HabitEntry(BaseModel):
    """One habit's outcome on one day.

    ``status`` is set once by the constructor recipes below and never
    re-derived; later edits go through the setters and ``mark_updated``.
    """

    habit_id: str = ""
    value: EntryValue | None = None
    achievement_level: str | None = None
    notes: str = ""
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    status: str = ""

    @field_validator("status", "achievement_level", mode="before")
    @classmethod
    def _unwrap_enums(cls, value: Any) -> Any:
        return _enum_value(value)

    @field_validator("value", mode="before")
    @classmethod
    def _tag_value(cls, value: Any) -> Any:
        if value is None or isinstance(value, dict):
            return value
        return EntryValue.of(value)

    # -- status ------------------------------------------------------------

    @property
    def is_skipped(self) -> bool:
        return self.status == EntryStatus.skipped

    @property
    def is_completed(self) -> bool:
        return self.status == EntryStatus.completed

    @property
    def has_failure(self) -> bool:
        return self.status == EntryStatus.failed

    @property
    def is_finalized(self) -> bool:
        return bool(self.status)

    @property
    def requires_value(self) -> bool:
        return self.status != EntryStatus.skipped

    # -- timestamps --------------------------------------------------------

    def mark_created(self) -> None:
        self.created_at = clock.now()

    def mark_updated(self) -> None:
        self.updated_at = clock.now()

    def get_last_modified(self) -> dt.datetime | None:
        return self.updated_at if self.updated_at is not None else self.created_at

    # -- setters -----------------------------------------------------------

    def get_boolean_value(self) -> bool | None:
        if self.value is not None and isinstance(self.value.data, bool):
            return self.value.data
        return None

    def set_boolean_value(self, value: bool) -> None:
        self.value = EntryValue.boolean(value)

    def set_value(self, value: Any) -> None:
        self.value = None if value is None else EntryValue.of(value)

    def set_notes(self, notes: str) -> None:
        self.notes = notes

    def get_achievement_level(self) -> AchievementLevel | None:
        if self.achievement_level is None:
            return None
        return AchievementLevel(self.achievement_level)

    def set_achievement_level(self, level: AchievementLevel | str) -> None:
        self.achievement_level = _enum_value(level)

    def has_achievement_level(self) -> bool:
        return self.achievement_level is not None

    def clear_achievement_level(self) -> None:
        self.achievement_level = None

    # -- validation --------------------------------------------------------

    def validate(self) -> None:  # type: ignore[override]
        if not self.habit_id.strip():
            raise MissingFieldError("habit ID is required")

        if not self.status:
            raise MissingFieldError("entry status is required")
        if self.status not in ENTRY_STATUSES:
            raise FormatError(f"invalid entry status: {self.status}")

        # Skipped entries keep any achievement level they had, for history.
        if self.status == EntryStatus.skipped:
            if self.value is not None:
                raise ConsistencyError("skipped entries cannot have values")
        elif self.value is None:
            raise ConsistencyError("completed and failed entries must have values")

        if self.achievement_level is not None and not is_valid_achievement_level(self.achievement_level):
            raise FormatError(f"invalid achievement level: {self.achievement_level}")

        if self.created_at is None:
            raise MissingFieldError("created_at timestamp is required")

    # -- serialization -----------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"habit_id": self.habit_id}
        if self.value is not None:
            doc["value"] = encode_value(self.value)
        if self.achievement_level is not None:
            doc["achievement_level"] = self.achievement_level
        if self.notes:
            doc["notes"] = self.notes
        if self.created_at is not None:
            doc["created_at"] = format_timestamp(self.created_at)
        if self.updated_at is not None:
            doc["updated_at"] = format_timestamp(self.updated_at)
        doc["status"] = self.status
        return doc

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], field_type: str | None = None) -> HabitEntry:
        entry = cls()
        if isinstance(raw.get("habit_id"), str):
            entry.habit_id = raw["habit_id"]
        if "value" in raw:
            entry.value = decode_value(raw["value"], field_type)
        if isinstance(raw.get("achievement_level"), str):
            entry.achievement_level = raw["achievement_level"]
        if isinstance(raw.get("notes"), str):
            entry.notes = raw["notes"]
        for name in ("created_at", "updated_at"):
            if raw.get(name) is None:
                continue
            try:
                setattr(entry, name, parse_timestamp(raw[name]))
            except FormatError as exc:
                raise FormatError(f"invalid {name} format: {exc}") from exc
        if isinstance(raw.get("status"), str):
            entry.status = raw["status"]
        return entry


class DayEntry(BaseModel):
    date: str = ""
    habits: list[HabitEntry] = Field(default_factory=list)

    def validate(self) -> None:  # type: ignore[override]
        if not self.date:
            raise MissingFieldError("date is required")
        parse_date(self.date)

        seen: set[str] = set()
        for i, entry in enumerate(self.habits):
            try:
                entry.validate()
            except ViceError as exc:
                raise exc.wrap(f"goal entry at index {i}") from exc
            if entry.habit_id in seen:
                raise DuplicateError(f"duplicate habit ID for date {self.date}: {entry.habit_id}")
            seen.add(entry.habit_id)

    def get_habit_entry(self, habit_id: str) -> HabitEntry | None:
        for entry in self.habits:
            if entry.habit_id == habit_id:
                return entry
        return None

    def add_habit_entry(self, entry: HabitEntry) -> None:
        try:
            entry.validate()
        except ViceError as exc:
            raise exc.wrap("invalid habit entry") from exc
        if self.get_habit_entry(entry.habit_id) is not None:
            raise DuplicateError(f"entry for goal {entry.habit_id} already exists on date {self.date}")
        self.habits.append(entry)

    def update_habit_entry(self, entry: HabitEntry) -> None:
        """Replace the entry for the same habit, or append it."""
        try:
            entry.validate()
        except ViceError as exc:
            raise exc.wrap("invalid habit entry") from exc
        for i, existing in enumerate(self.habits):
            if existing.habit_id == entry.habit_id:
                self.habits[i] = entry
                return
        self.habits.append(entry)

    def is_today(self) -> bool:
        return self.date == clock.today().strftime(DATE_FORMAT)

    def get_date(self) -> dt.date:
        return parse_date(self.date)

    def to_document(self) -> dict[str, Any]:
        return {"date": self.date, "habits": [e.to_document() for e in self.habits]}

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], field_types: Mapping[str, str] | None = None) -> DayEntry:
        field_types = field_types or {}
        day = cls(date=str(raw.get("date") or ""))
        for i, item in enumerate(raw.get("habits") or []):
            if not isinstance(item, Mapping):
                raise FormatError(f"goal entry at index {i}: expected a mapping")
            habit_id = item.get("habit_id")
            field_type = field_types.get(habit_id) if isinstance(habit_id, str) else None
            try:
                day.habits.append(HabitEntry.from_document(item, field_type))
            except ViceError as exc:
                raise exc.wrap(f"goal entry at index {i}") from exc
        return day


class EntryLog(BaseModel):
    version: str = ""
    entries: list[DayEntry] = Field(default_factory=list)

    def validate(self) -> None:  # type: ignore[override]
        if not self.version:
            raise MissingFieldError("entry log version is required")

        seen: set[str] = set()
        for i, day in enumerate(self.entries):
            try:
                day.validate()
            except ViceError as exc:
                raise exc.wrap(f"day entry at index {i}") from exc
            if day.date in seen:
                raise DuplicateError(f"duplicate date: {day.date}")
            seen.add(day.date)

    def get_day_entry(self, date: str) -> DayEntry | None:
        for day in self.entries:
            if day.date == date:
                return day
        return None

    def add_day_entry(self, day: DayEntry) -> None:
        try:
            day.validate()
        except ViceError as exc:
            raise exc.wrap("invalid day entry") from exc
        if self.get_day_entry(day.date) is not None:
            raise DuplicateError(f"entry for date {day.date} already exists")
        self.entries.append(day)

    def update_day_entry(self, day: DayEntry) -> None:
        """Replace the entry for the same date, or append it."""
        try:
            day.validate()
        except ViceError as exc:
            raise exc.wrap("invalid day entry") from exc
        for i, existing in enumerate(self.entries):
            if existing.date == day.date:
                self.entries[i] = day
                return
        self.entries.append(day)

    def get_entries_for_date_range(self, start_date: str, end_date: str) -> list[DayEntry]:
        """Day entries dated within ``[start_date, end_date]``, in log order."""
        try:
            start = parse_date(start_date)
        except FormatError as exc:
            raise FormatError(f"invalid start date format: {exc}") from exc
        try:
            end = parse_date(end_date)
        except FormatError as exc:
            raise FormatError(f"invalid end date format: {exc}") from exc
        if start > end:
            raise ConsistencyError(f"start date {start_date} is after end date {end_date}")

        result: list[DayEntry] = []
        for day in self.entries:
            try:
                day_date = parse_date(day.date)
            except FormatError:
                _LOGGER.debug("Skipping day entry with unparsable date %r", day.date)
                continue
            if start <= day_date <= end:
                result.append(day)
        return result

    def to_document(self) -> dict[str, Any]:
        return {"version": self.version, "entries": [d.to_document() for d in self.entries]}

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], field_types: Mapping[str, str] | None = None) -> EntryLog:
        log = cls(version=str(raw.get("version") or ""))
        for i, item in enumerate(raw.get("entries") or []):
            if not isinstance(item, Mapping):
                raise FormatError(f"day entry at index {i}: expected a mapping")
            try:
                log.entries.append(DayEntry.from_document(item, field_types))
            except ViceError as exc:
                raise exc.wrap(f"day entry at index {i}") from exc
        return log


# ---------------------------------------------------------------------------
# Constructors: each one fixes the status once.
# ---------------------------------------------------------------------------


def create_today_entry() -> DayEntry:
    return DayEntry(date=clock.today().strftime(DATE_FORMAT))


def create_boolean_habit_entry(habit_id: str, completed: bool) -> HabitEntry:
    entry = HabitEntry(
        habit_id=habit_id,
        value=EntryValue.boolean(completed),
        status=EntryStatus.completed if completed else EntryStatus.failed,
    )
    entry.mark_created()
    return entry


def create_elastic_habit_entry(habit_id: str, value: Any, level: AchievementLevel | str) -> HabitEntry:
    level = _enum_value(level)
    entry = HabitEntry(
        habit_id=habit_id,
        value=value,
        achievement_level=level,
        status=EntryStatus.failed if level == AchievementLevel.none else EntryStatus.completed,
    )
    entry.mark_created()
    return entry


def create_value_only_habit_entry(habit_id: str, value: Any) -> HabitEntry:
    entry = HabitEntry(habit_id=habit_id, value=value, status=EntryStatus.completed)
    entry.mark_created()
    return entry


def create_skipped_habit_entry(habit_id: str) -> HabitEntry:
    entry = HabitEntry(habit_id=habit_id, status=EntryStatus.skipped)
    entry.mark_created()
    return entry


def create_empty_entry_log() -> EntryLog:
    return EntryLog(version=settings.default_version)
