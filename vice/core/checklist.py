"""Checklist templates and their daily completion state.

Items are plain strings; an item starting with the heading prefix (``"# "``
by default) is a heading and never counts towards totals.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from vice.config import settings
from vice.core import clock
from vice.core.codec import DATE_FORMAT, is_valid_date, parse_rfc3339
from vice.core.conditions import ChecklistCompletionCondition
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


def is_heading(item: str) -> bool:
    return item.startswith(settings.heading_prefix)


class Checklist(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = ""
    title: str = ""
    description: str | None = None
    items: list[str] = Field(default_factory=list)
    created_date: str = ""
    modified_date: str = ""

    def validate(self) -> Checklist:  # type: ignore[override]
        return self.validate_and_track_changes().value

    def validate_and_track_changes(self) -> Normalized[Checklist]:
        if not self.title.strip():
            raise MissingFieldError("checklist title is required")

        checklist = self.model_copy(deep=True)
        generated = False
        if not checklist.id:
            checklist.id = generate_id_from_title(checklist.title, fallback="unnamed_checklist")
            generated = True
            _LOGGER.debug("Generated checklist ID %r from title %r", checklist.id, checklist.title)

        checklist._check()
        return Normalized(checklist, generated)

    def _check(self) -> None:
        if not is_valid_id(self.id):
            raise FormatError(
                f"checklist ID '{self.id}' is invalid: must contain only letters, numbers, and underscores"
            )
        if not self.items:
            raise MissingFieldError("checklist must contain at least one item")
        for i, item in enumerate(self.items):
            if not item.strip():
                raise MissingFieldError(f"item at index {i}: item text cannot be empty")
        for name in ("created_date", "modified_date"):
            value = getattr(self, name)
            if value and not is_valid_date(value):
                raise FormatError(f"invalid {name} format, expected YYYY-MM-DD: {value}")

    def get_total_item_count(self) -> int:
        return sum(1 for item in self.items if not is_heading(item))

    def countable_items(self) -> list[str]:
        return [item for item in self.items if not is_heading(item)]

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.description:
            doc["description"] = self.description
        doc["items"] = list(self.items)
        doc["created_date"] = self.created_date
        doc["modified_date"] = self.modified_date
        return doc


class ChecklistEntry(BaseModel):
    """Completion state of one checklist at one point in time."""

    checklist_id: str = ""
    completed_items: dict[str, bool] = Field(default_factory=dict)  # item text -> done
    completion_time: str | None = None
    partial_complete: bool = False

    def validate(self) -> None:  # type: ignore[override]
        if not self.checklist_id.strip():
            raise MissingFieldError("checklist ID is required")
        if self.completion_time:
            try:
                parse_rfc3339(self.completion_time)
            except FormatError as exc:
                raise FormatError(f"invalid completion time format: {exc}") from exc

    def get_completed_item_count(self, checklist: Checklist) -> int:
        return sum(1 for item in checklist.countable_items() if self.completed_items.get(item))

    def get_completed_total_count(self) -> int:
        """All marks set, including ones for items no longer in the template."""
        return sum(1 for done in self.completed_items.values() if done)

    def progress(self, checklist: Checklist) -> tuple[int, int]:
        return self.get_completed_item_count(checklist), checklist.get_total_item_count()

    def is_complete(
        self,
        checklist: Checklist,
        condition: ChecklistCompletionCondition | None = None,
    ) -> bool:
        # Only the "all items" policy exists; the condition is accepted but not inspected.
        completed, total = self.progress(checklist)
        return completed >= total

    def mark_item(self, item: str, done: bool = True) -> None:
        self.completed_items[item] = done

    def stamp_completion(self, checklist: Checklist) -> None:
        """Set ``partial_complete`` and ``completion_time`` from the current marks."""
        complete = self.is_complete(checklist)
        self.partial_complete = not complete and self.get_completed_item_count(checklist) > 0
        self.completion_time = clock.now().isoformat(timespec="seconds") if complete else None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "checklist_id": self.checklist_id,
            "completed_items": dict(sorted(self.completed_items.items())),
        }
        if self.completion_time:
            doc["completion_time"] = self.completion_time
        doc["partial_complete"] = self.partial_complete
        return doc


# Snapshot of a checklist's state embedded in entry data; same shape.
ChecklistCompletion = ChecklistEntry


class ChecklistSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = ""
    created_date: str = ""
    checklists: list[Checklist] = Field(default_factory=list)

    def validate(self) -> ChecklistSchema:  # type: ignore[override]
        return self.validate_and_track_changes().value

    def validate_and_track_changes(self) -> Normalized[ChecklistSchema]:
        if not self.version:
            raise MissingFieldError("checklist schema version is required")
        if self.created_date and not is_valid_date(self.created_date):
            raise FormatError(
                f"invalid created_date format, expected YYYY-MM-DD: {self.created_date}"
            )

        checklists: list[Checklist] = []
        seen: set[str] = set()
        generated = False
        for i, checklist in enumerate(self.checklists):
            try:
                result = checklist.validate_and_track_changes()
            except ViceError as exc:
                raise exc.wrap(f"checklist at index {i}") from exc
            generated = generated or result.ids_generated
            if result.value.id in seen:
                raise DuplicateError(f"duplicate checklist ID: {result.value.id}")
            seen.add(result.value.id)
            checklists.append(result.value)

        return Normalized(self.model_copy(update={"checklists": checklists}), generated)

    def get_checklist(self, checklist_id: str) -> Checklist | None:
        for checklist in self.checklists:
            if checklist.id == checklist_id:
                return checklist
        return None

    def checklist_exists(self, checklist_id: str) -> bool:
        return self.get_checklist(checklist_id) is not None

    def add_checklist(self, checklist: Checklist) -> Checklist:
        try:
            checklist = checklist.validate()
        except ViceError as exc:
            raise exc.wrap("invalid checklist") from exc
        if self.checklist_exists(checklist.id):
            raise DuplicateError(f"checklist with ID '{checklist.id}' already exists")
        self.checklists.append(checklist)
        return checklist

    def update_checklist(self, checklist: Checklist) -> Checklist:
        try:
            checklist = checklist.validate()
        except ViceError as exc:
            raise exc.wrap("invalid checklist") from exc
        for i, existing in enumerate(self.checklists):
            if existing.id == checklist.id:
                self.checklists[i] = checklist
                return checklist
        raise ReferenceNotFoundError(f"checklist with ID '{checklist.id}' not found")

    def remove_checklist(self, checklist_id: str) -> None:
        for i, existing in enumerate(self.checklists):
            if existing.id == checklist_id:
                del self.checklists[i]
                return
        raise ReferenceNotFoundError(f"checklist with ID '{checklist_id}' not found")

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "created_date": self.created_date,
            "checklists": [c.to_document() for c in self.checklists],
        }


class DailyEntries(BaseModel):
    date: str = ""
    completed: dict[str, ChecklistEntry] = Field(default_factory=dict)  # checklist_id -> state

    def to_document(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "completed": {cid: self.completed[cid].to_document() for cid in sorted(self.completed)},
        }


class ChecklistEntriesSchema(BaseModel):
    version: str = ""
    entries: dict[str, DailyEntries] = Field(default_factory=dict)  # date -> that day's entries

    def validate(self) -> None:  # type: ignore[override]
        if not self.version:
            raise MissingFieldError("schema version is required")

        for date, daily in self.entries.items():
            if daily.date != date:
                raise ConsistencyError(
                    f"date mismatch: key '{date}' does not match entry date '{daily.date}'"
                )
            if not is_valid_date(date):
                raise FormatError(f"invalid date format '{date}': expected YYYY-MM-DD")

            for checklist_id, entry in daily.completed.items():
                if entry.checklist_id != checklist_id:
                    raise ConsistencyError(
                        f"checklist ID mismatch: key '{checklist_id}' does not match entry ID "
                        f"'{entry.checklist_id}'"
                    )
                try:
                    entry.validate()
                except ViceError as exc:
                    raise exc.wrap(f"invalid checklist entry for '{checklist_id}' on {date}") from exc

    def get_entry(self, date: str, checklist_id: str) -> ChecklistEntry | None:
        daily = self.entries.get(date)
        if daily is None:
            return None
        return daily.completed.get(checklist_id)

    def set_entry(self, date: str, checklist_id: str, entry: ChecklistEntry) -> None:
        if not is_valid_date(date):
            raise FormatError(f"invalid date format '{date}': expected YYYY-MM-DD")
        entry = entry.model_copy(update={"checklist_id": checklist_id})
        entry.validate()
        daily = self.entries.setdefault(date, DailyEntries(date=date))
        daily.completed[checklist_id] = entry

    def get_todays_entry(self, checklist_id: str) -> ChecklistEntry | None:
        return self.get_entry(clock.today().strftime(DATE_FORMAT), checklist_id)

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "entries": {date: self.entries[date].to_document() for date in sorted(self.entries)},
        }


def create_empty_checklist_entries() -> ChecklistEntriesSchema:
    return ChecklistEntriesSchema(version=settings.default_version)
