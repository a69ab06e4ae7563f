"""YAML load/dump for the four document roles.

Loaders parse, upgrade legacy shapes, build the models and validate them.
Dumpers validate and then render the canonical form. No file I/O happens
here; callers own paths and atomic writes.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from vice.config import settings
from vice.core.checklist import ChecklistEntriesSchema, ChecklistSchema
from vice.core.codec import dump_yaml, load_yaml
from vice.core.entry import EntryLog
from vice.core.habit import Schema
from vice.core.ids import Normalized
from vice.errors import FormatError

_LOGGER = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# (old key, new key) per nesting level
_SCHEMA_RENAMES = (("goals", "habits"),)
_HABIT_RENAMES = (("goal_type", "habit_type"),)
_DAY_RENAMES = (("goals", "habits"),)
_HABIT_ENTRY_RENAMES = (("goal_id", "habit_id"),)


# ---------------------------------------------------------------------------
# Legacy upgrade
# ---------------------------------------------------------------------------


def _rename(raw: Mapping[str, Any], renames: tuple[tuple[str, str], ...], where: str) -> dict[str, Any]:
    doc = dict(raw)
    for old, new in renames:
        if old in doc and new not in doc:
            doc[new] = doc.pop(old)
            _LOGGER.debug("Upgraded legacy key %r -> %r in %s", old, new, where)
    return doc


def _rename_each(items: Any, renames: tuple[tuple[str, str], ...], where: str) -> Any:
    if not isinstance(items, list):
        return items
    return [_rename(item, renames, where) if isinstance(item, Mapping) else item for item in items]


def upgrade_schema_document(raw: Mapping[str, Any]) -> dict[str, Any]:
    doc = _rename(raw, _SCHEMA_RENAMES, "schema")
    doc["habits"] = _rename_each(doc.get("habits"), _HABIT_RENAMES, "habit")
    if doc["habits"] is None:
        del doc["habits"]
    return doc


def upgrade_entry_log_document(raw: Mapping[str, Any]) -> dict[str, Any]:
    doc = dict(raw)
    days = _rename_each(doc.get("entries"), _DAY_RENAMES, "day entry")
    if isinstance(days, list):
        doc["entries"] = [
            {**day, "habits": _rename_each(day.get("habits"), _HABIT_ENTRY_RENAMES, "habit entry")}
            if isinstance(day, Mapping)
            else day
            for day in days
        ]
    return doc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_mapping(text: str, role: str) -> dict[str, Any]:
    raw = load_yaml(text)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise FormatError(f"{role} document must be a mapping, got {type(raw).__name__}")
    return dict(raw)


def _build(model: type[M], raw: Mapping[str, Any], role: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise FormatError(f"invalid {role} document: {_first_error(exc)}") from exc


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg', 'invalid value')}" if location else err.get("msg", "invalid value")


# ---------------------------------------------------------------------------
# Habit schema
# ---------------------------------------------------------------------------


def load_schema(text: str) -> Normalized[Schema]:
    """Parse and validate a habit schema.

    ``ids_generated`` is set when normalization produced IDs that were not in
    the text, i.e. the caller should write the dumped schema back.
    """
    raw = upgrade_schema_document(_parse_mapping(text, "schema"))
    result = _build(Schema, raw, "schema").validate_and_track_changes()
    return Normalized(result.value, result.ids_generated and settings.persist_generated_ids)


def dump_schema(schema: Schema) -> str:
    return dump_yaml(schema.validate().to_document(), sort_keys=False)


# ---------------------------------------------------------------------------
# Entry log
# ---------------------------------------------------------------------------


def load_entry_log(text: str, schema: Schema | None = None) -> EntryLog:
    """Parse and validate an entry log.

    With a ``schema`` each value is decoded by its habit's field type;
    without one the value text is sniffed.
    """
    raw = upgrade_entry_log_document(_parse_mapping(text, "entry log"))
    field_types = schema.field_types() if schema is not None else None
    log = EntryLog.from_document(raw, field_types)
    log.validate()
    return log


def dump_entry_log(log: EntryLog) -> str:
    log.validate()
    return dump_yaml(log.to_document(), sort_keys=True)


# ---------------------------------------------------------------------------
# Checklists
# ---------------------------------------------------------------------------


def load_checklists(text: str) -> Normalized[ChecklistSchema]:
    raw = _parse_mapping(text, "checklist")
    result = _build(ChecklistSchema, raw, "checklist").validate_and_track_changes()
    return Normalized(result.value, result.ids_generated and settings.persist_generated_ids)


def dump_checklists(checklists: ChecklistSchema) -> str:
    return dump_yaml(checklists.validate().to_document(), sort_keys=False)


def load_checklist_entries(text: str) -> ChecklistEntriesSchema:
    raw = _parse_mapping(text, "checklist entries")
    entries = _build(ChecklistEntriesSchema, raw, "checklist entries")
    entries.validate()
    return entries


def dump_checklist_entries(entries: ChecklistEntriesSchema) -> str:
    entries.validate()
    return dump_yaml(entries.to_document(), sort_keys=False)
