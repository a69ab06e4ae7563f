"""Automatic scoring of entry values against habit criteria.

Values are first reduced to a ``Subject`` according to the habit's field
type, then each criteria condition is compiled and evaluated:

* numeric kinds     → float
* duration          → minutes (``90``, ``"1h30m"``, ``"01:30:00"``)
* time              → minutes since midnight
* boolean           → flag (``"true"``/``"false"`` accepted)
* text              → length as number, non-blank as flag
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any

from vice.core.checklist import Checklist, ChecklistEntry
from vice.core.codec import EntryValue
from vice.core.conditions import Criteria, Subject, evaluate
from vice.core.crossref import check_checklist_completion_condition
from vice.core.entry import AchievementLevel
from vice.core.habit import FieldKind, Habit
from vice.errors import ConsistencyError, FormatError

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")
_DURATION_TEXT = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ms|h|m|s))+")
_MINUTES_PER_UNIT = {"h": 60.0, "m": 1.0, "s": 1 / 60, "ms": 1 / 60000}

_NUMERIC_KINDS = (FieldKind.unsigned_int, FieldKind.unsigned_decimal, FieldKind.decimal)


@dataclass(frozen=True, slots=True)
class ScoreResult:
    achievement_level: AchievementLevel = AchievementLevel.none
    met_mini: bool = False
    met_midi: bool = False
    met_maxi: bool = False


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------


def _unwrap(value: Any) -> Any:
    return value.data if isinstance(value, EntryValue) else value


def to_number(value: Any) -> float:
    value = _unwrap(value)
    if isinstance(value, bool):
        raise FormatError(f"cannot convert {type(value).__name__} to number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            raise FormatError(f"cannot convert {value!r} to number") from exc
    raise FormatError(f"cannot convert {type(value).__name__} to number")


def parse_duration_minutes(text: str) -> float:
    """``"1h30m"`` / ``"90"`` / ``"01:30:00"`` → minutes."""
    text = text.strip()
    if _DURATION_TEXT.fullmatch(text):
        return sum(float(n) * _MINUTES_PER_UNIT[unit] for n, unit in _DURATION_PART.findall(text))
    try:
        return float(text)
    except ValueError:
        pass
    parts = text.split(":")
    if len(parts) == 3:
        try:
            hours, minutes, seconds = (float(p) for p in parts)
        except ValueError:
            pass
        else:
            return hours * 60 + minutes + seconds / 60
    raise FormatError(f"cannot parse duration: {text}")


def duration_minutes(value: Any) -> float:
    value = _unwrap(value)
    if isinstance(value, str):
        return parse_duration_minutes(value)
    if isinstance(value, time):
        return value.hour * 60 + value.minute + value.second / 60
    return to_number(value)


def time_minutes(value: Any) -> float:
    value = _unwrap(value)
    if isinstance(value, (time, datetime)):
        return float(value.hour * 60 + value.minute)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) == 2:
            try:
                hours, minutes = float(parts[0]), float(parts[1])
            except ValueError:
                pass
            else:
                if 0 <= hours < 24 and 0 <= minutes < 60:
                    return hours * 60 + minutes
        raise FormatError(f"cannot parse time: {value} (expected HH:MM format)")
    raise FormatError(f"cannot convert {type(value).__name__} to time in minutes")


def to_flag(value: Any) -> bool:
    value = _unwrap(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise FormatError(f"cannot convert {value!r} to boolean")


def _as_text(value: Any) -> str:
    if isinstance(value, EntryValue):
        return str(value)
    return value if isinstance(value, str) else str(value)


def to_subject(value: Any, field_type: str) -> Subject:
    if value is None:
        raise ConsistencyError("value cannot be nil")
    if field_type in _NUMERIC_KINDS:
        return Subject(number=to_number(value))
    if field_type == FieldKind.duration:
        return Subject(number=duration_minutes(value))
    if field_type == FieldKind.time:
        return Subject(number=time_minutes(value))
    if field_type == FieldKind.boolean:
        return Subject(flag=to_flag(value))
    if field_type == FieldKind.text:
        text = _as_text(value)
        return Subject(number=float(len(text)), flag=bool(text.strip()))
    raise ConsistencyError(f"unsupported field type for scoring: {field_type}")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ScoringEngine:
    """Stateless; one instance can score any number of habits."""

    def criteria_met(self, criteria: Criteria, subject: Subject, field_type: str) -> bool:
        condition = criteria.condition
        if condition is None:
            raise ConsistencyError("criteria or condition cannot be nil")
        # A bare text criterion means "something was written".
        if field_type == FieldKind.text and condition.is_empty():
            return bool(subject.flag)
        return evaluate(condition.to_expression(), subject)

    def _require_automatic(self, habit: Habit) -> None:
        if not habit.requires_automatic_scoring:
            raise ConsistencyError(f"habit {habit.id} does not require automatic scoring")

    def score_simple(self, habit: Habit, value: Any) -> ScoreResult:
        if not habit.is_simple:
            raise ConsistencyError(f"habit {habit.id} is not a simple habit")
        self._require_automatic(habit)
        if habit.criteria is None:
            raise ConsistencyError(f"habit {habit.id} has no criteria for automatic scoring")

        field_type = habit.field_type.type
        subject = to_subject(value, field_type)
        if self.criteria_met(habit.criteria, subject, field_type):
            return ScoreResult(AchievementLevel.mini, met_mini=True)
        return ScoreResult()

    def score_elastic(self, habit: Habit, value: Any) -> ScoreResult:
        """Evaluate each tier independently; the highest tier met wins."""
        if not habit.is_elastic:
            raise ConsistencyError(f"habit {habit.id} is not an elastic habit")
        self._require_automatic(habit)

        field_type = habit.field_type.type
        subject = to_subject(value, field_type)
        level = AchievementLevel.none
        met: dict[str, bool] = {}
        for tier, criteria in (
            (AchievementLevel.mini, habit.mini_criteria),
            (AchievementLevel.midi, habit.midi_criteria),
            (AchievementLevel.maxi, habit.maxi_criteria),
        ):
            met[tier.value] = criteria is not None and self.criteria_met(criteria, subject, field_type)
            if met[tier.value]:
                level = tier

        return ScoreResult(level, met["mini"], met["midi"], met["maxi"])

    def score_checklist(
        self, habit: Habit, checklist: Checklist, completion: ChecklistEntry
    ) -> ScoreResult:
        if not habit.is_checklist:
            raise ConsistencyError(f"habit {habit.id} is not a checklist habit")
        self._require_automatic(habit)
        if habit.criteria is None:
            raise ConsistencyError(f"habit {habit.id} has no criteria for automatic scoring")
        if habit.field_type.checklist_id != checklist.id:
            raise ConsistencyError(
                f"habit {habit.id} references checklist '{habit.field_type.checklist_id}', "
                f"got '{checklist.id}'"
            )

        condition = habit.criteria.condition
        if condition is None:
            raise ConsistencyError("criteria or condition cannot be nil")
        check_checklist_completion_condition(habit)

        completed, total = completion.progress(checklist)
        subject = Subject(number=float(completed), checklist=(completed, total))
        if evaluate(condition.to_expression(), subject):
            return ScoreResult(AchievementLevel.mini, met_mini=True)
        return ScoreResult()

    def score(self, habit: Habit, value: Any) -> ScoreResult:
        """Dispatch on habit type for value-scored habits."""
        if habit.is_simple:
            return self.score_simple(habit, value)
        if habit.is_elastic:
            return self.score_elastic(habit, value)
        raise ConsistencyError(f"habit {habit.id} cannot be scored from a value")
