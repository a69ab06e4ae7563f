"""Checks that span the habit schema and the checklist documents."""

from __future__ import annotations

import logging
from typing import Callable

from vice.core.checklist import ChecklistSchema
from vice.core.habit import Habit, Schema
from vice.errors import ConsistencyError, ViceError

_LOGGER = logging.getLogger(__name__)


def checklist_lookup(checklists: ChecklistSchema | None) -> Callable[[str], bool]:
    """Existence predicate over a checklist document; ``None`` means no checklists."""
    known = {c.id for c in checklists.checklists} if checklists is not None else set()
    return known.__contains__


def check_checklist_completion_condition(habit: Habit) -> None:
    """Automatically scored checklist habits must be judged on checklist completion."""
    if not (habit.is_checklist and habit.requires_automatic_scoring):
        return
    condition = habit.criteria.condition if habit.criteria is not None else None
    if condition is None or condition.checklist_completion is None:
        raise ConsistencyError(
            f"checklist habit '{habit.title}' must use a checklist_completion condition"
        )
    condition.checklist_completion.validate()


def validate_habit_references(habit: Habit, checklist_exists: Callable[[str], bool]) -> Habit:
    habit = habit.validate_with_checklist_context(checklist_exists)
    check_checklist_completion_condition(habit)
    return habit


def validate_habits_against_checklists(
    schema: Schema, checklists: ChecklistSchema | None
) -> Schema:
    """Validate ``schema`` and resolve every checklist reference it makes.

    Returns the normalized schema. The checklist document is validated first
    so references are resolved against normalized IDs.
    """
    schema = schema.validate()
    if checklists is not None:
        checklists = checklists.validate()
    exists = checklist_lookup(checklists)

    for i, habit in enumerate(schema.habits):
        try:
            validate_habit_references(habit, exists)
        except ViceError as exc:
            raise exc.wrap(f"habit at index {i}") from exc

    _LOGGER.debug(
        "Resolved checklist references for %d habit(s)", len(schema.habits_of_type("checklist"))
    )
    return schema
