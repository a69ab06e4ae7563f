"""Tests for habit ↔ checklist reference checks."""

from __future__ import annotations

import pytest

from tests.conftest import checklist_habit, criteria
from vice.core.checklist import Checklist, ChecklistSchema
from vice.core.crossref import (
    check_checklist_completion_condition,
    checklist_lookup,
    validate_habit_references,
    validate_habits_against_checklists,
)
from vice.core.habit import FieldType, Habit, Schema
from vice.errors import ConsistencyError, ReferenceNotFoundError


def _checklists(*ids: str) -> ChecklistSchema:
    return ChecklistSchema(
        version="1",
        checklists=[Checklist(id=cid, title=cid.title(), items=["One"]) for cid in ids],
    )


class TestChecklistLookup:
    def test_known_ids(self):
        exists = checklist_lookup(_checklists("morning", "evening"))
        assert exists("morning")
        assert not exists("noon")

    def test_no_document(self):
        assert not checklist_lookup(None)("morning")


class TestCompletionCondition:
    def test_automatic_needs_checklist_completion(self):
        habit = checklist_habit(criteria=criteria(greater_than=2))
        with pytest.raises(ConsistencyError, match="must use a checklist_completion condition"):
            check_checklist_completion_condition(habit)

    def test_manual_is_exempt(self):
        check_checklist_completion_condition(checklist_habit(scoring_type="manual", criteria=None))

    def test_other_habit_types_ignored(self):
        habit = Habit(title="Run", habit_type="simple", scoring_type="manual", field_type=FieldType(type="boolean"))
        check_checklist_completion_condition(habit)


class TestValidateHabitReferences:
    def test_resolves(self):
        habit = validate_habit_references(checklist_habit(), checklist_lookup(_checklists("morning")))
        assert habit.id == "morning_routine"

    def test_missing_reference(self):
        with pytest.raises(ReferenceNotFoundError):
            validate_habit_references(checklist_habit(), checklist_lookup(_checklists("evening")))


class TestValidateHabitsAgainstChecklists:
    def test_all_resolved(self):
        schema = Schema(version="1", habits=[checklist_habit()])
        normalized = validate_habits_against_checklists(schema, _checklists("morning"))
        assert normalized.habits[0].id == "morning_routine"
        assert normalized.habits[0].position == 1

    def test_missing_reference_carries_index(self):
        schema = Schema(
            version="1",
            habits=[
                Habit(title="Run", habit_type="simple", scoring_type="manual", field_type=FieldType(type="boolean")),
                checklist_habit(),
            ],
        )
        with pytest.raises(ReferenceNotFoundError) as exc:
            validate_habits_against_checklists(schema, _checklists("evening"))
        assert str(exc.value) == (
            "habit at index 1: checklist habit 'Morning Routine' references non-existent checklist 'morning'"
        )

    def test_without_checklist_document(self):
        schema = Schema(version="1", habits=[checklist_habit()])
        with pytest.raises(ReferenceNotFoundError):
            validate_habits_against_checklists(schema, None)

    def test_reference_to_generated_checklist_id(self):
        checklists = ChecklistSchema(version="1", checklists=[Checklist(title="Morning", items=["One"])])
        schema = Schema(version="1", habits=[checklist_habit()])
        validate_habits_against_checklists(schema, checklists)
