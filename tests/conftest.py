"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from vice.config import settings
from vice.core import clock
from vice.core.conditions import Condition, Criteria
from vice.core.habit import FieldType, Habit
from vice.main import app

FIXED_NOW = datetime(2024, 1, 3, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

CHECKLISTS_YAML = """\
version: "1.0.0"
created_date: "2024-01-01"
checklists:
  - id: morning
    title: Morning
    items:
      - "# Wake up"
      - Meditate
      - Stretch
    created_date: "2024-01-01"
    modified_date: "2024-01-01"
"""

SCHEMA_YAML = """\
version: "1.0.0"
created_date: "2024-01-01"
habits:
  - title: Morning Routine
    habit_type: checklist
    scoring_type: automatic
    field_type:
      type: checklist
      checklist_id: morning
    criteria:
      condition:
        checklist_completion:
          required_items: all
  - title: Sleep Quality (1-10)
    habit_type: informational
    field_type:
      type: unsigned_int
  - title: Journal
    id: journal
    habit_type: simple
    scoring_type: manual
    field_type:
      type: text
"""


# ---------------------------------------------------------------------------
# Model helpers
# ---------------------------------------------------------------------------

def criteria(**condition: Any) -> Criteria:
    return Criteria(condition=Condition(**condition))


def elastic_habit(
    mini: float = 15,
    midi: float = 30,
    maxi: float = 60,
    field: str = "unsigned_int",
    **overrides: Any,
) -> Habit:
    defaults = dict(
        title="Exercise",
        habit_type="elastic",
        scoring_type="automatic",
        field_type=FieldType(type=field, unit="minutes"),
        mini_criteria=criteria(greater_than_or_equal=mini),
        midi_criteria=criteria(greater_than_or_equal=midi),
        maxi_criteria=criteria(greater_than_or_equal=maxi),
    )
    defaults.update(overrides)
    return Habit(**defaults)


def checklist_habit(**overrides: Any) -> Habit:
    defaults = dict(
        title="Morning Routine",
        habit_type="checklist",
        scoring_type="automatic",
        field_type=FieldType(type="checklist", checklist_id="morning"),
        criteria=criteria(checklist_completion={"required_items": "all"}),
    )
    defaults.update(overrides)
    return Habit(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fixed_clock(monkeypatch):
    """Pin the wall clock used for entry timestamps and "today"."""
    monkeypatch.setattr(clock, "now", lambda: FIXED_NOW)
    return FIXED_NOW


@pytest.fixture()
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "api_key", "test-key")
    return "test-key"


@pytest.fixture()
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
