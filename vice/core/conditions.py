"""Criteria conditions.

``Condition`` mirrors the on-disk mapping (every comparison is an optional
key). ``Condition.to_expression()`` compiles it into a small expression tree
that ``evaluate`` walks. Every key that is present takes part in the
evaluation: several keys on one mapping are combined with AND.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from vice.errors import ConsistencyError, FormatError, MissingFieldError

REQUIRED_ITEMS_ALL = "all"


class RangeCondition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: int | float
    max: int | float
    min_inclusive: bool | None = None
    max_inclusive: bool | None = None


class ChecklistCompletionCondition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required_items: str = ""

    def validate(self) -> None:  # type: ignore[override]
        if not self.required_items:
            raise MissingFieldError("required_items field is required")
        if self.required_items != REQUIRED_ITEMS_ALL:
            raise ConsistencyError(f"required_items must be 'all', got: {self.required_items}")


class Condition(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    greater_than: int | float | None = None
    greater_than_or_equal: int | float | None = None
    less_than: int | float | None = None
    less_than_or_equal: int | float | None = None

    range: RangeCondition | None = None

    before: str | None = None
    after: str | None = None

    equals: bool | None = None

    checklist_completion: ChecklistCompletionCondition | None = None

    all_of: list[Condition] | None = Field(default=None, alias="and")
    any_of: list[Condition] | None = Field(default=None, alias="or")
    negate: Condition | None = Field(default=None, alias="not")

    def numeric_bound(self) -> float | None:
        """First present numeric threshold, used to order elastic tiers."""
        for bound in (
            self.greater_than,
            self.greater_than_or_equal,
            self.less_than,
            self.less_than_or_equal,
        ):
            if bound is not None:
                return bound
        if self.range is not None:
            return self.range.min
        return None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def to_expression(self) -> Expression:
        terms: list[Expression] = []
        for op, operand in (
            (">", self.greater_than),
            (">=", self.greater_than_or_equal),
            ("<", self.less_than),
            ("<=", self.less_than_or_equal),
        ):
            if operand is not None:
                terms.append(Compare(op, operand))
        if self.range is not None:
            terms.append(
                InRange(
                    self.range.min,
                    self.range.max,
                    True if self.range.min_inclusive is None else self.range.min_inclusive,
                    True if self.range.max_inclusive is None else self.range.max_inclusive,
                )
            )
        if self.before:
            terms.append(Before(_clock_minutes(self.before, "before")))
        if self.after:
            terms.append(After(_clock_minutes(self.after, "after")))
        if self.equals is not None:
            terms.append(Equals(self.equals))
        if self.checklist_completion is not None:
            terms.append(ChecklistComplete(self.checklist_completion.required_items))
        if self.all_of:
            terms.append(AllOf(tuple(c.to_expression() for c in self.all_of)))
        if self.any_of:
            terms.append(AnyOf(tuple(c.to_expression() for c in self.any_of)))
        if self.negate is not None:
            terms.append(Not(self.negate.to_expression()))

        if not terms:
            raise MissingFieldError("condition must specify at least one comparison")
        if len(terms) == 1:
            return terms[0]
        return AllOf(tuple(terms))


class Criteria(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str | None = None
    condition: Condition | None = None


def _clock_minutes(text: str, name: str) -> float:
    parts = text.strip().split(":")
    if len(parts) == 2:
        try:
            hours, minutes = float(parts[0]), float(parts[1])
        except ValueError:
            pass
        else:
            if 0 <= hours < 24 and 0 <= minutes < 60:
                return hours * 60 + minutes
    raise FormatError(f"invalid {name} time: cannot parse time: {text} (expected HH:MM format)")


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Compare:
    op: str  # ">" | ">=" | "<" | "<="
    operand: float


@dataclass(frozen=True, slots=True)
class InRange:
    low: float
    high: float
    low_inclusive: bool = True
    high_inclusive: bool = True


@dataclass(frozen=True, slots=True)
class Before:
    minutes: float


@dataclass(frozen=True, slots=True)
class After:
    minutes: float


@dataclass(frozen=True, slots=True)
class Equals:
    expected: bool


@dataclass(frozen=True, slots=True)
class ChecklistComplete:
    required_items: str


@dataclass(frozen=True, slots=True)
class AllOf:
    terms: tuple[Expression, ...]


@dataclass(frozen=True, slots=True)
class AnyOf:
    terms: tuple[Expression, ...]


@dataclass(frozen=True, slots=True)
class Not:
    term: Expression


Expression = Union[Compare, InRange, Before, After, Equals, ChecklistComplete, AllOf, AnyOf, Not]


@dataclass(frozen=True, slots=True)
class Subject:
    """The value an expression is evaluated against, already converted.

    ``number`` holds numbers, durations in minutes, times as minutes since
    midnight, or text length. ``checklist`` is ``(completed, total)``.
    """

    number: float | None = None
    flag: bool | None = None
    checklist: tuple[int, int] | None = None


def _number(subject: Subject) -> float:
    if subject.number is None:
        raise ConsistencyError("expected numeric value for comparison")
    return subject.number


def evaluate(expr: Expression, subject: Subject) -> bool:
    if isinstance(expr, Compare):
        value = _number(subject)
        if expr.op == ">":
            return value > expr.operand
        if expr.op == ">=":
            return value >= expr.operand
        if expr.op == "<":
            return value < expr.operand
        if expr.op == "<=":
            return value <= expr.operand
        raise ConsistencyError(f"unknown comparison operator: {expr.op}")
    if isinstance(expr, InRange):
        value = _number(subject)
        low_ok = value >= expr.low if expr.low_inclusive else value > expr.low
        high_ok = value <= expr.high if expr.high_inclusive else value < expr.high
        return low_ok and high_ok
    if isinstance(expr, Before):
        return _number(subject) < expr.minutes
    if isinstance(expr, After):
        return _number(subject) > expr.minutes
    if isinstance(expr, Equals):
        if subject.flag is None:
            raise ConsistencyError("expected boolean value for equality")
        return subject.flag == expr.expected
    if isinstance(expr, ChecklistComplete):
        if subject.checklist is None:
            raise ConsistencyError("expected checklist progress for checklist completion")
        if expr.required_items != REQUIRED_ITEMS_ALL:
            raise ConsistencyError(f"required_items must be 'all', got: {expr.required_items}")
        completed, total = subject.checklist
        return completed >= total
    if isinstance(expr, AllOf):
        return all(evaluate(term, subject) for term in expr.terms)
    if isinstance(expr, AnyOf):
        return any(evaluate(term, subject) for term in expr.terms)
    if isinstance(expr, Not):
        return not evaluate(expr.term, subject)
    raise TypeError(f"not an expression: {expr!r}")
