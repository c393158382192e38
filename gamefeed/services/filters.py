"""
Conditional WHERE-clause composition.

Callers add SQLAlchemy boolean clauses one at a time, optionally gated on
whether a filter value was supplied, and get back a single AND-ed clause.
"""
from typing import Any, Callable

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement


class PredicateBuilder:
    def __init__(self) -> None:
        self._clauses: list[ColumnElement[bool]] = []

    def add(self, clause: ColumnElement[bool]) -> "PredicateBuilder":
        self._clauses.append(clause)
        return self

    def add_if(
        self,
        value: Any,
        make_clause: Callable[[Any], ColumnElement[bool]],
    ) -> "PredicateBuilder":
        """Add `make_clause(value)` unless value is None."""
        if value is not None:
            self._clauses.append(make_clause(value))
        return self

    def build(self) -> ColumnElement[bool]:
        if not self._clauses:
            return true()
        return and_(*self._clauses)

    def __len__(self) -> int:
        return len(self._clauses)
