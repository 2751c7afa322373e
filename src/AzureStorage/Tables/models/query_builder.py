# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Fluent query builder for table entity queries.

The builder only produces clauses in the predicate grammar understood by
:class:`~AzureStorage.Tables.models.filters.FilterCompiler`, so every filter
it creates goes through the same validation as a hand-written clause.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, TYPE_CHECKING

from .filters import compile_filter

if TYPE_CHECKING:
    from .record import Record


@dataclass
class QueryBuilder:
    """
    Fluent interface for building entity queries.

    :param table: Table name to query.
    :type table: str

    Example:
        Build and execute a query (via client)::

            for record in (client.query.builder("Orders")
                           .select("Amount", "Currency")
                           .filter_eq("Currency", "EUR")
                           .filter_gt("Amount", 5)
                           .batch_size(100)
                           .first(250)
                           .execute()):
                print(record["Amount"])

        Build a standalone query::

            params = QueryBuilder("Orders").filter_eq("Status", "open").top(10).build()
    """

    table: str
    _clauses: List[str] = field(default_factory=list)
    _join: str = "and"
    _select: List[str] = field(default_factory=list)
    _sort: List[str] = field(default_factory=list)
    _top: Optional[int] = None
    _first: Optional[int] = None
    _query_ops: Any = field(default=None, compare=False, repr=False)

    def select(self, *columns: str) -> "QueryBuilder":
        """
        Select specific fields to retrieve.

        :param columns: Field names to select.
        :type columns: str
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        self._select.extend(columns)
        return self

    def where(self, clause: str) -> "QueryBuilder":
        """
        Add a clause written directly in the predicate grammar.

        :param clause: A clause such as ``"$_.Age -gt 5"``.
        :type clause: str
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        self._clauses.append(clause)
        return self

    def filter_eq(self, column: str, value: Any) -> "QueryBuilder":
        """
        Add equality filter (column eq value).

        :param column: Field name.
        :type column: str
        :param value: String or number to compare against.
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        return self._compare(column, "-eq", value)

    def filter_ne(self, column: str, value: Any) -> "QueryBuilder":
        """Add not-equal filter (column ne value)."""
        return self._compare(column, "-ne", value)

    def filter_gt(self, column: str, value: Any) -> "QueryBuilder":
        """Add greater-than filter (column gt value)."""
        return self._compare(column, "-gt", value)

    def filter_ge(self, column: str, value: Any) -> "QueryBuilder":
        """Add greater-than-or-equal filter (column ge value)."""
        return self._compare(column, "-ge", value)

    def filter_lt(self, column: str, value: Any) -> "QueryBuilder":
        """Add less-than filter (column lt value)."""
        return self._compare(column, "-lt", value)

    def filter_le(self, column: str, value: Any) -> "QueryBuilder":
        """Add less-than-or-equal filter (column le value)."""
        return self._compare(column, "-le", value)

    def any_of(self) -> "QueryBuilder":
        """
        Combine clauses with ``or`` instead of the default ``and``.

        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        self._join = "or"
        return self

    def order_by(self, *columns: str) -> "QueryBuilder":
        """
        Add sort fields, sent as ``$OrderBy``.

        :param columns: Field names in sort priority order.
        :type columns: str
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        self._sort.extend(columns)
        return self

    def top(self, count: int) -> "QueryBuilder":
        """
        Limit the number of entities per request (``$top``).

        :param count: Maximum number of entities the service returns per page.
        :type count: int
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        if count < 1:
            raise ValueError("top count must be at least 1")
        self._top = count
        return self

    batch_size = top

    def first(self, count: int) -> "QueryBuilder":
        """
        Stop after ``count`` entities in total.

        :param count: Maximum number of entities produced across all pages.
        :type count: int
        :return: Self for method chaining.
        :rtype: QueryBuilder
        """
        if count < 1:
            raise ValueError("first must be at least 1")
        self._first = count
        return self

    def _compare(self, column: str, op: str, value: Any) -> "QueryBuilder":
        self._clauses.append(f"{column} {op} {self._format_value(value)}")
        return self

    @staticmethod
    def _format_value(value: Any) -> str:
        """
        Format a value as a literal of the predicate grammar.

        :param value: String or number.
        :rtype: str
        :raises TypeError: For values that have no literal form.
        """
        if isinstance(value, bool):
            raise TypeError("boolean values have no literal form; compare against 'true' or 'false'")
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            escaped = value.replace("'", "''")
            return f"'{escaped}'"
        raise TypeError(f"cannot use {type(value).__name__} as a filter literal")

    def build(self) -> dict:
        """
        Build query parameters dictionary.

        :return: Dictionary with table, filter, select, sort, top and first keys.
        :rtype: dict
        :raises ~AzureStorage.Tables.core.errors.CompileError: If a clause is outside the grammar.

        Example::

            QueryBuilder("Orders").filter_eq("Status", "open").top(10).build()
            # {'table': 'Orders', 'filter': "Status eq 'open'", 'top': 10}
        """
        params: dict = {"table": self.table}
        if self._clauses:
            params["filter"] = compile_filter(self._clauses, self._join)
        if self._select:
            params["select"] = list(self._select)
        if self._sort:
            params["sort"] = list(self._sort)
        if self._top is not None:
            params["top"] = self._top
        if self._first is not None:
            params["first"] = self._first
        return params

    def execute(self) -> Iterator["Record"]:
        """
        Execute the query and iterate over all matching records.

        Only available when the builder was created via ``client.query.builder(table)``.

        :raises RuntimeError: If the query was not created via client.query.builder().
        """
        if self._query_ops is None:
            raise RuntimeError(
                "Cannot execute: query was not created via client.query.builder(). "
                "Use client.query.entities() instead."
            )
        return self._query_ops.entities(
            self.table,
            where=list(self._clauses) or None,
            join=self._join,
            select=list(self._select) or None,
            sort=list(self._sort) or None,
            batch_size=self._top,
            first=self._first,
        )


__all__ = ["QueryBuilder"]
