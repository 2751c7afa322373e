# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Entity query operations namespace."""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Sequence, Union, TYPE_CHECKING

from ..core.results import QueryPage
from ..models.cursor import Cursor
from ..models.operation import Operation, OperationVerb
from ..models.query_builder import QueryBuilder
from ..models.record import Record

if TYPE_CHECKING:
    from ..client import TableServiceClient

logger = logging.getLogger(__name__)

Clauses = Union[str, Sequence[str]]


class QueryOperations:
    """
    Filtered, paged queries over a table's entities.

    Accessed via ``client.query``. Predicates use the ``field -op literal``
    grammar of :class:`~AzureStorage.Tables.models.filters.FilterCompiler`.

    Example:
        Iterate over every match::

            for order in client.query.entities("Orders", where="$_.Amount -gt 5"):
                print(order["Amount"])

        Send an OData filter as-is::

            recent = client.query.entities("Orders", filter="Timestamp ge datetime'2024-01-01T00:00:00Z'")

        Take the first 100 and resume later::

            pages = list(client.query.pages("Orders", first=100))
            resume = pages[-1].cursor
            more = list(client.query.entities("Orders", first=100, cursor=resume))

        Fluent builder::

            for order in client.query.builder("Orders").filter_eq("Status", "open").execute():
                print(order.row_key)
    """

    def __init__(self, client: "TableServiceClient") -> None:
        """
        Initialize QueryOperations.

        :param client: Parent TableServiceClient instance.
        :type client: TableServiceClient
        """
        self._client = client

    def page(
        self,
        table: str,
        *,
        where: Optional[Clauses] = None,
        filter: Optional[str] = None,
        join: str = "and",
        select: Optional[Sequence[str]] = None,
        sort: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
        cursor: Optional[Cursor] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> QueryPage:
        """
        Fetch a single page of matching entities.

        :param table: Table name.
        :type table: str
        :param where: One predicate clause or a list of clauses.
        :type where: str | list[str] | None
        :param filter: Raw ``$filter`` expression, sent without compilation. Cannot be combined with ``where``.
        :type filter: str | None
        :param join: How multiple clauses combine: ``"and"`` or ``"or"``.
        :type join: str
        :param select: Field names to project.
        :type select: list[str] | None
        :param sort: Field names sent as ``$OrderBy``.
        :type sort: list[str] | None
        :param batch_size: Entities requested per page (``$top``). Defaults to the configured batch size.
        :type batch_size: int | None
        :param cursor: Cursor from a previous page to continue from.
        :type cursor: ~AzureStorage.Tables.models.cursor.Cursor | None
        :param exclude_table_info: Omit system columns from the records.
        :type exclude_table_info: bool | None
        :return: The page; its ``cursor`` is None when no more data exists.
        :rtype: ~AzureStorage.Tables.core.results.QueryPage
        :raises ~AzureStorage.Tables.core.errors.CompileError: If a clause is outside the predicate grammar.
        :raises ValueError: If both ``where`` and ``filter`` are given.
        """
        op = self._operation(table, where, filter, join, select, sort, batch_size, cursor)
        with self._client._scoped_tables() as tc:
            return tc._query_page(op, include_table_info=self._client._include_table_info(exclude_table_info))

    def pages(
        self,
        table: str,
        *,
        where: Optional[Clauses] = None,
        filter: Optional[str] = None,
        join: str = "and",
        select: Optional[Sequence[str]] = None,
        sort: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
        first: Optional[int] = None,
        cursor: Optional[Cursor] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Iterator[QueryPage]:
        """
        Iterate over pages, following continuation until the query is exhausted.

        With ``first`` no further page is requested once ``first`` entities
        have been produced. Each request asks for at most the number of
        entities still wanted, so the last page's ``cursor`` resumes exactly
        after the last entity returned.

        :param first: Maximum number of entities across all pages.
        :type first: int | None
        :return: Generator of pages. Other parameters are as for :meth:`page`.
        :rtype: Iterator[~AzureStorage.Tables.core.results.QueryPage]
        """
        if first is not None and first < 1:
            raise ValueError("first must be at least 1")
        size = batch_size or self._client._config.default_batch_size
        produced = 0
        while True:
            top = size if first is None else min(size, first - produced)
            page = self.page(
                table,
                where=where,
                filter=filter,
                join=join,
                select=select,
                sort=sort,
                batch_size=top,
                cursor=cursor,
                exclude_table_info=exclude_table_info,
            )
            produced += len(page)
            cursor = page.cursor
            yield page
            if cursor is None:
                return
            if first is not None and produced >= first:
                logger.debug("stopping after %d of %d entities; query can resume", produced, first)
                return

    def entities(
        self,
        table: str,
        *,
        where: Optional[Clauses] = None,
        filter: Optional[str] = None,
        join: str = "and",
        select: Optional[Sequence[str]] = None,
        sort: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
        first: Optional[int] = None,
        cursor: Optional[Cursor] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Iterator[Record]:
        """
        Iterate over matching entities across all pages.

        Parameters are as for :meth:`pages`.

        :rtype: Iterator[~AzureStorage.Tables.models.record.Record]
        """
        for page in self.pages(
            table,
            where=where,
            filter=filter,
            join=join,
            select=select,
            sort=sort,
            batch_size=batch_size,
            first=first,
            cursor=cursor,
            exclude_table_info=exclude_table_info,
        ):
            yield from page

    def builder(self, table: str) -> QueryBuilder:
        """
        Start a fluent query bound to this client.

        :param table: Table name.
        :type table: str
        :rtype: ~AzureStorage.Tables.models.query_builder.QueryBuilder
        """
        qb = QueryBuilder(table)
        qb._query_ops = self
        return qb

    def _operation(
        self,
        table: str,
        where: Optional[Clauses],
        filter: Optional[str],
        join: str,
        select: Optional[Sequence[str]],
        sort: Optional[Sequence[str]],
        batch_size: Optional[int],
        cursor: Optional[Cursor],
    ) -> Operation:
        if where and filter is not None:
            raise ValueError("where and filter are mutually exclusive")
        if isinstance(where, str):
            clauses = (where,)
        else:
            clauses = tuple(where or ())
        return Operation(
            OperationVerb.QUERY,
            table,
            predicate=clauses,
            filter=filter,
            join=join,
            select=tuple(select or ()),
            sort=tuple(sort or ()),
            top=batch_size or self._client._config.default_batch_size,
            cursor=cursor,
        )


__all__ = ["QueryOperations"]
