# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Description of a single table service request.

An :class:`Operation` is built by the caller (normally by the operation
namespaces) for one call and consumed once by the low-level client. It never
outlives that call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .cursor import Cursor


class OperationVerb(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    MERGE = "merge"
    DELETE = "delete"
    LIST = "list"
    QUERY = "query"


@dataclass(frozen=True)
class Operation:
    """
    One request against a table.

    :param verb: What the request does.
    :type verb: OperationVerb
    :param table: Target table name.
    :type table: str
    :param partition_key: Partition key of the addressed entity, if any.
    :type partition_key: str | None
    :param row_key: Row key of the addressed entity, if any.
    :type row_key: str | None
    :param predicate: Predicate clauses for :func:`~AzureStorage.Tables.models.filters.compile_filter`.
    :type predicate: tuple[str, ...]
    :param filter: Raw ``$filter`` expression sent as-is, instead of ``predicate``.
    :type filter: str | None
    :param join: Boolean join for multiple predicate clauses, ``"and"`` or ``"or"``.
    :type join: str
    :param select: Projection field list sent as ``$select``.
    :type select: tuple[str, ...]
    :param sort: Sort field list sent as ``$OrderBy``.
    :type sort: tuple[str, ...]
    :param top: Requested batch size sent as ``$top``.
    :type top: int | None
    :param cursor: Continuation cursor from a previous page.
    :type cursor: Cursor | None
    :param author: Author name annotated on write bodies.
    :type author: str | None
    :param email: Author email annotated on write bodies.
    :type email: str | None
    """

    verb: OperationVerb
    table: str
    partition_key: Optional[str] = None
    row_key: Optional[str] = None
    predicate: Tuple[str, ...] = ()
    filter: Optional[str] = None
    join: str = "and"
    select: Tuple[str, ...] = ()
    sort: Tuple[str, ...] = ()
    top: Optional[int] = None
    cursor: Optional[Cursor] = None
    author: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.table, str) or not self.table:
            raise ValueError("table name must be a non-empty string")
        if (self.partition_key is None) != (self.row_key is None):
            raise ValueError("partition_key and row_key must be given together")
        if self.predicate and self.filter is not None:
            raise ValueError("predicate and filter are mutually exclusive")
        if self.top is not None and self.top < 1:
            raise ValueError("top must be at least 1")

    @property
    def addresses_entity(self) -> bool:
        return self.partition_key is not None


__all__ = ["Operation", "OperationVerb"]
