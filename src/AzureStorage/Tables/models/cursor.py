# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Continuation cursors for paged queries.

The service truncates large result sets and returns up to three continuation
headers. A :class:`Cursor` carries those values back to the caller, who passes
it into the next call; :class:`PaginationCursor` is the per-query state
machine that reads the headers and renders the echo parameters.

No continuation state is kept on the client, so independent queries can run
concurrently against one client instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

from ..common.constants import (
    HEADER_NEXT_PARTITION,
    HEADER_NEXT_ROW,
    HEADER_NEXT_TABLE,
    PARAM_NEXT_PARTITION,
    PARAM_NEXT_ROW,
    PARAM_NEXT_TABLE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cursor:
    """
    Opaque continuation token returned by a truncated query.

    Fields originate solely from the previous response's headers. Treat the
    whole value as opaque and pass it back unchanged.

    :param next_table: Value of ``x-ms-continuation-NextTableName``.
    :type next_table: str | None
    :param next_partition: Value of ``x-ms-continuation-NextPartitionKey``.
    :type next_partition: str | None
    :param next_row: Value of ``x-ms-continuation-NextRowKey``.
    :type next_row: str | None
    """

    next_table: Optional[str] = None
    next_partition: Optional[str] = None
    next_row: Optional[str] = None

    @classmethod
    def empty(cls) -> "Cursor":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.next_table or self.next_partition or self.next_row)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "Cursor":
        """Read the three continuation headers independently of each other."""
        return cls(
            next_table=_header(headers, HEADER_NEXT_TABLE),
            next_partition=_header(headers, HEADER_NEXT_PARTITION),
            next_row=_header(headers, HEADER_NEXT_ROW),
        )

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.next_table:
            params[PARAM_NEXT_TABLE] = self.next_table
        if self.next_partition:
            params[PARAM_NEXT_PARTITION] = self.next_partition
        if self.next_row:
            params[PARAM_NEXT_ROW] = self.next_row
        return params


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # plain dicts are case-sensitive
        lname = name.lower()
        for key, v in headers.items():
            if key.lower() == lname:
                value = v
                break
    return value or None


class CursorState(str, Enum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


class PaginationCursor:
    """
    State machine tracking one query's continuation.

    Starts :attr:`CursorState.ACTIVE` with ``start`` (or an empty cursor) and
    moves to :attr:`CursorState.EXHAUSTED` as soon as a response carries no
    continuation headers. Once exhausted, no further page may be requested.

    :param start: Cursor returned by an earlier call, to resume a query.
    :type start: Cursor | None
    """

    def __init__(self, start: Optional[Cursor] = None) -> None:
        self._cursor = start if start is not None else Cursor.empty()
        self._state = CursorState.ACTIVE

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is CursorState.ACTIVE

    @property
    def cursor(self) -> Optional[Cursor]:
        """The cursor to resume from, or None once exhausted."""
        if self._state is CursorState.EXHAUSTED:
            return None
        return self._cursor

    def query_params(self) -> Dict[str, str]:
        """Continuation parameters for the next request."""
        if self._state is CursorState.EXHAUSTED:
            raise RuntimeError("Query is exhausted; no further pages may be requested.")
        return self._cursor.to_query_params()

    def advance(self, headers: Mapping[str, str]) -> Optional[Cursor]:
        """
        Update from a query response's headers.

        :param headers: Response headers of the page just received.
        :return: The new cursor, or None if the query is now exhausted.
        """
        if self._state is CursorState.EXHAUSTED:
            raise RuntimeError("Query is exhausted; no further pages may be requested.")
        nxt = Cursor.from_headers(headers)
        if nxt.is_empty:
            self._state = CursorState.EXHAUSTED
            self._cursor = Cursor.empty()
            logger.debug("query exhausted")
            return None
        self._cursor = nxt
        logger.debug("continuation %s", nxt)
        return nxt


__all__ = ["Cursor", "CursorState", "PaginationCursor"]
