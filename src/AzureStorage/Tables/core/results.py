# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Result types for table service operations.

- :class:`RequestMetadata`: HTTP response metadata for diagnostics.
- :class:`QueryPage`: One page of query results together with the cursor
  needed to resume the query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, List, Optional

if TYPE_CHECKING:
    from ..models.cursor import Cursor
    from ..models.record import Record


@dataclass(frozen=True)
class RequestMetadata:
    """
    Metadata captured from the HTTP response that produced a result.

    :param http_status_code: Status code of the final successful attempt.
    :type http_status_code: :class:`int` | None
    :param request_id: Server-returned ``x-ms-request-id`` (if available).
    :type request_id: :class:`str` | None
    :param attempts: Number of attempts made, including the successful one.
    :type attempts: :class:`int`
    """

    http_status_code: Optional[int] = None
    request_id: Optional[str] = None
    attempts: int = 1


@dataclass(frozen=True)
class QueryPage:
    """
    A page of decoded records plus the continuation cursor.

    ``cursor`` is ``None`` once the service reports no more data; otherwise it
    must be passed back verbatim to continue the query.

    Example::

        page = client.query_entities("Orders", batch_size=100)
        while True:
            for record in page:
                print(record["Amount"])
            if page.cursor is None:
                break
            page = client.query_entities("Orders", batch_size=100, cursor=page.cursor)
    """

    records: List["Record"] = field(default_factory=list)
    cursor: Optional["Cursor"] = None
    metadata: RequestMetadata = field(default_factory=RequestMetadata)

    @property
    def exhausted(self) -> bool:
        return self.cursor is None

    def __iter__(self) -> Iterator["Record"]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> "Record":
        return self.records[index]


__all__ = ["RequestMetadata", "QueryPage"]
