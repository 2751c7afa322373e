# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Table create, list and delete operations namespace."""

from __future__ import annotations

import fnmatch
from typing import List, Optional, Union, TYPE_CHECKING

from ..models.cursor import Cursor
from ..models.operation import Operation, OperationVerb
from ..models.table_info import TableDescriptor

if TYPE_CHECKING:
    from ..client import TableServiceClient


class TableOperations:
    """
    Table-level operations.

    Accessed via ``client.tables``. These requests use the table signing
    profile.

    Example::

        client.tables.create("Orders")
        for table in client.tables.list("Ord*"):
            print(table.name)
        client.tables.delete("Orders")
    """

    def __init__(self, client: "TableServiceClient") -> None:
        """
        Initialize TableOperations.

        :param client: Parent TableServiceClient instance.
        :type client: TableServiceClient
        """
        self._client = client

    def create(
        self, table: str, *, author: Optional[str] = None, email: Optional[str] = None
    ) -> Union[TableDescriptor, bool]:
        """
        Create a table.

        :param table: Table name.
        :type table: str
        :param author: Author name recorded in the request body.
        :type author: str | None
        :param email: Author email recorded in the request body.
        :type email: str | None
        :return: The new table, or ``False`` if a table of that name already exists.
        :rtype: ~AzureStorage.Tables.models.table_info.TableDescriptor | bool
        """
        op = Operation(OperationVerb.CREATE, table, author=author, email=email)
        with self._client._scoped_tables() as tc:
            created = tc._create_table(op)
        return created if created is not None else False

    def list(self, name: Optional[str] = None) -> List[TableDescriptor]:
        """
        List the account's tables, following continuation until exhausted.

        :param name: Optional filter. ``*`` and ``?`` are wildcards; without
            them the name must match exactly. Matching ignores case.
        :type name: str | None
        :return: Matching tables; empty when none exist.
        :rtype: list[~AzureStorage.Tables.models.table_info.TableDescriptor]
        """
        out: List[TableDescriptor] = []
        cursor: Optional[Cursor] = None
        with self._client._scoped_tables() as tc:
            while True:
                page, cursor = tc._list_tables_page(Operation(OperationVerb.LIST, "Tables", cursor=cursor))
                out.extend(page)
                if cursor is None:
                    break
        if name is None:
            return out
        return [t for t in out if _name_matches(t.name, name)]

    def delete(self, table: str) -> bool:
        """
        Delete a table.

        :param table: Table name.
        :type table: str
        :return: ``True`` if deleted, ``False`` if the table did not exist or is being deleted.
        :rtype: bool
        """
        with self._client._scoped_tables() as tc:
            return tc._delete_table(Operation(OperationVerb.DELETE, table))


def _name_matches(candidate: str, pattern: str) -> bool:
    if any(c in pattern for c in "*?"):
        return fnmatch.fnmatchcase(candidate.lower(), pattern.lower())
    return candidate.lower() == pattern.lower()


__all__ = ["TableOperations"]
