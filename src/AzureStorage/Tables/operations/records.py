# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Entity CRUD operations namespace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from ..common.constants import DEFAULT_PARTITION_KEY, PARTITION_KEY, ROW_KEY
from ..models.operation import Operation, OperationVerb
from ..models.record import Record

if TYPE_CHECKING:
    from ..client import TableServiceClient


@dataclass(frozen=True)
class RowNumberer:
    """
    Hands out sequential row keys.

    Immutable: :meth:`take` returns the key and the numberer to use next.

    :param next_row: The next row number to hand out.
    :type next_row: int
    """

    next_row: int = 0

    def take(self) -> Tuple[str, "RowNumberer"]:
        return str(self.next_row), RowNumberer(self.next_row + 1)


class RecordOperations:
    """
    Entity CRUD operations.

    Accessed via ``client.records``. Entities are addressed by partition key
    and row key.

    Example::

        client.records.insert("Orders", {"Amount": "9.99"}, partition_key="P1", row_key="1")
        order = client.records.get("Orders", "P1", "1")
        client.records.merge("Orders", "P1", "1", {"Status": "paid"})
        client.records.delete("Orders", "P1", "1")

        # Store rows under the "Default" partition, numbered from 0
        client.records.set_many("Readings", [{"Value": "1"}, {"Value": "2"}])
    """

    def __init__(self, client: "TableServiceClient") -> None:
        """
        Initialize RecordOperations.

        :param client: Parent TableServiceClient instance.
        :type client: TableServiceClient
        """
        self._client = client

    def get(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        *,
        select: Optional[Sequence[str]] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Optional[Record]:
        """
        Fetch one entity.

        :param table: Table name.
        :type table: str
        :param partition_key: Partition key.
        :type partition_key: str
        :param row_key: Row key.
        :type row_key: str
        :param select: Optional field names to project.
        :type select: list[str] | None
        :param exclude_table_info: Omit ``PartitionKey``, ``RowKey``, ``Timestamp`` and ``TableName``.
            Defaults to the client configuration.
        :type exclude_table_info: bool | None
        :return: The entity, or None if it does not exist.
        :rtype: ~AzureStorage.Tables.models.record.Record | None
        """
        op = Operation(
            OperationVerb.READ,
            table,
            partition_key=partition_key,
            row_key=row_key,
            select=tuple(select or ()),
        )
        with self._client._scoped_tables() as tc:
            return tc._get_entity(op, include_table_info=self._client._include_table_info(exclude_table_info))

    def insert(
        self,
        table: str,
        record: Any,
        *,
        partition_key: Optional[str] = None,
        row_key: Optional[str] = None,
        author: Optional[str] = None,
        email: Optional[str] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Optional[Record]:
        """
        Insert a new entity.

        Keys not given explicitly are read from the record's ``PartitionKey``
        and ``RowKey`` fields.

        :param table: Table name.
        :type table: str
        :param record: Record or mapping of field name to value.
        :param partition_key: Partition key.
        :type partition_key: str | None
        :param row_key: Row key.
        :type row_key: str | None
        :param author: Author name recorded in the request body.
        :param email: Author email recorded in the request body.
        :param exclude_table_info: Omit system columns from the returned entity.
        :return: The stored entity, or None if an entity with these keys already exists.
        :rtype: ~AzureStorage.Tables.models.record.Record | None
        :raises ValueError: If a key cannot be determined.
        """
        rec = Record.from_mapping(record)
        pk = _key(partition_key, rec, PARTITION_KEY)
        rk = _key(row_key, rec, ROW_KEY)
        if pk is None or rk is None:
            raise ValueError("insert requires a partition key and a row key")
        op = Operation(OperationVerb.CREATE, table, partition_key=pk, row_key=rk, author=author, email=email)
        with self._client._scoped_tables() as tc:
            return tc._insert_entity(op, rec, include_table_info=self._client._include_table_info(exclude_table_info))

    def set(
        self,
        table: str,
        record: Any,
        partition_key: Optional[str] = None,
        row_key: Optional[str] = None,
        start_at_row: int = 0,
        *,
        author: Optional[str] = None,
        email: Optional[str] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Optional[Record]:
        """
        Insert an entity, defaulting its keys.

        The partition key defaults to ``"Default"`` and the row key to
        ``start_at_row``. Use :meth:`set_many` to number several records.

        :return: The stored entity, or None if an entity with these keys already exists.
        :rtype: ~AzureStorage.Tables.models.record.Record | None
        """
        stored, _ = self._set_one(
            table, record, partition_key, row_key, RowNumberer(start_at_row), author, email, exclude_table_info
        )
        return stored

    def set_many(
        self,
        table: str,
        records: Iterable[Any],
        partition_key: Optional[str] = None,
        start_at_row: int = 0,
        *,
        author: Optional[str] = None,
        email: Optional[str] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> List[Optional[Record]]:
        """
        Insert several entities, numbering row keys from ``start_at_row``.

        A record that carries its own ``RowKey`` keeps it and does not consume
        a number.

        :return: One result per input record, None where the key already existed.
        :rtype: list[~AzureStorage.Tables.models.record.Record | None]
        """
        numberer = RowNumberer(start_at_row)
        out: List[Optional[Record]] = []
        for record in records:
            stored, numberer = self._set_one(
                table, record, partition_key, None, numberer, author, email, exclude_table_info
            )
            out.append(stored)
        return out

    def _set_one(
        self,
        table: str,
        record: Any,
        partition_key: Optional[str],
        row_key: Optional[str],
        numberer: RowNumberer,
        author: Optional[str],
        email: Optional[str],
        exclude_table_info: Optional[bool],
    ) -> Tuple[Optional[Record], RowNumberer]:
        rec = Record.from_mapping(record)
        pk = _key(partition_key, rec, PARTITION_KEY) or DEFAULT_PARTITION_KEY
        rk = _key(row_key, rec, ROW_KEY)
        if rk is None:
            rk, numberer = numberer.take()
        stored = self.insert(
            table,
            rec,
            partition_key=pk,
            row_key=rk,
            author=author,
            email=email,
            exclude_table_info=exclude_table_info,
        )
        return stored, numberer

    def update(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        record: Any,
        *,
        merge: bool = False,
        author: Optional[str] = None,
        email: Optional[str] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Optional[Record]:
        """
        Replace (or, with ``merge=True``, merge into) an existing entity.

        Sent with ``If-Match: *``, so the write is unconditional.

        :param table: Table name.
        :param partition_key: Partition key.
        :param row_key: Row key.
        :param record: New field values.
        :param merge: Merge the fields into the stored entity instead of replacing it.
        :type merge: bool
        :return: The record as written, or None if the entity does not exist.
        :rtype: ~AzureStorage.Tables.models.record.Record | None
        """
        rec = Record.from_mapping(record)
        op = Operation(
            OperationVerb.MERGE if merge else OperationVerb.UPDATE,
            table,
            partition_key=partition_key,
            row_key=row_key,
            author=author,
            email=email,
        )
        with self._client._scoped_tables() as tc:
            return tc._update_entity(
                op, rec, merge=merge, include_table_info=self._client._include_table_info(exclude_table_info)
            )

    def merge(self, table: str, partition_key: str, row_key: str, record: Any, **kwargs: Any) -> Optional[Record]:
        """Shorthand for :meth:`update` with ``merge=True``."""
        return self.update(table, partition_key, row_key, record, merge=True, **kwargs)

    def delete(self, table: str, partition_key: str, row_key: str) -> bool:
        """
        Delete an entity unconditionally.

        :return: ``True`` if deleted, ``False`` if it did not exist.
        :rtype: bool
        """
        op = Operation(OperationVerb.DELETE, table, partition_key=partition_key, row_key=row_key)
        with self._client._scoped_tables() as tc:
            return tc._delete_entity(op)


def _key(explicit: Optional[str], record: Record, field: str) -> Optional[str]:
    if explicit is not None:
        return str(explicit)
    value = record.get(field)
    return str(value) if value is not None else None


__all__ = ["RecordOperations", "RowNumberer"]
