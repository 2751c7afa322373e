# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Union

import requests

from azure.core.credentials import AzureNamedKeyCredential

from .core._auth import SharedKeySigner
from .core._error_codes import CONFIG_ACCOUNT_MISSING, CONFIG_KEY_MISSING
from .core.config import TableServiceConfig
from .core.errors import ConfigurationError
from .core.results import QueryPage
from .data._tables import _TableServiceClient
from .models.cursor import Cursor
from .models.record import Record
from .models.table_info import TableDescriptor
from .operations.query import QueryOperations
from .operations.records import RecordOperations
from .operations.tables import TableOperations

logger = logging.getLogger(__name__)


class TableServiceClient:
    """
    High-level client for a storage account's table service.

    Requests are signed with the account's shared key and sent over HTTP with
    Atom/XML payloads. The account key is validated at construction, so a
    malformed key fails before any network call.

    **Context Manager Support (Recommended)**:
        Using the client as a context manager enables connection pooling and
        releases the session on exit::

            with TableServiceClient.from_account("myaccount", key) as client:
                client.create_table("Orders")

    Operations are available in two styles:

    - Namespaces: ``client.tables``, ``client.records`` and ``client.query``.
    - Flat methods: :meth:`create_table`, :meth:`list_tables`, :meth:`get_entity`,
      :meth:`query_entities`, :meth:`insert_entity`, :meth:`update_or_merge_entity`,
      :meth:`delete_entity` and :meth:`delete_table`.

    Expected rejections are returned as sentinels rather than raised: creating
    an existing table returns ``False``, reading a missing entity returns
    ``None``, deleting a missing entity returns ``False``.

    :param credential: Account name and base64 account key.
    :type credential: ~azure.core.credentials.AzureNamedKeyCredential
    :param config: Optional endpoint, retry and timeout settings. If not
        provided, defaults are loaded from
        :meth:`~AzureStorage.Tables.core.config.TableServiceConfig.from_env`.
    :type config: ~AzureStorage.Tables.core.config.TableServiceConfig or None

    :raises ~AzureStorage.Tables.core.errors.ConfigurationError: If the account
        name or key is missing or the key is not valid base64.

    Example::

        from azure.core.credentials import AzureNamedKeyCredential
        from AzureStorage.Tables.client import TableServiceClient

        credential = AzureNamedKeyCredential("myaccount", "<base64 key>")
        with TableServiceClient(credential) as client:
            client.create_table("Orders")
            client.insert_entity("Orders", {"Amount": "9.99"}, partition_key="P1", row_key="1")
            order = client.get_entity("Orders", "P1", "1")
            print(order["Amount"], order.timestamp)
    """

    def __init__(
        self,
        credential: AzureNamedKeyCredential,
        config: Optional[TableServiceConfig] = None,
    ) -> None:
        self._signer = SharedKeySigner(credential)
        self._config = config or TableServiceConfig.from_env()
        self._tables_client: Optional[_TableServiceClient] = None
        self._session: Optional[requests.Session] = None
        self._owns_session: bool = False

        self.records = RecordOperations(self)
        self.query = QueryOperations(self)
        self.tables = TableOperations(self)

    @classmethod
    def from_account(
        cls, account: str, key: str, config: Optional[TableServiceConfig] = None
    ) -> "TableServiceClient":
        """
        Create a client from an account name and base64 account key.

        :param account: Storage account name.
        :type account: str
        :param key: Base64-encoded account key.
        :type key: str
        :param config: Optional configuration.
        :type config: ~AzureStorage.Tables.core.config.TableServiceConfig or None
        :rtype: TableServiceClient
        :raises ~AzureStorage.Tables.core.errors.ConfigurationError: If either value is missing or the key is malformed.
        """
        if not account:
            raise ConfigurationError("A storage account name is required.", subcode=CONFIG_ACCOUNT_MISSING)
        if not key:
            raise ConfigurationError("A storage account key is required.", subcode=CONFIG_KEY_MISSING)
        return cls(AzureNamedKeyCredential(account, key), config)

    @property
    def account(self) -> str:
        return self._signer.account

    def __enter__(self) -> "TableServiceClient":
        """
        Enter the context manager, creating a pooled HTTP session.

        :rtype: TableServiceClient
        """
        if self._session is None:
            self._session = requests.Session()
            self._owns_session = True
            # a client built before entry has no session; rebuild it on next use
            if self._tables_client is not None:
                self._tables_client.close()
                self._tables_client = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """
        Release the HTTP session and the internal client. Safe to call multiple times.
        """
        if self._tables_client is not None:
            self._tables_client.close()
            self._tables_client = None
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None
            self._owns_session = False

    def _get_tables_client(self) -> _TableServiceClient:
        """
        Get or create the internal low-level client.

        Construction is deferred until the first operation. When a session
        exists (from the context manager) it is passed on for connection pooling.

        :rtype: ~AzureStorage.Tables.data._tables._TableServiceClient
        """
        if self._tables_client is None:
            logger.debug("connecting to %s", self._config.endpoint(self._signer.account))
            self._tables_client = _TableServiceClient(self._signer, self._config, session=self._session)
        return self._tables_client

    @contextmanager
    def _scoped_tables(self) -> Iterator[_TableServiceClient]:
        """Yield the low-level client for one operation."""
        yield self._get_tables_client()

    def _include_table_info(self, exclude_table_info: Optional[bool]) -> bool:
        if exclude_table_info is None:
            return self._config.include_table_info
        return not exclude_table_info

    # ------------------------------------------------------------ flat API

    def create_table(
        self, table: str, *, author: Optional[str] = None, email: Optional[str] = None
    ) -> Union[TableDescriptor, bool]:
        """
        Create a table. Returns ``False`` if it already exists.

        See :meth:`~AzureStorage.Tables.operations.tables.TableOperations.create`.
        """
        return self.tables.create(table, author=author, email=email)

    def list_tables(self, name: Optional[str] = None) -> List[TableDescriptor]:
        """
        List tables, optionally filtered by name or wildcard pattern.

        See :meth:`~AzureStorage.Tables.operations.tables.TableOperations.list`.
        """
        return self.tables.list(name)

    def delete_table(self, table: str) -> bool:
        """Delete a table. Returns ``False`` if it did not exist."""
        return self.tables.delete(table)

    def get_entity(
        self,
        table: str,
        partition_key: str,
        row_key: str,
        *,
        select: Optional[Sequence[str]] = None,
        exclude_table_info: Optional[bool] = None,
    ) -> Optional[Record]:
        """Fetch one entity, or None if it does not exist."""
        return self.records.get(table, partition_key, row_key, select=select, exclude_table_info=exclude_table_info)

    def query_entities(
        self,
        table: str,
        where: Optional[Union[str, Sequence[str]]] = None,
        sort: Optional[Sequence[str]] = None,
        select: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
        cursor: Optional[Cursor] = None,
        *,
        filter: Optional[str] = None,
        join: str = "and",
        exclude_table_info: Optional[bool] = None,
    ) -> QueryPage:
        """
        Fetch one page of entities matching ``where``.

        Pass the returned page's ``cursor`` back to fetch the next page; it is
        None once the query is exhausted.

        :param table: Table name.
        :param where: Predicate clause(s) such as ``"$_.Amount -gt 5"``.
        :param sort: Field names sent as ``$OrderBy``.
        :param select: Field names to project.
        :param batch_size: Entities per page. Defaults to the configured batch size.
        :param cursor: Cursor returned by the previous page.
        :param filter: Raw ``$filter`` expression sent as-is, instead of ``where``.
        :param join: ``"and"`` or ``"or"`` between clauses.
        :param exclude_table_info: Omit system columns from the records.
        :rtype: ~AzureStorage.Tables.core.results.QueryPage
        :raises ValueError: If both ``where`` and ``filter`` are given.
        """
        return self.query.page(
            table,
            where=where,
            filter=filter,
            join=join,
            select=select,
            sort=sort,
            batch_size=batch_size,
            cursor=cursor,
            exclude_table_info=exclude_table_info,
        )

    def insert_entity(
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
        """Insert an entity. Returns None if the keys are already taken."""
        return self.records.insert(
            table,
            record,
            partition_key=partition_key,
            row_key=row_key,
            author=author,
            email=email,
            exclude_table_info=exclude_table_info,
        )

    def update_or_merge_entity(
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
        """Replace or merge an existing entity. Returns None if it does not exist."""
        return self.records.update(
            table,
            partition_key,
            row_key,
            record,
            merge=merge,
            author=author,
            email=email,
            exclude_table_info=exclude_table_info,
        )

    def delete_entity(self, table: str, partition_key: str, row_key: str) -> bool:
        """Delete an entity. Returns ``False`` if it did not exist."""
        return self.records.delete(table, partition_key, row_key)


__all__ = ["TableServiceClient"]
