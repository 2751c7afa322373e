# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Low-level table service client: request assembly, signing and the REST operations.

Every public method of :class:`_TableServiceClient` consumes one
:class:`~AzureStorage.Tables.models.operation.Operation`, rebuilds and
re-signs its request on every attempt and runs the attempts through
:class:`~AzureStorage.Tables.core._http.RetryExecutor`. Expected rejections
(conflict, not found, precondition failed) are converted to sentinels inside
the retried callable so they are never retried.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Any, Callable, Collection, List, Mapping, Optional, Tuple, TypeVar
from urllib.parse import quote, urlencode

import requests

from ..common.constants import (
    ATOM_ACCEPT,
    ATOM_CONTENT_TYPE,
    DATA_SERVICE_VERSION,
    DEFAULT_API_VERSION,
    PARAM_FILTER,
    PARAM_ORDER_BY,
    PARAM_SELECT,
    PARAM_TOP,
    PARTITION_KEY,
    ROW_KEY,
    SYSTEM_COLUMNS,
    TABLE_NAME,
)
from ..core._auth import (
    SharedKeySigner,
    SigningContext,
    SigningProfile,
    canonicalize_headers,
    canonicalize_resource,
)
from ..core._http import RetryExecutor, _HttpClient
from ..core.config import TableServiceConfig
from ..core.errors import HttpError
from ..core.results import QueryPage, RequestMetadata
from ..models.cursor import Cursor, PaginationCursor
from ..models.filters import compile_filter
from ..models.operation import Operation
from ..models.record import Record
from ..models.table_info import TableDescriptor
from ._atom import decode_entities, decode_tables, encode_entity, encode_table, entity_path

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Characters left unescaped in resource paths and query strings
_PATH_SAFE = "/()',=$"
_QUERY_SAFE = "$',()"


@dataclass(frozen=True)
class PreparedTableRequest:
    """
    A fully assembled and signed request.

    :param method: HTTP verb.
    :param url: Absolute URL including the query string, exactly as signed.
    :param headers: Header pairs in the order they were added; ``Authorization`` is last.
    :param body: UTF-8 encoded body, or None.
    """

    method: str
    url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[bytes] = None

    def header(self, name: str) -> Optional[str]:
        lname = name.lower()
        for key, value in self.headers:
            if key.lower() == lname:
                return value
        return None


class RequestBuilder:
    """
    Assemble and sign table service requests.

    Headers are added in a fixed order: ``x-ms-date``, ``x-ms-version``,
    ``Content-Type`` and, for table data, the data service version headers;
    then caller headers, ``Accept-Charset`` when there is a body,
    ``Content-Length`` and finally ``Authorization``, computed over
    everything before it.

    :param signer: Signer for the target account.
    :type signer: ~AzureStorage.Tables.core._auth.SharedKeySigner
    :param endpoint: Service root with a trailing slash.
    :type endpoint: str
    :param api_version: Value of ``x-ms-version``.
    :type api_version: str
    :param clock: Returns seconds since the epoch; used for ``x-ms-date``.
    :type clock: callable or None
    """

    def __init__(
        self,
        signer: SharedKeySigner,
        endpoint: str,
        api_version: str = DEFAULT_API_VERSION,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.signer = signer
        self.endpoint = endpoint if endpoint.endswith("/") else endpoint + "/"
        self.api_version = api_version
        self._clock = clock or time.time

    def url(self, resource: str, params: Optional[Mapping[str, Any]] = None) -> str:
        url = self.endpoint + quote(resource, safe=_PATH_SAFE)
        if params:
            url += "?" + urlencode(list(params.items()), quote_via=quote, safe=_QUERY_SAFE)
        return url

    def build(
        self,
        method: str,
        resource: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        if_match: Optional[str] = None,
        md5: Optional[str] = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        profile: SigningProfile = SigningProfile.ENTITY,
    ) -> PreparedTableRequest:
        """
        Build a signed request.

        :param method: HTTP verb (GET, POST, PUT, MERGE, DELETE).
        :param resource: Path relative to the service root, e.g. ``"Tables"`` or ``"Orders()"``.
        :param body: Request body text.
        :param headers: Extra headers added after the standard ones.
        :param if_match: Value of ``If-Match``.
        :param md5: Value of ``Content-MD5``.
        :param params: Query parameters, in order.
        :param profile: Signing profile: TABLE for table create/list/delete, ENTITY otherwise.
        :rtype: PreparedTableRequest
        """
        verb = method.upper()
        url = self.url(resource, params)
        data = body.encode("utf-8") if body is not None else None
        date = formatdate(self._clock(), usegmt=True)

        pairs: List[Tuple[str, str]] = [
            ("x-ms-date", date),
            ("x-ms-version", self.api_version),
            ("Content-Type", ATOM_CONTENT_TYPE),
        ]
        if profile is SigningProfile.ENTITY:
            pairs.append(("DataServiceVersion", DATA_SERVICE_VERSION))
            pairs.append(("MaxDataServiceVersion", DATA_SERVICE_VERSION))
        for name, value in (headers or {}).items():
            pairs.append((name, value))
        if if_match:
            pairs.append(("If-Match", if_match))
        if md5:
            pairs.append(("Content-MD5", md5))
        if data is not None:
            pairs.append(("Accept-Charset", "UTF-8"))
        content_length = len(data) if data is not None else 0
        pairs.append(("Content-Length", str(content_length)))

        ctx = SigningContext(
            account=self.signer.account,
            verb=verb,
            date=date,
            canonical_resource=canonicalize_resource(url, self.signer.account, profile),
            canonical_headers=canonicalize_headers(pairs),
            profile=profile,
            content_type=ATOM_CONTENT_TYPE,
            content_length=content_length,
            if_match=if_match or "",
            content_md5=md5 or "",
        )
        pairs.append(("Authorization", self.signer.sign(ctx)))
        return PreparedTableRequest(method=verb, url=url, headers=pairs, body=data)


class _TableServiceClient:
    """
    Table service client implementing the REST operations.

    :param signer: Signer for the account.
    :type signer: ~AzureStorage.Tables.core._auth.SharedKeySigner
    :param config: Endpoint, retry and timeout configuration.
    :type config: ~AzureStorage.Tables.core.config.TableServiceConfig | None
    :param session: Optional ``requests.Session`` shared across calls.
    :type session: :class:`requests.Session` | None
    """

    def __init__(
        self,
        signer: SharedKeySigner,
        config: Optional[TableServiceConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or TableServiceConfig.from_env()
        self.signer = signer
        self.endpoint = self.config.endpoint(signer.account)
        self._builder = RequestBuilder(signer, self.endpoint, self.config.api_version)
        self._http = _HttpClient(timeout=self.config.http_timeout, session=session)
        self._retry = RetryExecutor(retries=self.config.http_retries, pause=self.config.http_pause)

    def close(self) -> None:
        self._http.close()

    # --------------------------------------------------------------- plumbing

    def _send(self, prepared: PreparedTableRequest, operation: str) -> requests.Response:
        return self._http._request(
            prepared.method,
            prepared.url,
            operation=operation,
            headers=dict(prepared.headers),
            data=prepared.body,
        )

    def _run(
        self,
        operation: str,
        build: Callable[[], PreparedTableRequest],
        on_success: Callable[[requests.Response], T],
        sentinels: Collection[int] = (),
        sentinel: Any = None,
    ) -> Tuple[Any, RequestMetadata]:
        """
        Build, send and decode one request under the retry policy.

        A status listed in ``sentinels`` returns ``sentinel`` instead of raising.
        """
        attempts = 0

        def attempt() -> Tuple[Any, RequestMetadata]:
            nonlocal attempts
            attempts += 1
            try:
                response = self._send(build(), operation)
            except HttpError as ex:
                if ex.status_code in sentinels:
                    logger.debug("%s: HTTP %s treated as %r", operation, ex.status_code, sentinel)
                    return sentinel, RequestMetadata(ex.status_code, ex.details.get("request_id"), attempts)
                raise
            meta = RequestMetadata(response.status_code, response.headers.get("x-ms-request-id"), attempts)
            return on_success(response), meta

        return self._retry.run(attempt, description=operation)

    @staticmethod
    def _table_resource(name: str) -> str:
        return "Tables('{}')".format(name.replace("'", "''"))

    def _entity_headers(self) -> dict:
        return {"Accept": ATOM_ACCEPT}

    # ----------------------------------------------------------------- tables

    def _create_table(self, op: Operation) -> Optional[TableDescriptor]:
        """
        POST ``Tables``. Returns the new table, or None if it already exists (409).
        """
        body = encode_table(op.table, author=op.author, email=op.email)

        def build() -> PreparedTableRequest:
            return self._builder.build("POST", "Tables", body, profile=SigningProfile.TABLE)

        def decode(response: requests.Response) -> TableDescriptor:
            tables = decode_tables(response.content)
            return tables[0] if tables else TableDescriptor(name=op.table)

        result, _ = self._run("create_table", build, decode, sentinels=(409,))
        return result

    def _list_tables_page(self, op: Operation) -> Tuple[List[TableDescriptor], Optional[Cursor]]:
        """
        GET one page of ``Tables``. A 404 yields an empty, exhausted page.
        """
        pager = PaginationCursor(op.cursor)
        params = {}
        if op.top is not None:
            params[PARAM_TOP] = str(op.top)
        params.update(pager.query_params())

        def build() -> PreparedTableRequest:
            return self._builder.build("GET", "Tables", params=params, profile=SigningProfile.TABLE)

        def decode(response: requests.Response) -> Tuple[List[TableDescriptor], Optional[Cursor]]:
            return decode_tables(response.content), pager.advance(response.headers)

        result, _ = self._run("list_tables", build, decode, sentinels=(404,), sentinel=([], None))
        return result

    def _delete_table(self, op: Operation) -> bool:
        """
        DELETE ``Tables('name')``. False when the table is missing or conflicts (404, 409).
        """
        resource = self._table_resource(op.table)

        def build() -> PreparedTableRequest:
            return self._builder.build("DELETE", resource, profile=SigningProfile.TABLE)

        result, _ = self._run("delete_table", build, lambda r: True, sentinels=(404, 409), sentinel=False)
        return result

    # --------------------------------------------------------------- entities

    def _get_entity(self, op: Operation, *, include_table_info: bool = True) -> Optional[Record]:
        """
        GET one entity. None when it does not exist (404).
        """
        resource = entity_path(op.table, op.partition_key, op.row_key)
        params = {PARAM_SELECT: ",".join(op.select)} if op.select else None

        def build() -> PreparedTableRequest:
            return self._builder.build("GET", resource, headers=self._entity_headers(), params=params)

        def decode(response: requests.Response) -> Optional[Record]:
            records = decode_entities(response.content, include_table_info=include_table_info, table=op.table)
            return records[0] if records else None

        result, _ = self._run("get_entity", build, decode, sentinels=(404,))
        return result

    def _query_params(self, op: Operation, pager: PaginationCursor) -> dict:
        params = {}
        if op.sort:
            params[PARAM_ORDER_BY] = ",".join(op.sort)
        if op.filter:
            params[PARAM_FILTER] = op.filter
        elif op.predicate:
            params[PARAM_FILTER] = compile_filter(list(op.predicate), op.join)
        if op.select:
            params[PARAM_SELECT] = ",".join(op.select)
        if op.top is not None:
            params[PARAM_TOP] = str(op.top)
        params.update(pager.query_params())
        return params

    def _query_page(self, op: Operation, *, include_table_info: bool = True) -> QueryPage:
        """
        GET one page of ``Table()`` matching ``op``.

        The predicate is compiled before any network use; a raw ``op.filter``
        is sent unchanged. The returned page's
        cursor is None once the service sends no continuation headers.

        :raises ~AzureStorage.Tables.core.errors.CompileError: If the predicate is invalid.
        """
        pager = PaginationCursor(op.cursor)
        params = self._query_params(op, pager)
        resource = f"{op.table}()"

        def build() -> PreparedTableRequest:
            return self._builder.build("GET", resource, headers=self._entity_headers(), params=params)

        def decode(response: requests.Response) -> Tuple[List[Record], Optional[Cursor]]:
            records = decode_entities(response.content, include_table_info=include_table_info, table=op.table)
            return records, pager.advance(response.headers)

        (records, cursor), meta = self._run("query_entities", build, decode)
        return QueryPage(records=records, cursor=cursor, metadata=meta)

    def _insert_entity(self, op: Operation, record: Record, *, include_table_info: bool = True) -> Optional[Record]:
        """
        POST a new entity. Returns the stored entity, or None if the key exists (409).
        """
        body = encode_entity(
            record,
            op.partition_key,
            op.row_key,
            author=op.author,
            email=op.email,
        )

        def build() -> PreparedTableRequest:
            return self._builder.build("POST", op.table, body, headers=self._entity_headers())

        def decode(response: requests.Response) -> Record:
            records = decode_entities(response.content, include_table_info=include_table_info, table=op.table)
            if records:
                return records[0]
            return _echo(record, op, include_table_info)

        result, _ = self._run("insert_entity", build, decode, sentinels=(409,))
        return result

    def _update_entity(
        self, op: Operation, record: Record, *, merge: bool = False, include_table_info: bool = True
    ) -> Optional[Record]:
        """
        PUT (replace) or MERGE an existing entity unconditionally.

        Returns the record as sent, or None when the entity does not exist (404, 412).
        """
        body = encode_entity(
            record,
            op.partition_key,
            op.row_key,
            account=self.signer.account,
            table=op.table,
            update=True,
            author=op.author,
            email=op.email,
            endpoint=self.endpoint,
        )
        resource = entity_path(op.table, op.partition_key, op.row_key)
        method = "MERGE" if merge else "PUT"

        def build() -> PreparedTableRequest:
            return self._builder.build(method, resource, body, headers=self._entity_headers(), if_match="*")

        name = "merge_entity" if merge else "update_entity"
        result, _ = self._run(name, build, lambda r: _echo(record, op, include_table_info), sentinels=(404, 412))
        return result

    def _delete_entity(self, op: Operation) -> bool:
        """
        DELETE one entity unconditionally. False on 404, 409 or 412.
        """
        resource = entity_path(op.table, op.partition_key, op.row_key)

        def build() -> PreparedTableRequest:
            return self._builder.build("DELETE", resource, headers=self._entity_headers(), if_match="*")

        result, _ = self._run("delete_entity", build, lambda r: True, sentinels=(404, 409, 412), sentinel=False)
        return result


def _echo(record: Record, op: Operation, include_table_info: bool) -> Record:
    """The written record as the caller would read it back, without a Timestamp."""
    out = Record(type_names=record.type_names)
    if include_table_info:
        out[PARTITION_KEY] = op.partition_key
        out[ROW_KEY] = op.row_key
    for key, value in record.items():
        if key not in SYSTEM_COLUMNS:
            out[key] = value
    if include_table_info:
        out[TABLE_NAME] = op.table
    return out


__all__ = ["PreparedTableRequest", "RequestBuilder"]
