# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Shared pytest fixtures and configuration for table service SDK tests.

This module provides common test fixtures, including an in-memory fake of the
table service that can be plugged in as the HTTP session of a client.
"""

import base64
import re
import xml.etree.ElementTree as ET
from types import SimpleNamespace
from urllib.parse import parse_qsl, unquote, urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from azure.core.credentials import AzureNamedKeyCredential

from AzureStorage.Tables.client import TableServiceClient
from AzureStorage.Tables.core.config import TableServiceConfig

ACCOUNT = "devaccount"
ACCOUNT_KEY = base64.b64encode(b"not-a-real-account-key-0123456789").decode("ascii")
FIXED_TIMESTAMP = "2024-05-01T10:20:30.1234567Z"

NS = {
    "a": "http://www.w3.org/2005/Atom",
    "d": "http://schemas.microsoft.com/ado/2007/08/dataservices",
    "m": "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata",
}


def make_response(status, body=b"", headers=None):
    """Build a real requests.Response with the given status, body and headers."""
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = "utf-8"
    return response


def _props_xml(fields):
    parts = []
    for name, value in fields.items():
        if value is None:
            parts.append(f'<d:{name} m:null="true" />')
        elif name == "Timestamp":
            parts.append(f'<d:{name} m:type="Edm.DateTime">{value}</d:{name}>')
        else:
            escaped = str(value).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
            parts.append(f"<d:{name}>{escaped}</d:{name}>")
    return "".join(parts)


def atom_entry(fields, *, entry_id="", root=True):
    ns = (
        ' xmlns="http://www.w3.org/2005/Atom"'
        ' xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices"'
        ' xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"'
        if root
        else ""
    )
    return (
        f"<entry{ns}><id>{entry_id}</id><title type=\"text\" />"
        f"<updated>{FIXED_TIMESTAMP}</updated><author><name /></author>"
        f'<content type="application/xml"><m:properties>{_props_xml(fields)}</m:properties></content></entry>'
    )


def atom_feed(entries):
    body = "".join(atom_entry(f, entry_id=i, root=False) for i, f in entries)
    return (
        '<?xml version="1.0" encoding="utf-8" standalone="yes"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"'
        ' xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices"'
        ' xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">'
        f"<title type=\"text\">feed</title>{body}</feed>"
    )


_CLAUSE_RE = re.compile(r"^\(?(\w+) (eq|ne|gt|ge|lt|le) '((?:[^']|'')*)'\)?$")
_OPS = {
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
    "gt": lambda a, b: a > b,
    "ge": lambda a, b: a >= b,
    "lt": lambda a, b: a < b,
    "le": lambda a, b: a <= b,
}


class FakeTableService:
    """
    In-memory stand-in for the table service, used as a requests session.

    Supports table create/list/delete and entity insert/get/update/merge/delete
    and paged queries with ``$top``, ``$filter`` (``and``-joined comparisons)
    and partition/row continuation. Every request is recorded in ``requests``.
    Status codes or exceptions queued in ``fail_next`` are returned or raised
    before normal handling. Set ``table_page_size`` to page table listings.
    """

    def __init__(self, account=ACCOUNT):
        self.account = account
        self.tables = {}
        self.requests = []
        self.fail_next = []
        self.table_page_size = None
        self.closed = False

    # requests.Session interface
    def request(self, method, url, headers=None, data=None, timeout=None, **kwargs):
        headers = dict(headers or {})
        self.requests.append(SimpleNamespace(method=method, url=url, headers=headers, body=data, timeout=timeout))
        if self.fail_next:
            failure = self.fail_next.pop(0)
            if isinstance(failure, BaseException):
                raise failure
            return make_response(failure, headers={"x-ms-error-code": "Injected"})
        assert headers["Authorization"].startswith(f"SharedKey {self.account}:")
        parts = urlsplit(url)
        path = unquote(parts.path).lstrip("/")
        query = dict(parse_qsl(parts.query, keep_blank_values=True))
        return self._route(method.upper(), path, query, data)

    def close(self):
        self.closed = True

    def _route(self, method, path, query, body):
        if path == "Tables":
            if method == "POST":
                return self._create_table(body)
            if method == "GET":
                return self._list_tables(query)
        m = re.fullmatch(r"Tables\('(.*)'\)", path)
        if m:
            name = m.group(1).replace("''", "'")
            if self.tables.pop(name, None) is None:
                return make_response(404)
            return make_response(204)
        m = re.fullmatch(r"(\w+)\(\)", path)
        if m and method == "GET":
            return self._query(m.group(1), query)
        m = re.fullmatch(r"(\w+)\(PartitionKey='((?:[^']|'')*)',RowKey='((?:[^']|'')*)'\)", path)
        if m:
            key = (m.group(2).replace("''", "'"), m.group(3).replace("''", "'"))
            return self._entity(method, m.group(1), key, body)
        m = re.fullmatch(r"(\w+)", path)
        if m and method == "POST":
            return self._insert(m.group(1), body)
        return make_response(400)

    @staticmethod
    def _properties(body):
        root = ET.fromstring(body)
        props = root.find("a:content/m:properties", NS)
        out = {}
        for child in props:
            name = child.tag.rsplit("}", 1)[-1]
            out[name] = None if child.get(f"{{{NS['m']}}}null") == "true" else (child.text or "")
        return out

    def _create_table(self, body):
        name = self._properties(body)["TableName"]
        if name in self.tables:
            return make_response(409, headers={"x-ms-error-code": "TableAlreadyExists"})
        self.tables[name] = {}
        entry = atom_entry({"TableName": name}, entry_id=f"https://{self.account}.table.core.windows.net/Tables('{name}')")
        return make_response(201, entry)

    def _list_tables(self, query):
        names = sorted(self.tables)
        start = query.get("NextTableName")
        if start:
            names = [n for n in names if n >= start]
        top = int(query.get("$top", self.table_page_size or len(names) or 1))
        page, rest = names[:top], names[top:]
        headers = {"x-ms-continuation-NextTableName": rest[0]} if rest else {}
        feed = atom_feed([(f"Tables('{n}')", {"TableName": n}) for n in page])
        return make_response(200, feed, headers)

    def _row(self, table, key, fields):
        row = {"PartitionKey": key[0], "RowKey": key[1], "Timestamp": FIXED_TIMESTAMP}
        row.update(fields)
        return row

    def _insert(self, table, body):
        if table not in self.tables:
            return make_response(404, headers={"x-ms-error-code": "TableNotFound"})
        props = self._properties(body)
        key = (props.pop("PartitionKey"), props.pop("RowKey"))
        if key in self.tables[table]:
            return make_response(409, headers={"x-ms-error-code": "EntityAlreadyExists"})
        self.tables[table][key] = props
        return make_response(201, atom_entry(self._row(table, key, props)))

    def _entity(self, method, table, key, body):
        rows = self.tables.get(table)
        if rows is None or key not in rows:
            return make_response(404, headers={"x-ms-error-code": "ResourceNotFound"})
        if method == "GET":
            return make_response(200, atom_entry(self._row(table, key, rows[key])))
        if method == "DELETE":
            del rows[key]
            return make_response(204)
        props = self._properties(body)
        props.pop("PartitionKey", None)
        props.pop("RowKey", None)
        if method == "MERGE":
            rows[key].update(props)
        else:
            rows[key] = props
        return make_response(204)

    def _matches(self, row, expression):
        for clause in expression.split(") and ("):
            m = _CLAUSE_RE.match(clause.strip())
            assert m, f"fake service cannot evaluate {clause!r}"
            field, op, literal = m.group(1), m.group(2), m.group(3).replace("''", "'")
            if field not in row or not _OPS[op](str(row[field]), literal):
                return False
        return True

    def _query(self, table, query):
        rows = self.tables.get(table)
        if rows is None:
            return make_response(404, headers={"x-ms-error-code": "TableNotFound"})
        keys = sorted(rows)
        if "NextPartitionKey" in query:
            start = (query["NextPartitionKey"], query.get("NextRowKey", ""))
            keys = [k for k in keys if k >= start]
        flt = query.get("$filter")
        matched = [k for k in keys if not flt or self._matches(self._row(table, k, rows[k]), flt)]
        top = int(query.get("$top", 1000))
        page, rest = matched[:top], matched[top:]
        headers = {}
        if rest:
            headers = {
                "x-ms-continuation-NextPartitionKey": rest[0][0],
                "x-ms-continuation-NextRowKey": rest[0][1],
            }
        select = [s for s in query.get("$select", "").split(",") if s]
        entries = []
        for k in page:
            row = self._row(table, k, rows[k])
            if select:
                row = {f: v for f, v in row.items() if f in select or f in ("PartitionKey", "RowKey", "Timestamp")}
            entries.append((f"{table}(PartitionKey='{k[0]}',RowKey='{k[1]}')", row))
        return make_response(200, atom_feed(entries), headers)


@pytest.fixture
def credential():
    """Named key credential for the fake account."""
    return AzureNamedKeyCredential(ACCOUNT, ACCOUNT_KEY)


@pytest.fixture
def test_config():
    """Test configuration with no pause between retries."""
    return TableServiceConfig(http_retries=3, http_pause=0.0, http_timeout=5)


@pytest.fixture
def fake_service():
    """A fresh in-memory table service."""
    return FakeTableService()


@pytest.fixture
def client(credential, test_config, fake_service):
    """TableServiceClient whose HTTP session is the fake service."""
    c = TableServiceClient(credential, test_config)
    c._session = fake_service
    yield c
    c.close()
