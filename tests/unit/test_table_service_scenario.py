# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""End-to-end behaviour of TableServiceClient against an in-memory table service."""

import xml.etree.ElementTree as ET

import pytest
import requests

from AzureStorage.Tables.core._error_codes import COMPILE_BAD_OPERATOR
from AzureStorage.Tables.core.errors import CompileError, HttpError
from AzureStorage.Tables.models.record import Record
from AzureStorage.Tables.models.table_info import TableDescriptor

A = "{http://www.w3.org/2005/Atom}"


def _seed(client, table, count, partition="P"):
    client.create_table(table)
    for i in range(count):
        client.insert_entity(table, {"Value": str(i)}, partition_key=partition, row_key=f"{i:03d}")


class TestTables:
    def test_create_twice(self, client):
        created = client.create_table("Orders")
        assert isinstance(created, TableDescriptor)
        assert created.name == "Orders"
        assert client.create_table("Orders") is False

    def test_create_body_carries_author(self, client, fake_service):
        client.create_table("Orders", author="ann", email="ann@contoso.com")
        sent = fake_service.requests[-1]
        root = ET.fromstring(sent.body)
        assert root.findtext(f"{A}author/{A}name") == "ann"
        assert root.findtext(f"{A}author/{A}email") == "ann@contoso.com"

    def test_table_requests_use_table_profile(self, client, fake_service):
        client.create_table("Orders")
        headers = fake_service.requests[-1].headers
        assert "DataServiceVersion" not in headers
        assert headers["Content-Type"] == "application/atom+xml"

    def test_list_empty(self, client):
        assert client.list_tables() == []

    def test_list_with_wildcard(self, client):
        for name in ("Orders", "OrderLines", "Users"):
            client.create_table(name)
        assert sorted(t.name for t in client.list_tables()) == ["OrderLines", "Orders", "Users"]
        assert sorted(t.name for t in client.list_tables("ord*")) == ["OrderLines", "Orders"]
        assert [t.name for t in client.list_tables("USERS")] == ["Users"]
        assert client.list_tables("Missing") == []

    def test_list_follows_continuation(self, client, fake_service):
        for name in ("A1", "B2", "C3"):
            client.create_table(name)
        fake_service.table_page_size = 1
        before = len(fake_service.requests)
        assert [t.name for t in client.tables.list()] == ["A1", "B2", "C3"]
        listed = fake_service.requests[before:]
        assert len(listed) == 3
        assert "NextTableName=B2" in listed[1].url

    def test_delete(self, client):
        client.create_table("Orders")
        assert client.delete_table("Orders") is True
        assert client.delete_table("Orders") is False


class TestEntities:
    def test_orders_lifecycle(self, client):
        client.create_table("Orders")
        stored = client.insert_entity("Orders", {"Amount": "9.99", "Currency": "EUR"}, partition_key="P1", row_key="1")
        assert stored["Amount"] == "9.99"
        assert stored.timestamp.parsed

        fetched = client.get_entity("Orders", "P1", "1")
        assert fetched["Amount"] == "9.99"
        assert fetched["Currency"] == "EUR"
        assert fetched.partition_key == "P1"
        assert fetched.row_key == "1"
        assert fetched.table_name == "Orders"
        assert fetched.timestamp.value.year == 2024

        assert client.delete_entity("Orders", "P1", "1") is True
        assert client.get_entity("Orders", "P1", "1") is None
        assert client.delete_entity("Orders", "P1", "1") is False

    def test_insert_existing_key(self, client):
        client.create_table("Orders")
        assert client.insert_entity("Orders", {"A": "1"}, partition_key="P", row_key="1") is not None
        assert client.insert_entity("Orders", {"A": "2"}, partition_key="P", row_key="1") is None
        assert client.get_entity("Orders", "P", "1")["A"] == "1"

    def test_insert_keys_from_record(self, client):
        client.create_table("Orders")
        client.insert_entity("Orders", Record({"PartitionKey": "P", "RowKey": "7", "A": "x"}))
        assert client.get_entity("Orders", "P", "7")["A"] == "x"

    def test_insert_without_keys(self, client, fake_service):
        with pytest.raises(ValueError):
            client.insert_entity("Orders", {"A": "1"})
        assert fake_service.requests == []

    def test_entity_request_headers(self, client, fake_service):
        client.create_table("Orders")
        client.get_entity("Orders", "P", "1")
        headers = fake_service.requests[-1].headers
        assert headers["Accept"] == "application/atom+xml,application/xml"
        assert headers["DataServiceVersion"] == "2.0;NetFx"
        assert headers["MaxDataServiceVersion"] == "2.0;NetFx"
        assert list(headers)[-1] == "Authorization"

    def test_exclude_table_info(self, client):
        client.create_table("Orders")
        client.insert_entity("Orders", {"A": "1"}, partition_key="P", row_key="1")
        fetched = client.get_entity("Orders", "P", "1", exclude_table_info=True)
        assert fetched.to_dict() == {"A": "1"}

    def test_keys_with_quotes(self, client):
        client.create_table("Orders")
        client.insert_entity("Orders", {"A": "1"}, partition_key="O'Brien", row_key="a b")
        assert client.get_entity("Orders", "O'Brien", "a b")["A"] == "1"

    def test_update_replaces(self, client, fake_service):
        client.create_table("Orders")
        client.insert_entity("Orders", {"A": "1", "B": "2"}, partition_key="P", row_key="1")
        echoed = client.update_or_merge_entity("Orders", "P", "1", {"A": "9"})
        assert echoed.to_dict() == {"PartitionKey": "P", "RowKey": "1", "A": "9", "TableName": "Orders"}
        sent = fake_service.requests[-1]
        assert sent.method == "PUT"
        assert sent.headers["If-Match"] == "*"
        fetched = client.get_entity("Orders", "P", "1", exclude_table_info=True)
        assert fetched.to_dict() == {"A": "9"}

    def test_merge_adds_fields(self, client, fake_service):
        client.create_table("Orders")
        client.insert_entity("Orders", {"A": "1"}, partition_key="P", row_key="1")
        client.records.merge("Orders", "P", "1", {"C": "3"})
        assert fake_service.requests[-1].method == "MERGE"
        fetched = client.get_entity("Orders", "P", "1", exclude_table_info=True)
        assert fetched.to_dict() == {"A": "1", "C": "3"}

    def test_update_missing(self, client):
        client.create_table("Orders")
        assert client.update_or_merge_entity("Orders", "P", "404", {"A": "1"}) is None
        assert client.update_or_merge_entity("Orders", "P", "404", {"A": "1"}, merge=True) is None

    def test_set_many_numbers_rows(self, client):
        client.create_table("Readings")
        results = client.records.set_many(
            "Readings",
            [{"V": "a"}, {"V": "b"}, {"RowKey": "x", "V": "c"}, {"V": "d"}],
            start_at_row=5,
        )
        assert [r.row_key for r in results] == ["5", "6", "x", "7"]
        assert {r.partition_key for r in results} == {"Default"}

    def test_set_single(self, client):
        client.create_table("Readings")
        stored = client.records.set("Readings", {"V": "z"}, start_at_row=100)
        assert (stored.partition_key, stored.row_key) == ("Default", "100")
        assert client.records.set("Readings", {"V": "again"}, start_at_row=100) is None


class TestQueries:
    def test_page_totals_independent_of_batch_size(self, client, fake_service):
        _seed(client, "Orders", 25)
        small = list(client.query.entities("Orders", batch_size=1))
        large = list(client.query.entities("Orders", batch_size=1000))
        assert len(small) == len(large) == 25
        assert [r.row_key for r in small] == [r.row_key for r in large]

    def test_single_page_and_resume(self, client):
        _seed(client, "Orders", 5)
        page = client.query_entities("Orders", batch_size=2)
        assert [r.row_key for r in page] == ["000", "001"]
        assert page.cursor is not None
        assert page.metadata.http_status_code == 200
        rest = client.query_entities("Orders", batch_size=10, cursor=page.cursor)
        assert [r.row_key for r in rest] == ["002", "003", "004"]
        assert rest.cursor is None
        assert rest.exhausted

    def test_first_leaves_exact_residual_cursor(self, client, fake_service):
        _seed(client, "Orders", 25)
        before = len(fake_service.requests)
        pages = list(client.query.pages("Orders", batch_size=4, first=10))
        assert [len(p) for p in pages] == [4, 4, 2]
        assert len(fake_service.requests) - before == 3
        assert "$top=2" in fake_service.requests[-1].url
        taken = [r.row_key for p in pages for r in p]
        resumed = [r.row_key for r in client.query.entities("Orders", batch_size=4, cursor=pages[-1].cursor)]
        assert len(taken) == 10
        assert len(resumed) == 15
        assert set(taken).isdisjoint(resumed)

    def test_first_larger_than_table(self, client):
        _seed(client, "Orders", 3)
        assert len(list(client.query.entities("Orders", first=50))) == 3

    def test_default_batch_size(self, client, fake_service):
        _seed(client, "Orders", 1)
        client.query_entities("Orders")
        assert "top=640" in fake_service.requests[-1].url

    def test_filter(self, client, fake_service):
        client.create_table("Orders")
        client.insert_entity("Orders", {"Currency": "EUR", "Region": "west"}, partition_key="P", row_key="1")
        client.insert_entity("Orders", {"Currency": "EUR", "Region": "east"}, partition_key="P", row_key="2")
        client.insert_entity("Orders", {"Currency": "USD", "Region": "west"}, partition_key="P", row_key="3")
        page = client.query_entities("Orders", where=["$_.Currency -eq 'EUR'", 'Region -eq "west"'])
        assert [r.row_key for r in page] == ["1"]

    def test_raw_filter_sent_unchanged(self, client, fake_service):
        client.create_table("Orders")
        client.insert_entity("Orders", {"Region": "west"}, partition_key="P", row_key="1")
        client.insert_entity("Orders", {"Region": "east"}, partition_key="P", row_key="2")
        page = client.query_entities("Orders", filter="Region eq 'west'")
        assert [r.row_key for r in page] == ["1"]
        assert "$filter=Region%20eq%20'west'" in fake_service.requests[-1].url
        rows = list(client.query.entities("Orders", filter="Region eq 'east'", batch_size=1))
        assert [r.row_key for r in rows] == ["2"]

    def test_where_and_filter_are_exclusive(self, client, fake_service):
        with pytest.raises(ValueError):
            client.query_entities("Orders", where="Region -eq 'west'", filter="Region eq 'west'")
        with pytest.raises(ValueError):
            list(client.query.pages("Orders", where="Region -eq 'west'", filter="Region eq 'west'"))
        assert fake_service.requests == []

    def test_select(self, client):
        client.create_table("Orders")
        client.insert_entity("Orders", {"Amount": "1", "Currency": "EUR"}, partition_key="P", row_key="1")
        record = client.query_entities("Orders", select=["Amount"])[0]
        assert record["Amount"] == "1"
        assert "Currency" not in record

    def test_builder(self, client):
        _seed(client, "Orders", 6)
        rows = list(client.query.builder("Orders").filter_ge("Value", "3").batch_size(2).execute())
        assert [r["Value"] for r in rows] == ["3", "4", "5"]

    def test_compile_error_before_any_request(self, client, fake_service):
        with pytest.raises(CompileError) as info:
            client.query_entities("Orders", where="Name -like 'Con*'")
        assert info.value.subcode == COMPILE_BAD_OPERATOR
        with pytest.raises(CompileError):
            list(client.query.entities("Orders", where='Name -eq "$(whoami)"'))
        assert fake_service.requests == []


class TestRetries:
    def test_transient_statuses_retried(self, client, fake_service):
        client.create_table("Orders")
        client.insert_entity("Orders", {"A": "1"}, partition_key="P", row_key="1")
        before = len(fake_service.requests)
        fake_service.fail_next = [503, 503]
        assert client.get_entity("Orders", "P", "1")["A"] == "1"
        attempts = fake_service.requests[before:]
        assert len(attempts) == 3
        assert all(a.headers["Authorization"].startswith("SharedKey devaccount:") for a in attempts)

    def test_connection_errors_retried(self, client, fake_service):
        fake_service.fail_next = [requests.exceptions.ConnectionError("reset")]
        assert client.create_table("Orders").name == "Orders"
        assert len(fake_service.requests) == 2

    def test_retries_exhausted(self, client, fake_service):
        fake_service.fail_next = [500, 500, 500, 500, 500]
        with pytest.raises(HttpError) as info:
            client.list_tables()
        assert info.value.status_code == 500
        assert len(fake_service.requests) == 4
        assert fake_service.fail_next == [500]

    def test_sentinel_not_retried(self, client, fake_service):
        client.create_table("Orders")
        before = len(fake_service.requests)
        assert client.create_table("Orders") is False
        assert len(fake_service.requests) - before == 1
