# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Table service SDK - Quickstart

Walks through the main operations against a real storage account:
tables, entity CRUD, numbered inserts, filtered and paged queries.

Prerequisites:
- AZURE_STORAGE_ACCOUNT and AZURE_STORAGE_KEY set, or entered when prompted
- Optionally AZURE_TABLES_ENDPOINT_SUFFIX / AZURE_TABLES_SCHEME for other clouds or an emulator

Usage:
    python examples/basic/quickstart.py
"""

import logging
import os
import sys
from pathlib import Path

# Add src to PYTHONPATH for local runs
sys.path.append(str(Path(__file__).resolve().parents[2] / "src"))

from AzureStorage.Tables.client import TableServiceClient
from AzureStorage.Tables.core.errors import CompileError, TableStorageError

TABLE = "QuickstartOrders"


def log_call(call: str) -> None:
    print({"call": call})


def read_setting(name: str, prompt: str) -> str:
    value = os.environ.get(name, "").strip()
    if value:
        return value
    if not sys.stdin.isatty():
        print(f"{name} is not set and no terminal is available; exiting.")
        sys.exit(1)
    return input(prompt).strip()


def main() -> None:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"))

    account = read_setting("AZURE_STORAGE_ACCOUNT", "Storage account name: ")
    key = read_setting("AZURE_STORAGE_KEY", "Storage account key (base64): ")

    try:
        client = TableServiceClient.from_account(account, key)
    except TableStorageError as ex:
        print(f"Configuration problem: {ex.message} ({ex.subcode})")
        sys.exit(1)

    with client:
        print("\nTables:")
        log_call(f"client.create_table({TABLE!r})")
        created = client.create_table(TABLE, author="quickstart")
        print({"created": bool(created)})
        log_call("client.list_tables('Quickstart*')")
        print([t.name for t in client.list_tables("Quickstart*")])

        print("\nEntities:")
        log_call("client.insert_entity(...)")
        stored = client.insert_entity(
            TABLE, {"Amount": "9.99", "Currency": "EUR"}, partition_key="P1", row_key="1"
        )
        print(stored.to_dict() if stored is not None else "row P1/1 already exists")

        log_call("client.records.set_many(...)")
        for record in client.records.set_many(TABLE, [{"Amount": str(n), "Currency": "USD"} for n in range(5)]):
            if record is not None:
                print({"partition": record.partition_key, "row": record.row_key})

        log_call("client.records.merge(...)")
        client.records.merge(TABLE, "P1", "1", {"Status": "paid"})
        order = client.get_entity(TABLE, "P1", "1")
        print({"Amount": order["Amount"], "Status": order.get("Status"), "Timestamp": str(order.timestamp)})

        print("\nQueries:")
        log_call("client.query.entities(where=\"$_.Currency -eq 'USD'\", batch_size=2)")
        for record in client.query.entities(TABLE, where="$_.Currency -eq 'USD'", batch_size=2):
            print({"row": record.row_key, "Amount": record["Amount"]})

        log_call("client.query_entities(filter=\"Currency eq 'EUR'\")")
        print([r.row_key for r in client.query_entities(TABLE, filter="Currency eq 'EUR'")])

        log_call("client.query.pages(first=3)")
        pages = list(client.query.pages(TABLE, batch_size=2, first=3))
        print({"pages": len(pages), "resume_cursor": pages[-1].cursor})

        try:
            client.query_entities(TABLE, where="Currency -like 'U*'")
        except CompileError as ex:
            print({"rejected": ex.message})

        print("\nCleanup:")
        log_call("client.delete_entity(...)")
        print({"deleted": client.delete_entity(TABLE, "P1", "1")})
        log_call(f"client.delete_table({TABLE!r})")
        print({"deleted": client.delete_table(TABLE)})


if __name__ == "__main__":
    main()
