# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Atom+XML marshalling of table entities.

Write bodies are Atom ``entry`` documents whose ``content`` holds an
``m:properties`` element with one ``d:<Field>`` child per record field.
Read responses are Atom feeds (or a single entry) parsed back into
:class:`~AzureStorage.Tables.models.record.Record` objects.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple, Union

from ..common.constants import (
    NS_ATOM,
    NS_DATA,
    NS_METADATA,
    PARTITION_KEY,
    ROW_KEY,
    SYSTEM_COLUMNS,
    TABLE_NAME,
    TIMESTAMP,
    TYPE_NAME,
)
from ..core._error_codes import DECODE_MALFORMED_XML, DECODE_MISSING_ELEMENT
from ..core.errors import DecodeError
from ..models.record import Record, TimestampValue
from ..models.table_info import TableDescriptor

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8" standalone="yes"?>\n'

_A = "{%s}" % NS_ATOM
_D = "{%s}" % NS_DATA
_M = "{%s}" % NS_METADATA

# XML NCName, restricted to ASCII
_FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

XmlInput = Union[str, bytes, None]


def entity_uri(endpoint: str, table: str, partition_key: str, row_key: str) -> str:
    """
    Return the absolute URI of one entity, as written in an entry's ``id``.

    :param endpoint: Service root with a trailing slash.
    :param table: Table name.
    :param partition_key: Partition key.
    :param row_key: Row key.
    :rtype: str
    """
    return f"{endpoint}{entity_path(table, partition_key, row_key)}"


def entity_path(table: str, partition_key: str, row_key: str) -> str:
    """Relative resource ``Table(PartitionKey='p',RowKey='r')`` with quotes doubled."""
    pk = partition_key.replace("'", "''")
    rk = row_key.replace("'", "''")
    return f"{table}(PartitionKey='{pk}',RowKey='{rk}')"


def _format_updated(updated: Optional[datetime]) -> str:
    moment = updated or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"


def _wire_text(value: Any) -> str:
    if isinstance(value, TimestampValue):
        return value.raw
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _type_names_field(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    return tuple(t.strip() for t in str(value).split(",") if t.strip())


def _entry(author: Optional[str], email: Optional[str], updated: Optional[datetime], entry_id: str) -> ET.Element:
    # names carry literal prefixes; declarations are set on the root
    entry = ET.Element("entry", {"xmlns:d": NS_DATA, "xmlns:m": NS_METADATA, "xmlns": NS_ATOM})
    ET.SubElement(entry, "title")
    ET.SubElement(entry, "updated").text = _format_updated(updated)
    author_el = ET.SubElement(entry, "author")
    ET.SubElement(author_el, "name").text = author or ""
    if email:
        ET.SubElement(author_el, "email").text = email
    ET.SubElement(entry, "id").text = entry_id
    return entry


def _properties(entry: ET.Element) -> ET.Element:
    content = ET.SubElement(entry, "content", {"type": "application/xml"})
    return ET.SubElement(content, "m:properties")


def _serialize(entry: ET.Element) -> str:
    # ElementTree leaves \r in text raw, and parsers normalize it to \n
    return XML_DECLARATION + ET.tostring(entry, encoding="unicode").replace("\r", "&#13;")


def encode_entity(
    record: Any,
    partition_key: Optional[str] = None,
    row_key: Optional[str] = None,
    *,
    account: Optional[str] = None,
    table: Optional[str] = None,
    update: bool = False,
    author: Optional[str] = None,
    email: Optional[str] = None,
    updated: Optional[datetime] = None,
    endpoint: Optional[str] = None,
) -> str:
    """
    Render ``record`` as an Atom entry for insert, update or merge.

    ``PartitionKey`` and ``RowKey`` come first, followed by ``psTypeName`` when
    the record has type names, then every other field in record order. A
    ``psTypeName`` field stands in for type names when the record has none.
    Keys not given explicitly are taken from the record itself.

    :param record: Record or mapping of field name to value.
    :param partition_key: Partition key; defaults to ``record["PartitionKey"]``.
    :param row_key: Row key; defaults to ``record["RowKey"]``.
    :param account: Account name, used for the ``id`` of update and merge bodies.
    :param table: Table name, used for the ``id`` of update and merge bodies.
    :param update: Whether the body is for an update/merge (``id`` set) or an insert (``id`` empty).
    :param author: Author name for the ``author`` element.
    :param email: Author email, placed inside ``author`` when given.
    :param updated: Value of the ``updated`` element; defaults to now.
    :param endpoint: Service root used in the ``id``; defaults to the public endpoint of ``account``.
    :return: The serialized document, including the XML declaration.
    :rtype: str
    :raises ValueError: If a key is missing, ``update`` lacks account/table, or a field name is not a valid XML name.
    """
    rec = Record.from_mapping(record)
    pk = partition_key if partition_key is not None else rec.partition_key
    rk = row_key if row_key is not None else rec.row_key
    if pk is None or rk is None:
        raise ValueError("partition_key and row_key are required to encode an entity")
    pk, rk = str(pk), str(rk)

    entry_id = ""
    if update:
        if not table or not (account or endpoint):
            raise ValueError("account and table are required to encode an update")
        root = endpoint or f"https://{account}.table.core.windows.net/"
        entry_id = entity_uri(root, table, pk, rk)

    entry = _entry(author, email, updated, entry_id)
    props = _properties(entry)
    ET.SubElement(props, "d:" + PARTITION_KEY).text = pk
    ET.SubElement(props, "d:" + ROW_KEY).text = rk
    type_names = rec.type_names or _type_names_field(rec.get(TYPE_NAME))
    if type_names:
        ET.SubElement(props, "d:" + TYPE_NAME).text = ",".join(type_names)

    for name, value in rec.items():
        if name in SYSTEM_COLUMNS or name == TYPE_NAME:
            continue
        if not isinstance(name, str) or not _FIELD_NAME_RE.match(name):
            raise ValueError(f"{name!r} is not a valid field name")
        el = ET.SubElement(props, "d:" + name)
        if value is None:
            el.set("m:null", "true")
        else:
            el.text = _wire_text(value)
    return _serialize(entry)


def encode_table(
    name: str, *, author: Optional[str] = None, email: Optional[str] = None, updated: Optional[datetime] = None
) -> str:
    """
    Render the create-table entry carrying ``d:TableName``.

    :param name: Table name.
    :type name: str
    :rtype: str
    """
    entry = _entry(author, email, updated, "")
    ET.SubElement(_properties(entry), "d:" + TABLE_NAME).text = name
    return _serialize(entry)


def _parse(xml: XmlInput) -> Optional[ET.Element]:
    if xml is None or not xml.strip():
        return None
    try:
        return ET.fromstring(xml)
    except ET.ParseError as ex:
        raise DecodeError(
            f"Response body is not well-formed XML: {ex}",
            subcode=DECODE_MALFORMED_XML,
            details={"position": getattr(ex, "position", None)},
        ) from ex


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _decode_properties(props: ET.Element, *, include_table_info: bool, table: Optional[str]) -> Record:
    record = Record()
    for child in props:
        name = _local(child.tag)
        if child.get(_M + "null") == "true":
            text: Optional[str] = None
        else:
            text = child.text or ""
        if name == TYPE_NAME:
            record.type_names = tuple(t.strip() for t in (text or "").split(",") if t.strip())
            continue
        if name in (PARTITION_KEY, ROW_KEY, TIMESTAMP):
            if not include_table_info:
                continue
            if name == TIMESTAMP and text is not None:
                record[name] = TimestampValue.parse(text)
                continue
        record[name] = text
    if include_table_info and table is not None:
        record[TABLE_NAME] = table
    return record


def decode_entities(xml: XmlInput, *, include_table_info: bool = True, table: Optional[str] = None) -> List[Record]:
    """
    Decode an Atom feed or entry into records, one per ``m:properties`` block.

    System columns are kept only with ``include_table_info``, in which case
    ``TableName`` is added as well. ``Timestamp`` becomes a
    :class:`~AzureStorage.Tables.models.record.TimestampValue` and ``psTypeName``
    becomes the record's ``type_names``.

    :param xml: Response body; empty or None yields no records.
    :param include_table_info: Keep ``PartitionKey``, ``RowKey`` and ``Timestamp``, and inject ``TableName``.
    :param table: Table name injected as ``TableName``.
    :rtype: list[~AzureStorage.Tables.models.record.Record]
    :raises ~AzureStorage.Tables.core.errors.DecodeError: If the body is not well-formed XML.
    """
    root = _parse(xml)
    if root is None:
        return []
    records = [
        _decode_properties(props, include_table_info=include_table_info, table=table)
        for props in root.iter(_M + "properties")
    ]
    logger.debug("decoded %d entities from %d bytes", len(records), len(xml or ""))
    return records


def decode_tables(xml: XmlInput) -> List[TableDescriptor]:
    """
    Decode a table feed (or the single entry returned by create) into descriptors.

    :rtype: list[~AzureStorage.Tables.models.table_info.TableDescriptor]
    :raises ~AzureStorage.Tables.core.errors.DecodeError: If the body is malformed or an entry has no ``TableName``.
    """
    root = _parse(xml)
    if root is None:
        return []
    entries = [root] if root.tag == _A + "entry" else root.findall(_A + "entry")
    tables: List[TableDescriptor] = []
    for entry in entries:
        name = entry.findtext(f"{_A}content/{_M}properties/{_D}{TABLE_NAME}")
        if name is None:
            raise DecodeError(
                "Table entry has no TableName property.",
                subcode=DECODE_MISSING_ELEMENT,
                details={"element": TABLE_NAME},
            )
        raw_updated = entry.findtext(_A + "updated")
        updated: Optional[Union[datetime, str]] = None
        if raw_updated:
            stamp = TimestampValue.parse(raw_updated)
            updated = stamp.value if stamp.parsed else stamp.raw
        tables.append(TableDescriptor(name=name, id=entry.findtext(_A + "id") or "", updated=updated))
    return tables


__all__ = ["encode_entity", "encode_table", "decode_entities", "decode_tables", "entity_path", "entity_uri"]
