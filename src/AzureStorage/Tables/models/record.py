# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Generic record model for table entities.

A :class:`Record` is a schema-less, ordered mapping from field name to value
with dict-like access. Values travel as strings on the wire; the only typed
value the SDK produces itself is the ``Timestamp`` system column, represented
as a :class:`TimestampValue`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

from ..common.constants import PARTITION_KEY, ROW_KEY, TABLE_NAME, TIMESTAMP

_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class TimestampValue:
    """
    A ``Timestamp`` as received from the service.

    ``value`` holds the parsed, timezone-aware datetime when the raw text could
    be parsed; otherwise it is ``None`` and only ``raw`` is meaningful.

    :param raw: The text exactly as it appeared in the response.
    :type raw: str
    :param value: Parsed timestamp, or None when parsing failed.
    :type value: ~datetime.datetime | None
    """

    raw: str
    value: Optional[datetime] = None

    @property
    def parsed(self) -> bool:
        return self.value is not None

    @classmethod
    def parse(cls, raw: str) -> "TimestampValue":
        """
        Parse an ISO 8601 timestamp, keeping the raw string if that fails.

        The service emits up to seven fractional digits and a ``Z`` suffix;
        both are normalised before parsing.
        """
        text = (raw or "").strip()
        normalised = text[:-1] + "+00:00" if text.endswith("Z") else text
        normalised = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalised, count=1)
        try:
            value = datetime.fromisoformat(normalised)
        except ValueError:
            return cls(raw=raw)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return cls(raw=raw, value=value)

    def __str__(self) -> str:
        return self.raw


@dataclass
class Record:
    """
    Schema-less entity representation with dict-like access.

    Field order is preserved and is the order fields are written on encode.

    :param data: Field data as name-value pairs.
    :type data: dict[str, Any]
    :param type_names: Descriptive type tags carried in ``psTypeName``. Not enforced.
    :type type_names: tuple[str, ...]

    Example::

        record = Record({"Amount": "9.99", "Currency": "EUR"})
        record["Status"] = "open"
        client.insert_entity("Orders", record, partition_key="P1", row_key="1")

        fetched = client.get_entity("Orders", "P1", "1")
        print(fetched["Amount"], fetched.partition_key, fetched.timestamp)
    """

    data: Dict[str, Any] = field(default_factory=dict)
    type_names: Tuple[str, ...] = ()

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def __delitem__(self, key: str) -> None:
        del self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def keys(self):
        return self.data.keys()

    def values(self):
        return self.data.values()

    def items(self):
        return self.data.items()

    @property
    def partition_key(self) -> Optional[str]:
        return self.data.get(PARTITION_KEY)

    @property
    def row_key(self) -> Optional[str]:
        return self.data.get(ROW_KEY)

    @property
    def timestamp(self) -> Optional[TimestampValue]:
        return self.data.get(TIMESTAMP)

    @property
    def table_name(self) -> Optional[str]:
        return self.data.get(TABLE_NAME)

    @property
    def type_name(self) -> Optional[str]:
        """The most specific type tag, if any."""
        return self.type_names[0] if self.type_names else None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a plain dictionary.

        ``TimestampValue`` fields are flattened to the parsed datetime, or the raw
        string when parsing failed.

        :rtype: dict[str, Any]
        """
        out: Dict[str, Any] = {}
        for key, value in self.data.items():
            if isinstance(value, TimestampValue):
                value = value.value if value.parsed else value.raw
            out[key] = value
        return out

    @classmethod
    def from_mapping(cls, mapping: Any, *, type_names: Tuple[str, ...] = ()) -> "Record":
        """
        Build a Record from a dict, another Record or any object with ``items()``.

        :raises TypeError: If ``mapping`` is not mapping-like.
        """
        if isinstance(mapping, Record):
            return cls(dict(mapping.data), type_names or mapping.type_names)
        if not hasattr(mapping, "items"):
            raise TypeError("record must be a Record or a mapping of field name to value")
        return cls(dict(mapping.items()), tuple(type_names))


__all__ = ["Record", "TimestampValue"]
