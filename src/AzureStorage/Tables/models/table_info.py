# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Table metadata model for the table service SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class TableDescriptor:
    """
    Identifies a table as reported by the service.

    :param name: Table name.
    :type name: str
    :param id: Service-assigned identifier URI of the table resource.
    :type id: str
    :param updated: Last-modified time; the raw string if it could not be parsed.
    :type updated: ~datetime.datetime | str | None

    Example::

        for table in client.list_tables():
            print(table.name, table.updated)
    """

    name: str
    id: str = ""
    updated: Optional[Union[datetime, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "id": self.id, "updated": self.updated}


__all__ = ["TableDescriptor"]
