# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Constants for the table service REST protocol.

These constants define header names, XML namespaces and query parameter
names used on the wire.
"""

# Protocol version sent in ``x-ms-version``
DEFAULT_API_VERSION = "2011-08-18"

# Vendor header prefix included in the canonical header block
VENDOR_HEADER_PREFIX = "x-ms-"

ATOM_CONTENT_TYPE = "application/atom+xml"
ATOM_ACCEPT = "application/atom+xml,application/xml"
DATA_SERVICE_VERSION = "2.0;NetFx"

# Atom / ADO.NET Data Services namespaces
NS_ATOM = "http://www.w3.org/2005/Atom"
NS_DATA = "http://schemas.microsoft.com/ado/2007/08/dataservices"
NS_METADATA = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"

# System columns
PARTITION_KEY = "PartitionKey"
ROW_KEY = "RowKey"
TIMESTAMP = "Timestamp"
TABLE_NAME = "TableName"
TYPE_NAME = "psTypeName"

SYSTEM_COLUMNS = (PARTITION_KEY, ROW_KEY, TIMESTAMP, TABLE_NAME)

# Continuation response headers
HEADER_NEXT_TABLE = "x-ms-continuation-NextTableName"
HEADER_NEXT_PARTITION = "x-ms-continuation-NextPartitionKey"
HEADER_NEXT_ROW = "x-ms-continuation-NextRowKey"

# Continuation query parameters echoed on the next request
PARAM_NEXT_TABLE = "NextTableName"
PARAM_NEXT_PARTITION = "NextPartitionKey"
PARAM_NEXT_ROW = "NextRowKey"

# Query options (service casing preserved)
PARAM_FILTER = "$filter"
PARAM_SELECT = "$select"
PARAM_TOP = "$top"
PARAM_ORDER_BY = "$OrderBy"

# Partition used when a caller does not supply one
DEFAULT_PARTITION_KEY = "Default"
