# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Core infrastructure components for the table service SDK.

This module contains the foundational components including request signing,
configuration, HTTP transport with retry execution, and error handling.
"""

from .config import TableServiceConfig
from .errors import (
    TableStorageError,
    ConfigurationError,
    CompileError,
    TransportError,
    HttpError,
    ProtocolError,
    DecodeError,
)
from .results import RequestMetadata, QueryPage

__all__ = [
    "TableServiceConfig",
    "TableStorageError",
    "ConfigurationError",
    "CompileError",
    "TransportError",
    "HttpError",
    "ProtocolError",
    "DecodeError",
    "RequestMetadata",
    "QueryPage",
]
