# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Structured error types for the table service SDK.

Every error raised by the SDK derives from :class:`TableStorageError` and
carries a stable ``code``, an optional ``subcode`` and a ``details`` dict for
diagnostics.
"""

from __future__ import annotations

import datetime as _dt
from typing import Any, Dict, Optional

from ._error_codes import _http_subcode, TRANSIENT_STATUS_CODES


class TableStorageError(Exception):
    """Base structured error for the table service SDK."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        subcode: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        is_transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.subcode = subcode
        self.status_code = status_code
        self.details = details or {}
        self.source = source or "client"
        self.is_transient = is_transient
        self.timestamp = _dt.datetime.now(_dt.timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "subcode": self.subcode,
            "status_code": self.status_code,
            "details": self.details,
            "source": self.source,
            "is_transient": self.is_transient,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(code={self.code!r}, subcode={self.subcode!r}, message={self.message!r})"


class ConfigurationError(TableStorageError):
    """Missing or malformed account name, key or configuration value."""

    def __init__(self, message: str, *, subcode: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="configuration_error", subcode=subcode, details=details, source="client")


class CompileError(TableStorageError):
    """A predicate could not be compiled into the service filter syntax."""

    def __init__(self, message: str, *, subcode: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="compile_error", subcode=subcode, details=details, source="client")


class TransportError(TableStorageError):
    """Connection failure or timeout before an HTTP status was received."""

    def __init__(self, message: str, *, subcode: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            code="transport_error",
            subcode=subcode,
            details=details,
            source="client",
            is_transient=True,
        )


class HttpError(TableStorageError):
    """Non-2xx response from the service."""

    def __init__(
        self,
        message: str,
        status_code: int,
        is_transient: Optional[bool] = None,
        subcode: Optional[str] = None,
        service_error_code: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        body_excerpt: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        d = details or {}
        if service_error_code is not None:
            d["service_error_code"] = service_error_code
        if request_id is not None:
            d["request_id"] = request_id
        if operation is not None:
            d["operation"] = operation
        if body_excerpt is not None:
            d["body_excerpt"] = body_excerpt
        if is_transient is None:
            is_transient = status_code in TRANSIENT_STATUS_CODES
        super().__init__(
            message,
            code="http_error",
            subcode=subcode or _http_subcode(status_code),
            status_code=status_code,
            details=d,
            source="server",
            is_transient=is_transient,
        )


ProtocolError = HttpError


class DecodeError(HttpError):
    """A response body could not be decoded as Atom/XML."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 200,
        subcode: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code, is_transient=False, subcode=subcode, details=details)
        self.code = "decode_error"


__all__ = [
    "TableStorageError",
    "ConfigurationError",
    "CompileError",
    "TransportError",
    "HttpError",
    "ProtocolError",
    "DecodeError",
]
