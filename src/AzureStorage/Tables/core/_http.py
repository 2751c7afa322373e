# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
HTTP transport and retry execution for the table service SDK.

This module provides :class:`~AzureStorage.Tables.core._http._HttpClient`, a
thin wrapper around the requests library that applies per-method timeouts,
optional session reuse and maps failures onto the SDK error types, and
:class:`~AzureStorage.Tables.core._http.RetryExecutor`, which re-runs a whole
request-producing operation with a fixed pause between attempts.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import requests

from ._error_codes import TRANSPORT_CONNECTION, TRANSPORT_OTHER, TRANSPORT_TIMEOUT
from .errors import DecodeError, HttpError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BODY_EXCERPT_LIMIT = 512


class RetryExecutor:
    """
    Run an operation, retrying transport and protocol failures with a fixed pause.

    The operation is attempted once plus ``retries`` more times. When every
    attempt fails the last exception is re-raised unchanged. Deterministic
    rejections (409 on create, 412 on a conditional delete, ...) must be
    converted to sentinels inside the operation so they never reach the
    executor.

    :param retries: Retries after the first attempt. Default is 3 (four attempts in total).
    :type retries: :class:`int` | None
    :param pause: Seconds to sleep between attempts. Default is 0.2.
    :type pause: :class:`float` | None
    :param retry_on: Exception types that trigger another attempt.
    :type retry_on: :class:`tuple` of exception types
    :param never_retry: Subclasses of ``retry_on`` types that are raised at once.
    :type never_retry: :class:`tuple` of exception types
    """

    def __init__(
        self,
        retries: Optional[int] = None,
        pause: Optional[float] = None,
        retry_on: Tuple[Type[BaseException], ...] = (TransportError, HttpError),
        never_retry: Tuple[Type[BaseException], ...] = (DecodeError,),
    ) -> None:
        self.retries = retries if retries is not None else 3
        self.pause = pause if pause is not None else 0.2
        self.retry_on = retry_on
        self.never_retry = never_retry
        if self.retries < 0:
            raise ValueError("retries must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def run(self, operation: Callable[[], T], *, description: str = "request") -> T:
        """
        Execute ``operation`` until it succeeds or the retry bound is reached.

        :param operation: Zero-argument callable issuing one request.
        :param description: Short label used in log messages.
        :return: Whatever ``operation`` returns.
        :raises Exception: The last failure, unchanged, once all attempts are used.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except self.retry_on as ex:
                if isinstance(ex, self.never_retry):
                    raise
                if attempt >= self.max_attempts:
                    logger.debug("%s failed after %d attempts", description, attempt)
                    raise
                logger.warning(
                    "%s failed on attempt %d/%d (%s); retrying in %.3fs",
                    description,
                    attempt,
                    self.max_attempts,
                    ex.__class__.__name__,
                    self.pause,
                )
                if self.pause > 0:
                    time.sleep(self.pause)


class _HttpClient:
    """
    HTTP client with timeout handling, optional session support and error mapping.

    Network failures become :class:`~AzureStorage.Tables.core.errors.TransportError`
    and non-2xx responses become :class:`~AzureStorage.Tables.core.errors.HttpError`.
    Retrying is left to :class:`RetryExecutor`.

    :param timeout: Default request timeout in seconds. If None, uses per-method defaults.
    :type timeout: :class:`float` | None
    :param session: Optional requests.Session for connection reuse.
    :type session: :class:`requests.Session` | None
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.default_timeout: Optional[float] = timeout
        self._session = session

    def _request(self, method: str, url: str, *, operation: Optional[str] = None, **kwargs: Any) -> requests.Response:
        """
        Execute a single HTTP request.

        Applies default timeouts based on HTTP method (120s for writes, 10s for
        reads) unless ``timeout`` is supplied.

        :param method: HTTP method (GET, POST, PUT, MERGE, DELETE).
        :type method: :class:`str`
        :param url: Fully-formed target URL, including the query string.
        :type url: :class:`str`
        :param operation: Label recorded on errors, e.g. ``"insert_entity"``.
        :type operation: :class:`str` | None
        :param kwargs: Additional arguments passed to ``requests.request()`` or
            ``session.request()``, including headers and data.
        :return: HTTP response object with a 2xx status.
        :rtype: :class:`requests.Response`
        :raises ~AzureStorage.Tables.core.errors.TransportError: On connection failure or timeout.
        :raises ~AzureStorage.Tables.core.errors.HttpError: On a non-2xx status.
        """
        if "timeout" not in kwargs:
            if self.default_timeout is not None:
                kwargs["timeout"] = self.default_timeout
            else:
                m = (method or "").lower()
                kwargs["timeout"] = 120 if m in ("post", "put", "merge", "delete") else 10

        logger.debug("%s %s", method, url)
        try:
            if self._session is not None:
                response = self._session.request(method, url, **kwargs)
            else:
                response = requests.request(method, url, **kwargs)
        except requests.exceptions.Timeout as ex:
            raise TransportError(
                f"{method} {url} timed out: {ex}", subcode=TRANSPORT_TIMEOUT, details={"url": url}
            ) from ex
        except requests.exceptions.ConnectionError as ex:
            raise TransportError(
                f"{method} {url} could not connect: {ex}", subcode=TRANSPORT_CONNECTION, details={"url": url}
            ) from ex
        except requests.exceptions.RequestException as ex:
            raise TransportError(f"{method} {url} failed: {ex}", subcode=TRANSPORT_OTHER, details={"url": url}) from ex

        status = response.status_code
        if 200 <= status < 300:
            return response

        body = response.text or ""
        headers = response.headers or {}
        raise HttpError(
            f"{method} {url} returned HTTP {status}",
            status,
            service_error_code=headers.get("x-ms-error-code"),
            request_id=headers.get("x-ms-request-id"),
            operation=operation or method,
            body_excerpt=body[:_BODY_EXCERPT_LIMIT] if body else None,
        )

    def close(self) -> None:
        """
        Close the HTTP client and release resources.

        If a session was provided, this method closes it. Safe to call multiple times.
        """
        if self._session is not None:
            self._session.close()
            self._session = None
