# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from ..common.constants import DEFAULT_API_VERSION
from ._error_codes import CONFIG_INVALID_VALUE
from .errors import ConfigurationError


@dataclass(frozen=True)
class TableServiceConfig:
    """
    Configuration settings for table service client operations.

    :param endpoint_suffix: Host suffix appended to the account name (default: ``table.core.windows.net``).
    :type endpoint_suffix: str
    :param scheme: URL scheme used to reach the service (default: ``https``).
    :type scheme: str
    :param api_version: Value sent in the ``x-ms-version`` header.
    :type api_version: str
    :param http_retries: Retries after the first attempt (default: 3, i.e. four attempts in total).
    :type http_retries: int
    :param http_pause: Fixed pause in seconds between attempts (default: 0.2).
    :type http_pause: float
    :param http_timeout: Request timeout in seconds (default: method-dependent).
    :type http_timeout: float or None
    :param default_batch_size: Page size requested via ``$top`` when a query does not specify one (default: 640).
    :type default_batch_size: int
    :param include_table_info: Whether reads include ``PartitionKey``, ``RowKey``, ``Timestamp`` and ``TableName`` by default.
    :type include_table_info: bool
    """

    endpoint_suffix: str = "table.core.windows.net"
    scheme: str = "https"
    api_version: str = DEFAULT_API_VERSION

    # HTTP retry configuration
    http_retries: int = 3
    http_pause: float = 0.2
    http_timeout: Optional[float] = None

    default_batch_size: int = 640
    include_table_info: bool = True

    def endpoint(self, account: str) -> str:
        """
        Return the service root for ``account``, with a trailing slash.

        :param account: Storage account name.
        :type account: str
        :rtype: str
        """
        return f"{self.scheme}://{account}.{self.endpoint_suffix}/"

    @classmethod
    def from_env(cls) -> "TableServiceConfig":
        """
        Create a configuration instance, overriding defaults from ``AZURE_TABLES_*`` environment variables.

        :return: Configuration instance.
        :rtype: ~AzureStorage.Tables.core.config.TableServiceConfig
        :raises ~AzureStorage.Tables.core.errors.ConfigurationError: If a numeric variable cannot be parsed.
        """
        defaults = cls()
        return cls(
            endpoint_suffix=os.environ.get("AZURE_TABLES_ENDPOINT_SUFFIX", defaults.endpoint_suffix),
            scheme=os.environ.get("AZURE_TABLES_SCHEME", defaults.scheme),
            api_version=defaults.api_version,
            http_retries=_env_number("AZURE_TABLES_HTTP_RETRIES", int, defaults.http_retries),
            http_pause=_env_number("AZURE_TABLES_HTTP_PAUSE", float, defaults.http_pause),
            http_timeout=_env_number("AZURE_TABLES_HTTP_TIMEOUT", float, defaults.http_timeout),
            default_batch_size=defaults.default_batch_size,
            include_table_info=defaults.include_table_info,
        )


def _env_number(name, cast, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(
            f"Environment variable {name}={raw!r} is not a valid {cast.__name__}.",
            subcode=CONFIG_INVALID_VALUE,
            details={"variable": name, "value": raw},
        ) from None
