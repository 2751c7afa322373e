# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
SharedKey request signing for the table service.

The service accepts two signing profiles. Table-level requests (create, list
and delete table) sign a short string and never canonicalize the query
string. Entity-level requests sign the long form, which includes the content
length, conditional headers and the ``x-ms-*`` header block, and append every
query parameter to the canonical resource.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlsplit

from azure.core.credentials import AzureNamedKeyCredential

from ..common.constants import ATOM_CONTENT_TYPE, VENDOR_HEADER_PREFIX
from ._error_codes import CONFIG_ACCOUNT_MISSING, CONFIG_KEY_MISSING, CONFIG_KEY_NOT_BASE64
from .errors import ConfigurationError

HeaderValue = Union[str, Sequence[str]]
HeaderInput = Union[Mapping[str, HeaderValue], Iterable[Tuple[str, str]]]


class SigningProfile(str, Enum):
    """Which of the two service signing rules applies to a request."""

    TABLE = "table"
    ENTITY = "entity"


def _iter_header_pairs(headers: HeaderInput) -> Iterable[Tuple[str, str]]:
    items = headers.items() if isinstance(headers, Mapping) else headers
    for name, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for v in value:
                yield name, str(v)
        else:
            yield name, str(value)


def canonicalize_headers(headers: HeaderInput) -> str:
    """
    Build the canonical ``x-ms-*`` header block.

    Each matching header is lower-cased and rendered as
    ``name:value1,value2\\n``; names are sorted, line breaks inside values are
    removed and leading whitespace is trimmed from each value.

    :param headers: Mapping of header name to value (or sequence of values), or
        an iterable of ``(name, value)`` pairs.
    :return: Canonical header block, empty when no header matches.
    :rtype: str
    """
    grouped: Dict[str, List[str]] = {}
    for name, value in _iter_header_pairs(headers):
        lname = name.lower()
        if not lname.startswith(VENDOR_HEADER_PREFIX):
            continue
        cleaned = value.replace("\r\n", "").replace("\n", "").replace("\r", "").lstrip()
        grouped.setdefault(lname, []).append(cleaned)
    lines = [f"{name}:{','.join(grouped[name])}\n" for name in sorted(grouped)]
    return "".join(lines)


def canonicalize_resource(uri: str, account: str, profile: SigningProfile) -> str:
    """
    Build the canonical resource string ``/account/path`` plus query lines.

    Query parameters are only canonicalized for :attr:`SigningProfile.ENTITY`;
    table-level requests sign the bare path.

    :param uri: Full request URI, including any query string.
    :param account: Storage account name.
    :param profile: Signing profile of the request.
    :rtype: str
    """
    parts = urlsplit(uri)
    path = parts.path or "/"
    resource = f"/{account}{path}"
    if profile is not SigningProfile.ENTITY or not parts.query:
        return resource

    grouped: Dict[str, List[str]] = {}
    for name, value in parse_qsl(parts.query, keep_blank_values=True):
        grouped.setdefault(name.lower(), []).append(value)
    lines = [f"\n{name}:{','.join(sorted(grouped[name]))}" for name in sorted(grouped)]
    return resource + "".join(lines)


@dataclass(frozen=True)
class SigningContext:
    """Inputs to one signature. Built per request and discarded afterwards.

    ``date`` is part of the TABLE message only. ENTITY signs the timestamp
    through ``x-ms-date`` in ``canonical_headers``.
    """

    account: str
    verb: str
    date: str
    canonical_resource: str
    canonical_headers: str = ""
    profile: SigningProfile = SigningProfile.ENTITY
    content_type: str = ATOM_CONTENT_TYPE
    content_length: Optional[int] = None
    if_match: str = ""
    content_md5: str = ""


def string_to_sign(ctx: SigningContext) -> str:
    """Render the message that is fed to HMAC for ``ctx``'s profile."""
    verb = ctx.verb.upper()
    if ctx.profile is SigningProfile.TABLE:
        return f"{verb}\n\n{ctx.content_type}\n{ctx.date}\n{ctx.canonical_resource}"

    if verb in ("GET", "HEAD") or ctx.content_length is None:
        length = ""
    else:
        length = str(ctx.content_length)
    return (
        f"{verb}\n\n\n{length}\n{ctx.content_md5 or ''}\n\n\n\n{ctx.if_match or ''}\n\n\n\n"
        f"{ctx.canonical_headers}{ctx.canonical_resource}"
    )


class SharedKeySigner:
    """
    Computes ``SharedKey`` authorization headers for one storage account.

    The key is decoded once at construction; the signer holds no other state
    and may be shared across threads.

    :param credential: Named key credential holding the account name and the
        base64-encoded account key.
    :type credential: ~azure.core.credentials.AzureNamedKeyCredential
    :raises ~AzureStorage.Tables.core.errors.ConfigurationError: If the account
        or key is empty or the key is not valid base64.
    """

    def __init__(self, credential: AzureNamedKeyCredential) -> None:
        if not isinstance(credential, AzureNamedKeyCredential):
            raise TypeError("credential must be an azure.core.credentials.AzureNamedKeyCredential.")
        account, key = credential.named_key
        if not account:
            raise ConfigurationError("A storage account name is required.", subcode=CONFIG_ACCOUNT_MISSING)
        if not key:
            raise ConfigurationError("A storage account key is required.", subcode=CONFIG_KEY_MISSING)
        try:
            self._key = base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError):
            raise ConfigurationError(
                "The storage account key is not valid base64.",
                subcode=CONFIG_KEY_NOT_BASE64,
                details={"account": account},
            ) from None
        self.account = account

    def signature(self, message: str) -> str:
        digest = hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def sign(self, ctx: SigningContext) -> str:
        """
        Return the ``Authorization`` header value for ``ctx``.

        :param ctx: Signing inputs for the request.
        :type ctx: SigningContext
        :return: ``"SharedKey {account}:{signature}"``
        :rtype: str
        """
        return f"SharedKey {self.account}:{self.signature(string_to_sign(ctx))}"


__all__ = [
    "SigningProfile",
    "SigningContext",
    "SharedKeySigner",
    "canonicalize_headers",
    "canonicalize_resource",
    "string_to_sign",
]
