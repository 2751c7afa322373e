# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

# HTTP subcode constants
HTTP_400 = "http_400"
HTTP_401 = "http_401"
HTTP_403 = "http_403"
HTTP_404 = "http_404"
HTTP_409 = "http_409"
HTTP_412 = "http_412"
HTTP_415 = "http_415"
HTTP_429 = "http_429"
HTTP_500 = "http_500"
HTTP_502 = "http_502"
HTTP_503 = "http_503"
HTTP_504 = "http_504"

ALL_HTTP_SUBCODES = {
    HTTP_400,
    HTTP_401,
    HTTP_403,
    HTTP_404,
    HTTP_409,
    HTTP_412,
    HTTP_415,
    HTTP_429,
    HTTP_500,
    HTTP_502,
    HTTP_503,
    HTTP_504,
}

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def _http_subcode(status_code: int) -> str:
    return f"http_{status_code}"


# Configuration subcodes
CONFIG_ACCOUNT_MISSING = "config_account_missing"
CONFIG_KEY_MISSING = "config_key_missing"
CONFIG_KEY_NOT_BASE64 = "config_key_not_base64"
CONFIG_INVALID_VALUE = "config_invalid_value"

# Transport subcodes
TRANSPORT_CONNECTION = "transport_connection"
TRANSPORT_TIMEOUT = "transport_timeout"
TRANSPORT_OTHER = "transport_other"

# Decode subcodes
DECODE_MALFORMED_XML = "decode_malformed_xml"
DECODE_MISSING_ELEMENT = "decode_missing_element"

# Filter compile subcodes
COMPILE_EMPTY = "compile_empty"
COMPILE_TOO_LONG = "compile_too_long"
COMPILE_BAD_FIELD = "compile_bad_field"
COMPILE_BAD_OPERATOR = "compile_bad_operator"
COMPILE_BAD_LITERAL = "compile_bad_literal"
COMPILE_INTERPOLATION = "compile_interpolation"
COMPILE_ARITY = "compile_arity"
COMPILE_BAD_JOIN = "compile_bad_join"
