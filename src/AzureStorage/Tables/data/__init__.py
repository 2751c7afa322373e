# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Data access layer for the table service SDK.

This module contains the Atom/XML entity codec and the low-level REST client
that assembles, signs and sends table service requests.
"""

__all__ = []
