# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Common constants for the table service SDK.

This module contains shared constants used across the SDK.
"""

__all__ = []
