# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Operation namespace classes for the table service SDK.

- RecordOperations: CRUD operations on entities
- QueryOperations: Filtered, paged entity queries
- TableOperations: Table create, list and delete
"""

__all__ = []
