# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Data models and value objects for the table service SDK.

- :class:`~AzureStorage.Tables.models.record.Record`: Entity representation with dict-like access.
- :class:`~AzureStorage.Tables.models.table_info.TableDescriptor`: Table metadata.
- :class:`~AzureStorage.Tables.models.cursor.Cursor`: Continuation token for paged queries.
- :class:`~AzureStorage.Tables.models.operation.Operation`: Description of one request.
- :class:`~AzureStorage.Tables.models.filters.FilterCompiler`: Predicate compiler.
- :class:`~AzureStorage.Tables.models.query_builder.QueryBuilder`: Fluent query builder.

Note:
    This ``__init__.py`` does NOT import/export models. Import directly from
    the specific module files to avoid duplicate entries in generated
    documentation.
"""

__all__ = []
