# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import pytest

from AzureStorage.Tables.core._error_codes import (
    COMPILE_ARITY,
    COMPILE_BAD_FIELD,
    COMPILE_BAD_JOIN,
    COMPILE_BAD_LITERAL,
    COMPILE_BAD_OPERATOR,
    COMPILE_EMPTY,
    COMPILE_INTERPOLATION,
    COMPILE_TOO_LONG,
)
from AzureStorage.Tables.core.errors import CompileError
from AzureStorage.Tables.models.filters import FilterCompiler, compile_filter


class TestFilterCompiler:
    @pytest.mark.parametrize(
        "clause, expected",
        [
            ("$_.Age -gt 5", "Age gt '5'"),
            ("Age -GE 5", "Age ge '5'"),
            ("Name -eq 'Contoso'", "Name eq 'Contoso'"),
            ('Name -ne "Fabrikam"', "Name ne 'Fabrikam'"),
            ("Price -lt 9.99", "Price lt '9.99'"),
            ("Delta -le -3", "Delta le '-3'"),
            ("Owner -eq 'O''Brien'", "Owner eq 'O''Brien'"),
            ('  $_.City -eq "Rome"  ', "City eq 'Rome'"),
        ],
    )
    def test_single_clause(self, clause, expected):
        assert compile_filter(clause) == expected

    def test_multiple_clauses_and(self):
        assert compile_filter(["$_.Age -gt 5", "Name -eq 'Ann'"]) == "(Age gt '5') and (Name eq 'Ann')"

    def test_multiple_clauses_or(self):
        assert compile_filter(["A -eq 1", "B -eq 2"], join="OR") == "(A eq '1') or (B eq '2')"

    def test_single_clause_in_list_is_not_parenthesised(self):
        assert compile_filter(["A -eq 1"]) == "A eq '1'"

    def _subcode(self, clauses, join="and"):
        with pytest.raises(CompileError) as info:
            compile_filter(clauses, join)
        assert info.value.code == "compile_error"
        return info.value.subcode

    def test_like_rejected(self):
        assert self._subcode("Name -like 'Con*'") == COMPILE_BAD_OPERATOR

    def test_length_bound(self):
        clause = "Name -eq '" + "x" * 600 + "'"
        assert self._subcode(clause) == COMPILE_TOO_LONG

    def test_length_bound_is_configurable(self):
        with pytest.raises(CompileError):
            FilterCompiler(max_clause_length=8).compile("Age -gt 5")

    def test_subexpression_interpolation_rejected(self):
        assert self._subcode('Name -eq "$(Get-Date)"') == COMPILE_INTERPOLATION

    def test_variable_interpolation_rejected(self):
        assert self._subcode('Name -eq "hello $user"') == COMPILE_INTERPOLATION

    def test_bare_variable_literal_rejected(self):
        assert self._subcode("Name -eq $name") == COMPILE_INTERPOLATION

    def test_variable_field_rejected(self):
        assert self._subcode("$x -eq 1") == COMPILE_INTERPOLATION

    def test_single_quoted_dollar_is_literal(self):
        assert compile_filter("Price -eq '$5'") == "Price eq '$5'"

    @pytest.mark.parametrize("clause", ["Name -eq '$(whoami)'", "Price -eq 'a$(5)'"])
    def test_single_quoted_subexpression_rejected(self, clause):
        assert self._subcode(clause) == COMPILE_INTERPOLATION

    @pytest.mark.parametrize("clause", ["Age -gt", "Age", "Age -gt 5 -lt 9", "$_.Age -gt 5 and B -eq 1"])
    def test_wrong_arity(self, clause):
        assert self._subcode(clause) == COMPILE_ARITY

    def test_bad_field(self):
        assert self._subcode("5 -eq 5") == COMPILE_BAD_FIELD

    def test_bad_literal(self):
        assert self._subcode("Age -eq Other") == COMPILE_BAD_LITERAL

    def test_empty(self):
        assert self._subcode([]) == COMPILE_EMPTY
        assert self._subcode("   ") == COMPILE_EMPTY

    def test_bad_join(self):
        assert self._subcode(["A -eq 1", "B -eq 2"], join="xor") == COMPILE_BAD_JOIN

    def test_one_bad_clause_aborts_all(self):
        with pytest.raises(CompileError) as info:
            compile_filter(["A -eq 1", "B -match 2", "C -eq 3"])
        assert info.value.details["clause"] == "B -match 2"
