# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
Compiler from a restricted predicate syntax to the service ``$filter`` grammar.

A clause has exactly three tokens::

    $_.Age -gt 5
    Name -eq 'Contoso'

The field is a bare identifier (optionally written ``$_.Field``), the operator
is one of ``-eq -ne -gt -ge -lt -le`` and the literal is a quoted string or a
number. Anything else is rejected with
:class:`~AzureStorage.Tables.core.errors.CompileError`; a single bad clause
aborts the whole compilation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

from ..core._error_codes import (
    COMPILE_ARITY,
    COMPILE_BAD_FIELD,
    COMPILE_BAD_JOIN,
    COMPILE_BAD_LITERAL,
    COMPILE_BAD_OPERATOR,
    COMPILE_EMPTY,
    COMPILE_INTERPOLATION,
    COMPILE_TOO_LONG,
)
from ..core.errors import CompileError

MAX_CLAUSE_LENGTH = 512

OPERATORS = {
    "-eq": "eq",
    "-ne": "ne",
    "-gt": "gt",
    "-ge": "ge",
    "-lt": "lt",
    "-le": "le",
}

JOINS = ("and", "or")

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<field>(?:\$_\.)?[A-Za-z_][A-Za-z0-9_]*)
      | (?P<op>-[A-Za-z]+)
      | (?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)
      | (?P<squote>'(?:[^']|'')*')
      | (?P<dquote>"(?:[^"`]|`.|"")*")
      | (?P<other>\S+)
    )
    """,
    re.VERBOSE,
)

# $name or $(...) inside a double-quoted string
_INTERPOLATION_RE = re.compile(r"(?<!`)\$(?:\(|\{|[A-Za-z_])")


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str


def _tokenize(clause: str) -> List[_Token]:
    tokens: List[_Token] = []
    pos = 0
    text = clause.rstrip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            break
        kind = m.lastgroup or "other"
        tokens.append(_Token(kind, m.group(kind)))
        pos = m.end()
    return tokens


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class FilterCompiler:
    """
    Translate predicate clauses into a ``$filter`` expression.

    :param max_clause_length: Longest clause accepted, in characters.
    :type max_clause_length: int

    Example::

        FilterCompiler().compile(["$_.Age -gt 5", "Name -eq 'Ann'"])
        # "(Age gt '5') and (Name eq 'Ann')"
    """

    def __init__(self, max_clause_length: int = MAX_CLAUSE_LENGTH) -> None:
        self.max_clause_length = max_clause_length

    def compile_clause(self, clause: str) -> str:
        """
        Compile a single ``field OP literal`` clause.

        :raises ~AzureStorage.Tables.core.errors.CompileError: If the clause is
            outside the grammar.
        """
        if not isinstance(clause, str) or not clause.strip():
            raise CompileError("Filter clause is empty.", subcode=COMPILE_EMPTY, details={"clause": clause})
        if len(clause) > self.max_clause_length:
            raise CompileError(
                f"Will not compile filter clauses longer than {self.max_clause_length} characters.",
                subcode=COMPILE_TOO_LONG,
                details={"clause": clause[:64], "length": len(clause)},
            )

        tokens = _tokenize(clause)
        if len(tokens) != 3:
            raise CompileError(
                f"Filter clause must be 'field -op literal'; got {len(tokens)} tokens.",
                subcode=COMPILE_ARITY,
                details={"clause": clause},
            )
        field_tok, op_tok, lit_tok = tokens

        if field_tok.kind != "field":
            if field_tok.text.startswith("$"):
                raise CompileError(
                    "The field must be written as $_.Name or Name; variables are not allowed.",
                    subcode=COMPILE_INTERPOLATION,
                    details={"clause": clause, "token": field_tok.text},
                )
            raise CompileError(
                f"{field_tok.text!r} is not a valid field name.",
                subcode=COMPILE_BAD_FIELD,
                details={"clause": clause, "token": field_tok.text},
            )
        field = field_tok.text[3:] if field_tok.text.startswith("$_.") else field_tok.text

        op = OPERATORS.get(op_tok.text.lower()) if op_tok.kind == "op" else None
        if op is None:
            raise CompileError(
                f'{op_tok.text} is not a valid operator. Please use "-gt", "-lt", "-ge", "-le", "-ne", "-eq"',
                subcode=COMPILE_BAD_OPERATOR,
                details={"clause": clause, "token": op_tok.text},
            )

        return f"{field} {op} {_quote(self._literal(lit_tok, clause))}"

    def _literal(self, tok: _Token, clause: str) -> str:
        if tok.kind == "number":
            return tok.text
        if tok.kind == "squote":
            if "$(" in tok.text:
                raise CompileError(
                    "Subexpressions are not allowed in filter literals.",
                    subcode=COMPILE_INTERPOLATION,
                    details={"clause": clause, "token": tok.text},
                )
            return tok.text[1:-1].replace("''", "'")
        if tok.kind == "dquote":
            inner = tok.text[1:-1]
            if _INTERPOLATION_RE.search(inner):
                raise CompileError(
                    "Variable expansion is not allowed in filter literals.",
                    subcode=COMPILE_INTERPOLATION,
                    details={"clause": clause, "token": tok.text},
                )
            return re.sub(r"`(.)", r"\1", inner.replace('""', '"'))
        if tok.text.startswith("$"):
            raise CompileError(
                "Variables are not allowed in filter literals.",
                subcode=COMPILE_INTERPOLATION,
                details={"clause": clause, "token": tok.text},
            )
        raise CompileError(
            "The operator must be followed by a string or a number.",
            subcode=COMPILE_BAD_LITERAL,
            details={"clause": clause, "token": tok.text},
        )

    def compile(self, clauses: Union[str, Sequence[str]], join: str = "and") -> str:
        """
        Compile one or more clauses combined under a single boolean ``join``.

        A single clause is returned bare; several are parenthesised and joined,
        e.g. ``(A eq '1') or (B eq '2')``.

        :param clauses: One clause or a sequence of clauses.
        :param join: ``"and"`` (default) or ``"or"``.
        :rtype: str
        :raises ~AzureStorage.Tables.core.errors.CompileError: If any clause or the join is invalid.
        """
        j = (join or "").strip().lower()
        if j not in JOINS:
            raise CompileError(
                f"Join must be 'and' or 'or', got {join!r}.", subcode=COMPILE_BAD_JOIN, details={"join": join}
            )
        items: Iterable[str] = [clauses] if isinstance(clauses, str) else list(clauses or [])
        compiled = [self.compile_clause(c) for c in items]
        if not compiled:
            raise CompileError("At least one filter clause is required.", subcode=COMPILE_EMPTY)
        if len(compiled) == 1:
            return compiled[0]
        return f" {j} ".join(f"({c})" for c in compiled)


def compile_filter(clauses: Union[str, Sequence[str]], join: str = "and") -> str:
    """Compile ``clauses`` with the default clause length bound."""
    return FilterCompiler().compile(clauses, join)


__all__ = ["FilterCompiler", "compile_filter", "OPERATORS", "MAX_CLAUSE_LENGTH"]
