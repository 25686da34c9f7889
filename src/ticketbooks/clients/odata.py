"""Builder for OData `$filter` expressions as used by Exact Online.

Tokens are separated by `+` so the expression can be placed in a query
string as-is:

    >>> Filter("Code", FilterOp.EQUALS, "TRX").and_("Active", FilterOp.EQUALS, True).finalize()
    "Code+eq+'TRX'+and+Active+eq+true"

Values are not escaped. Callers must not pass values containing quotes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FilterOp(str, Enum):
    EQUALS = "eq"
    NOT_EQUAL = "ne"
    GREATER_THAN = "gt"
    GREATER_THAN_EQUALS = "ge"
    LESS_THAN = "lt"
    LESS_THAN_EQUALS = "le"


@dataclass(frozen=True)
class Guid:
    """An Exact identifier, serialized as `guid'<value>'`."""

    value: str

    def serialize(self) -> str:
        return f"guid'{self.value}'"

    def __str__(self) -> str:
        return self.value


FilterValue = str | int | bool | Guid


def serialize_value(value: FilterValue) -> str:
    """Render a literal for use on the right-hand side of a comparison."""
    if isinstance(value, Guid):
        return value.serialize()
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return f"'{value}'"


@dataclass(frozen=True)
class FilterFunction:
    """A string function applied to the key before comparing."""

    name: str
    argument: FilterValue

    @classmethod
    def starts_with(cls, argument: FilterValue) -> FilterFunction:
        return cls("startswith", argument)

    @classmethod
    def ends_with(cls, argument: FilterValue) -> FilterFunction:
        return cls("endswith", argument)

    @classmethod
    def substring_of(cls, argument: FilterValue) -> FilterFunction:
        return cls("substringof", argument)

    def apply(self, key: str) -> str:
        argument = serialize_value(self.argument)
        # OData v2 puts the needle first for substringof only
        if self.name == "substringof":
            return f"{self.name}({argument},{key})"
        return f"{self.name}({key},{argument})"


class Filter:
    """Linear filter expression, built by chaining and consumed by `finalize`."""

    def __init__(self, key: str, op: FilterOp, value: FilterValue):
        self._expression = self._format(key, op, value)
        self._finalized = False

    @staticmethod
    def _format(key: str, op: FilterOp, value: FilterValue) -> str:
        return f"{key}+{op.value}+{serialize_value(value)}"

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("Filter has already been finalized")

    def _push(self, conjunction: str, clause: str) -> Filter:
        self._check_open()
        self._expression = f"{self._expression}+{conjunction}+{clause}"
        return self

    def and_(self, key: str, op: FilterOp, value: FilterValue) -> Filter:
        return self._push("and", self._format(key, op, value))

    def or_(self, key: str, op: FilterOp, value: FilterValue) -> Filter:
        return self._push("or", self._format(key, op, value))

    def function(
        self,
        key: str,
        function: FilterFunction,
        op: FilterOp,
        value: FilterValue,
        conjunction: str = "and",
    ) -> Filter:
        """Chain `<function(key)> <op> <value>`, e.g. `startswith(Code,'TR')+eq+true`."""
        return self._push(conjunction, self._format(function.apply(key), op, value))

    def join_and(self, other: Filter) -> Filter:
        return self._join(other, "and")

    def join_or(self, other: Filter) -> Filter:
        return self._join(other, "or")

    def _join(self, other: Filter, conjunction: str) -> Filter:
        self._check_open()
        other._check_open()
        # The joined builder is consumed like a finalized one
        other._finalized = True
        self._expression = f"({self._expression}+{conjunction}+{other._expression})"
        return self

    def finalize(self) -> str:
        """Return the expression. The builder cannot be used afterwards.

        One pair of parentheses wrapping the whole expression is dropped.
        """
        self._check_open()
        self._finalized = True

        expression = self._expression
        if expression.startswith("(") and expression.endswith(")"):
            expression = expression[1:-1]
        return expression

    def __repr__(self) -> str:
        return f"Filter({self._expression!r})"
