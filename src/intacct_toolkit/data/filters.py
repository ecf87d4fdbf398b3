"""
Builders for ``readByQuery`` query strings.

    >>> str(where(STATUS="T", WHENMODIFIED__gt=date(2024, 1, 1)))
    "STATUS = 'T' AND WHENMODIFIED > '01/01/2024'"
    >>> str(OR(EQ("NAME", "Acme"), AND(GT("TOTALDUE", 100), IN("CURRENCY", ["USD", "CAD"]))))
    "NAME = 'Acme' OR (TOTALDUE > 100 AND CURRENCY IN ('USD','CAD'))"
"""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, NamedTuple

BooleanOperator = Literal["AND", "OR"]
Comparator = Literal[
    "=", "!=", "<", "<=", ">", ">=", "LIKE", "NOT LIKE", "IN", "NOT IN", "IS NULL", "IS NOT NULL"
]

_NEGATED: dict[str, str] = {
    "=": "!=",
    "!=": "=",
    "<": ">=",
    ">=": "<",
    ">": "<=",
    "<=": ">",
    "LIKE": "NOT LIKE",
    "NOT LIKE": "LIKE",
    "IN": "NOT IN",
    "NOT IN": "IN",
    "IS NULL": "IS NOT NULL",
    "IS NOT NULL": "IS NULL",
}

_SUFFIXES: dict[str, Comparator] = {
    "eq": "=",
    "ne": "!=",
    "lt": "<",
    "le": "<=",
    "lte": "<=",
    "gt": ">",
    "ge": ">=",
    "gte": ">=",
    "like": "LIKE",
    "not_like": "NOT LIKE",
    "in": "IN",
    "not_in": "NOT IN",
}

_ESCAPES = str.maketrans({"\\": "\\\\", "'": "\\'"})


def quote_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "'true'" if value else "'false'"
    if isinstance(value, datetime):
        return value.strftime("'%m/%d/%Y %H:%M:%S'")
    if isinstance(value, date):
        return value.strftime("'%m/%d/%Y'")
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return "'" + value.translate(_ESCAPES) + "'"
    if isinstance(value, Iterable):
        return "(" + ",".join(quote_query_value(item) for item in value) + ")"
    raise TypeError(f"Cannot use {type(value).__name__} as a query value")


class Comparison:
    field: str
    operator: Comparator
    value: Any

    def __init__(self, field: str, op: Comparator, value: Any = None):
        if op not in _NEGATED:
            raise ValueError(f"Unsupported comparison operator {op!r}")
        if op in ("IN", "NOT IN") and (
            isinstance(value, (str, bytes)) or not isinstance(value, Iterable)
        ):
            raise TypeError(f"{op} requires a list of values")
        self.field = field
        self.operator = op
        self.value = value

    def negate(self) -> "Comparison":
        return Comparison(self.field, _NEGATED[self.operator], self.value)  # type: ignore

    def __str__(self):
        if self.operator in ("IS NULL", "IS NOT NULL"):
            return f"{self.field} {self.operator}"
        return f"{self.field} {self.operator} {quote_query_value(self.value)}"

    def __repr__(self):
        return f"Comparison({str(self)!r})"

    def __eq__(self, other):
        if not isinstance(other, Comparison):
            return NotImplemented
        return str(self) == str(other)


class BooleanOperation(NamedTuple):
    operator: BooleanOperator
    conditions: list["Comparison | BooleanOperation"]

    def negate(self) -> "BooleanOperation":
        return BooleanOperation(
            "OR" if self.operator == "AND" else "AND",
            [condition.negate() for condition in self.conditions],
        )

    def __str__(self):
        formatted_conditions = [
            str(condition)
            if isinstance(condition, Comparison)
            else "(" + str(condition) + ")"
            for condition in self.conditions
        ]
        return f" {self.operator} ".join(formatted_conditions)


class Negation(NamedTuple):
    """
    The query language has no general ``NOT``, so a negation is rewritten by
    inverting comparison operators and applying De Morgan's laws.
    """

    condition: Comparison | BooleanOperation

    def negate(self):
        return self.condition

    def __str__(self):
        return str(self.condition.negate())


Condition = Comparison | BooleanOperation | Negation


def EQ(field: str, value: Any):
    return Comparison(field, "=", value)


def NE(field: str, value: Any):
    return Comparison(field, "!=", value)


def GT(field: str, value: Any):
    return Comparison(field, ">", value)


def GE(field: str, value: Any):
    return Comparison(field, ">=", value)


def LT(field: str, value: Any):
    return Comparison(field, "<", value)


def LE(field: str, value: Any):
    return Comparison(field, "<=", value)


def LIKE(field: str, value: str):
    return Comparison(field, "LIKE", value)


def IN(field: str, values: Iterable[Any]):
    return Comparison(field, "IN", list(values))


def IS_NULL(field: str):
    return Comparison(field, "IS NULL")


def AND(*conditions: Condition):
    return BooleanOperation("AND", list(conditions))  # type: ignore


def OR(*conditions: Condition):
    return BooleanOperation("OR", list(conditions))  # type: ignore


def NOT(condition: Comparison | BooleanOperation):
    return Negation(condition)


def where(*conditions: Condition, **kwargs: Any) -> Condition:
    """
    Combine conditions with ``AND``. Keyword arguments are ``FIELD=value`` or
    ``FIELD__op=value`` where ``op`` is one of eq, ne, lt, le, gt, ge, like,
    not_like, in, not_in or isnull.
    """
    combined: list[Condition] = list(conditions)
    for key, value in kwargs.items():
        field, _, suffix = key.partition("__")
        if not suffix:
            combined.append(IS_NULL(field) if value is None else EQ(field, value))
        elif suffix == "isnull":
            combined.append(Comparison(field, "IS NULL" if value else "IS NOT NULL"))
        elif suffix in _SUFFIXES:
            combined.append(Comparison(field, _SUFFIXES[suffix], value))
        else:
            raise ValueError(f"Unknown comparison suffix {suffix!r} in {key}")
    if not combined:
        raise ValueError("where() needs at least one condition")
    if len(combined) == 1:
        return combined[0]
    return BooleanOperation("AND", combined)  # type: ignore
