from datetime import date, datetime
from decimal import Decimal

import pytest

from intacct_toolkit.data.filters import (
    AND,
    EQ,
    GE,
    GT,
    IN,
    IS_NULL,
    LE,
    LIKE,
    LT,
    NE,
    NOT,
    OR,
    Comparison,
    quote_query_value,
    where,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Acme", "'Acme'"),
        ("O'Brien", "'O\\'Brien'"),
        ("C:\\temp", "'C:\\\\temp'"),
        (True, "'true'"),
        (False, "'false'"),
        (100, "100"),
        (12.5, "12.5"),
        (Decimal("1.10"), "1.10"),
        (date(2024, 1, 31), "'01/31/2024'"),
        (datetime(2024, 1, 31, 13, 5, 0), "'01/31/2024 13:05:00'"),
        (["USD", "CAD"], "('USD','CAD')"),
        ((1, 2), "(1,2)"),
    ],
)
def test_quote_query_value(value, expected):
    assert quote_query_value(value) == expected


def test_quote_query_value_rejects_unknown_types():
    with pytest.raises(TypeError):
        quote_query_value(object())


def test_comparisons():
    assert str(EQ("STATUS", "T")) == "STATUS = 'T'"
    assert str(NE("STATUS", "T")) == "STATUS != 'T'"
    assert str(GT("TOTALDUE", 100)) == "TOTALDUE > 100"
    assert str(GE("TOTALDUE", 100)) == "TOTALDUE >= 100"
    assert str(LT("TOTALDUE", 100)) == "TOTALDUE < 100"
    assert str(LE("TOTALDUE", 100)) == "TOTALDUE <= 100"
    assert str(LIKE("NAME", "Acme%")) == "NAME LIKE 'Acme%'"
    assert str(IN("CURRENCY", ["USD", "CAD"])) == "CURRENCY IN ('USD','CAD')"
    assert str(IS_NULL("PARENTID")) == "PARENTID IS NULL"


def test_comparison_validation():
    with pytest.raises(ValueError):
        Comparison("NAME", "~=", "x")
    with pytest.raises(TypeError):
        Comparison("CURRENCY", "IN", "USD")


def test_nested_boolean_operations():
    condition = OR(EQ("NAME", "Acme"), AND(GT("TOTALDUE", 100), IN("CURRENCY", ["USD", "CAD"])))
    assert str(condition) == "NAME = 'Acme' OR (TOTALDUE > 100 AND CURRENCY IN ('USD','CAD'))"


def test_negation():
    assert str(NOT(EQ("STATUS", "T"))) == "STATUS != 'T'"
    assert str(NOT(IS_NULL("PARENTID"))) == "PARENTID IS NOT NULL"
    assert str(NOT(AND(EQ("STATUS", "T"), LT("TOTALDUE", 5)))) == (
        "STATUS != 'T' OR TOTALDUE >= 5"
    )
    assert NOT(EQ("STATUS", "T")).negate() == EQ("STATUS", "T")


def test_where_keywords():
    condition = where(STATUS="T", WHENMODIFIED__gt=date(2024, 1, 1))
    assert str(condition) == "STATUS = 'T' AND WHENMODIFIED > '01/01/2024'"

    assert str(where(PARENTID=None)) == "PARENTID IS NULL"
    assert str(where(PARENTID__isnull=False)) == "PARENTID IS NOT NULL"
    assert str(where(NAME__not_like="Test%")) == "NAME NOT LIKE 'Test%'"
    assert str(where(RECORDNO__not_in=[1, 2])) == "RECORDNO NOT IN (1,2)"
    assert str(where(TOTALDUE__lte=10)) == "TOTALDUE <= 10"


def test_where_combines_positional_conditions():
    condition = where(OR(EQ("STATUS", "T"), EQ("STATUS", "F")), NAME__like="A%")
    assert str(condition) == "(STATUS = 'T' OR STATUS = 'F') AND NAME LIKE 'A%'"


def test_where_errors():
    with pytest.raises(ValueError, match="Unknown comparison suffix"):
        where(NAME__startswith="A")
    with pytest.raises(ValueError):
        where()
