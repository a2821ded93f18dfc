from decimal import Decimal

import pytest

from shopsync.utils.helpers import external_id, text, to_decimal, to_int


def test_to_decimal_quantizes_to_cents():
    assert to_decimal("19.999") == Decimal("20.00")
    assert to_decimal(5) == Decimal("5.00")
    assert to_decimal("", default=Decimal("0.00")) == Decimal("0.00")


@pytest.mark.parametrize("value", ["NaN", "nan", "Infinity", "-Infinity", "sNaN", True, "1e40", [1]])
def test_to_decimal_rejects_non_finite_and_non_numeric(value):
    with pytest.raises(ValueError):
        to_decimal(value)


def test_to_int_accepts_whole_numbers_only():
    assert to_int("3") == 3
    assert to_int(4.0) == 4
    assert to_int(None, default=0) == 0

    for value in (2.9, float("inf"), True, False, "2.5", {"n": 1}):
        with pytest.raises(ValueError):
            to_int(value)


def test_external_id_and_text_reject_objects():
    assert external_id(1001) == "1001"
    assert text(42) == "42"

    with pytest.raises(ValueError):
        external_id({"id": 1})
    with pytest.raises(ValueError):
        text(["a"])
