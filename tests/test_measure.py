from decimal import Decimal

import pytest

from eventstore.measure import Measure


def test_parse_splits_value_and_unit():
    m = Measure.parse("21.5 °C")
    assert m.value == Decimal("21.5")
    assert m.unit == "°C"

def test_str_is_canonical():
    assert str(Measure(value=Decimal("3.50"), unit="kWh")) == "3.50 kWh"
    assert str(Measure(value=7)) == "7"

def test_float_goes_through_repr():
    assert Measure(value=0.1, unit="A").value == Decimal("0.1")
    assert Measure(value=0.1, unit="A").magnitude == 0.1

@pytest.mark.parametrize("text", ["", "abc W", "NaN W"])
def test_parse_rejects_non_numbers(text):
    with pytest.raises(ValueError):
        Measure.parse(text)
