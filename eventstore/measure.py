from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

class Measure(BaseModel):
    """A measured quantity: decimal magnitude plus unit symbol, e.g. ``21.5 °C``."""

    model_config = ConfigDict(frozen=True)

    value: Decimal
    unit: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _from_number(cls, v: Any) -> Any:
        # go through repr so 0.1 stays 0.1 instead of its binary expansion
        if isinstance(v, float):
            return Decimal(repr(v))
        return v

    @classmethod
    def parse(cls, text: str) -> "Measure":
        number, _, unit = text.strip().partition(" ")
        try:
            value = Decimal(number)
        except InvalidOperation as e:
            raise ValueError(f"not a measure: {text!r}") from e
        if not value.is_finite():
            raise ValueError(f"not a measure: {text!r}")
        return cls(value=value, unit=unit.strip())

    @property
    def magnitude(self) -> float:
        return float(Measure.parse(str(self)).value)

    def __str__(self) -> str:
        return f"{self.value} {self.unit}".rstrip()
