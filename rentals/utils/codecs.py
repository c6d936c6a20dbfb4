"""Column codecs.

Each codec converts between the value the application works with and the
value stored in a column: ``encode`` prepares a bind parameter, ``decode``
turns a fetched column back into the application value.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List
import json
import math

from rentals.errors import InvalidInputError

CENTS = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


class JsonStringArray:
    """Ordered sequences of strings stored as JSON text"""

    @staticmethod
    def _split(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @staticmethod
    def encode(value: Any) -> str:
        if not value:
            return "[]"
        if isinstance(value, (list, tuple)):
            return json.dumps([str(item) for item in value])
        if isinstance(value, str):
            trimmed = value.strip()
            if trimmed.startswith("[") and trimmed.endswith("]"):
                try:
                    parsed = json.loads(trimmed)
                except json.JSONDecodeError:
                    parsed = None
                if isinstance(parsed, list):
                    return json.dumps([str(item) for item in parsed])
            return json.dumps(JsonStringArray._split(trimmed))
        return "[]"

    @staticmethod
    def decode(value: Any) -> List[str]:
        if not value:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                # legacy comma-separated rows
                return JsonStringArray._split(value)
            return list(parsed) if isinstance(parsed, list) else []
        return []


class BooleanFlag:
    """Booleans stored as 0/1 integers"""

    TRUTHY = (True, 1, "1", "true", "True", "TRUE")

    @staticmethod
    def encode(value: Any) -> int:
        # bool is an int subclass, 1 == True
        if isinstance(value, str):
            value = value.strip()
        return 1 if value in BooleanFlag.TRUTHY else 0

    @staticmethod
    def decode(value: Any) -> bool:
        return value is not None and int(value) == 1


class DecimalMoney:
    """Fixed-point amounts with two decimal places.

    Text that is not a number falls back; a number that does not fit the
    DECIMAL(10, 2) columns is rejected with InvalidInputError.
    """

    @staticmethod
    def _quantize(value: Any, fallback: Decimal) -> Decimal:
        if value is None or value == "":
            return fallback
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            return fallback
        if not amount.is_finite():
            return fallback
        if abs(amount) > MAX_AMOUNT:
            raise InvalidInputError(f"Amount out of range: {value}")
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def encode(value: Any, fallback: Decimal = Decimal("0.00")) -> Decimal:
        return DecimalMoney._quantize(value, fallback)

    @staticmethod
    def decode(value: Any) -> Decimal:
        return DecimalMoney._quantize(value, Decimal("0.00"))


def to_float(value: Any, fallback: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def to_int(value: Any, fallback: int = 0) -> int:
    number = to_float(value, float("nan"))
    return int(number) if math.isfinite(number) else fallback
