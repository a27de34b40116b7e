"""64-bit floating point settings."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

from .setting import Setting, SettingType

_DECIMAL_FLOAT = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL = re.compile(r"([+-]?)(inf|infinity|nan)", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"[0-9.]*")


class Float64Setting(Setting):
    """A setting holding a double-precision float."""

    setting_type = SettingType.FLOAT64

    def _validate(self, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"float64 setting {self.name} needs a number, got {value!r}")
        return super()._validate(float(value))

    def parse(self, text: str) -> float:
        """Parse decimal, hexadecimal or special (inf/nan) float text."""
        special = _SPECIAL.fullmatch(text)
        if special is not None:
            sign, word = special.groups()
            if word.lower() == "nan":
                if sign:
                    raise ValueError(f"invalid syntax: {text!r}")
                value = math.nan
            else:
                value = -math.inf if sign == "-" else math.inf
            return self._validate(value)
        if _HEX_FLOAT.fullmatch(text) is not None:
            try:
                value = float.fromhex(text)
            except OverflowError as exc:
                raise ValueError(f"value out of range: {text!r}") from exc
        elif _DECIMAL_FLOAT.fullmatch(text) is not None:
            value = float(text)
            if math.isinf(value):
                raise ValueError(f"value out of range: {text!r}")
        else:
            raise ValueError(f"invalid syntax: {text!r}")
        return self._validate(value)

    def stringify(self, value: Any) -> str:
        """Shortest text that reads back exactly, never in exponent form."""
        value = float(value)
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        return format(Decimal(repr(value)).normalize(), "f")

    def coerce(self, value: Any) -> float:
        """Convert a decoded JSON value loosely; unreadable input becomes 0."""
        if value is None:
            return 0.0
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return self._leading_float(value)
        if isinstance(value, (list, tuple, dict)):
            return 1.0 if value else 0.0
        return 0.0

    @staticmethod
    def _leading_float(text: str) -> float:
        if not text:
            return 0.0
        sign = -1.0 if text[0] == "-" else 1.0
        start = 1 if text[0] in "+-" else 0
        number = _LEADING_NUMBER.match(text, start).group()
        try:
            return sign * float(number)
        except ValueError:
            return 0.0