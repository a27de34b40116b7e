"""64-bit integer settings."""

from __future__ import annotations

import re
from typing import Any

from .setting import Setting, SettingType

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")
_LEADING_DIGITS = re.compile(r"[0-9]*")


def _clamp(value: int) -> int:
    return max(INT64_MIN, min(INT64_MAX, value))


class Int64Setting(Setting):
    """A setting holding a signed 64-bit integer."""

    setting_type = SettingType.INT64

    def _validate(self, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"int64 setting {self.name} needs an integer, got {value!r}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"value out of range: {value}")
        return super()._validate(value)

    def parse(self, text: str) -> int:
        """Parse base-10 text with an optional sign, rejecting anything else."""
        if _DECIMAL.fullmatch(text) is None:
            raise ValueError(f"invalid syntax: {text!r}")
        value = int(text, 10)
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"value out of range: {text!r}")
        return self._validate(value)

    def stringify(self, value: Any) -> str:
        return str(int(value))

    def coerce(self, value: Any) -> int:
        """Convert a decoded JSON value loosely; unreadable input becomes 0."""
        if value is None:
            return 0
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return _clamp(value)
        if isinstance(value, float):
            if value != value:
                return 0
            if value in (float("inf"), float("-inf")):
                return INT64_MAX if value > 0 else INT64_MIN
            return _clamp(int(value))
        if isinstance(value, str):
            return self._leading_int(value)
        if isinstance(value, (list, tuple, dict)):
            return 1 if value else 0
        return 0

    @staticmethod
    def _leading_int(text: str) -> int:
        if not text:
            return 0
        sign = -1 if text[0] == "-" else 1
        start = 1 if text[0] in "+-" else 0
        digits = _LEADING_DIGITS.match(text, start).group()
        if not digits:
            return 0
        return _clamp(sign * int(digits))