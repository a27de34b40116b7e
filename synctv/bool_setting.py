"""Boolean settings."""

from __future__ import annotations

from typing import Any

from .setting import Setting, SettingType

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class BoolSetting(Setting):
    """A setting holding a boolean."""

    setting_type = SettingType.BOOL

    def parse(self, text: str) -> bool:
        if text in _TRUE:
            value = True
        elif text in _FALSE:
            value = False
        else:
            raise ValueError(f"invalid boolean syntax: {text!r}")
        return self._validate(value)

    def stringify(self, value: Any) -> str:
        return "true" if value else "false"

    def coerce(self, value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            # Any non-whitespace text other than a lone "0" counts as true.
            return value != "0" and value.strip(" \n\r\t") != ""
        if isinstance(value, (list, tuple, dict)):
            return len(value) > 0
        return bool(value)