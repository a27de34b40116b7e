"""String settings."""

from __future__ import annotations

from typing import Any

from .setting import Setting, SettingType


class StringSetting(Setting):
    """A setting holding a string."""

    setting_type = SettingType.STRING

    def parse(self, text: str) -> str:
        return self._validate(text)

    def stringify(self, value: Any) -> str:
        return value

    def coerce(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        return super().coerce(value)