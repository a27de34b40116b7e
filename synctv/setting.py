"""Typed runtime settings with lifecycle hooks, and the registry that holds them."""

from __future__ import annotations

import heapq
import itertools
import json
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

Persist = Callable[[str, str], None]


class SettingType(str, Enum):
    """The value kind a setting stores."""

    BOOL = "bool"
    INT64 = "int64"
    FLOAT64 = "float64"
    STRING = "string"


class SettingAlreadyInitedError(Exception):
    """Raised when a setting is initialised a second time."""

    def __init__(self, message: str = "setting already inited") -> None:
        super().__init__(message)


class SettingNotFoundError(LookupError):
    """Raised when a setting or a group of settings does not exist."""


class SettingExistsError(Exception):
    """Raised when a setting is registered under a name already in use."""


class Setting:
    """A named setting holding a text value; typed settings subclass it.

    Hooks receive the setting itself and the value. ``before_init`` and
    ``before_set`` return the value to store and may raise to refuse it;
    ``after_get`` returns the value handed to callers. A validator raises
    to reject a value.
    """

    setting_type: Optional[SettingType] = None

    def __init__(
        self,
        name: str,
        default: Any,
        group: str,
        *,
        init_priority: int = 0,
        validator: Optional[Callable[[Any], None]] = None,
        before_init: Optional[Callable[["Setting", Any], Any]] = None,
        before_set: Optional[Callable[["Setting", Any], Any]] = None,
        after_init: Optional[Callable[["Setting", Any], None]] = None,
        after_set: Optional[Callable[["Setting", Any], None]] = None,
        after_get: Optional[Callable[["Setting", Any], Any]] = None,
    ) -> None:
        self.name = name
        self.group = group
        self.default = default
        self.init_priority = init_priority
        self.validator = validator
        self.before_init = before_init
        self.before_set = before_set
        self.after_init = after_init
        self.after_set = after_set
        self.after_get = after_get
        self._persist: Optional[Persist] = None
        self._lock = threading.RLock()
        self._value = default
        self._inited = False

    @property
    def inited(self) -> bool:
        return self._inited

    def _validate(self, value: Any) -> Any:
        if self.validator is not None:
            self.validator(value)
        return value

    def parse(self, text: str) -> Any:
        """Convert stored text to a value and validate it."""
        return self._validate(text)

    def stringify(self, value: Any) -> str:
        """Render a value as the text that is stored."""
        return str(value)

    def coerce(self, value: Any) -> Any:
        """Loosely convert an arbitrary decoded JSON value to this setting's kind."""
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        return json.dumps(value, separators=(",", ":"))

    def get(self) -> Any:
        with self._lock:
            value = self._value
        if self.after_get is not None:
            value = self.after_get(self, value)
        return value

    def init(self, text: str) -> None:
        """Load the stored text once at startup."""
        if self._inited:
            raise SettingAlreadyInitedError()
        value = self.parse(text)
        if self.before_init is not None:
            value = self.before_init(self, value)
        self._store(value)
        if self.after_init is not None:
            self.after_init(self, value)
        self._inited = True

    def set(self, value: Any) -> None:
        """Validate, persist and store a new value."""
        value = self._validate(value)
        if self.before_set is not None:
            value = self.before_set(self, value)
        self._commit(value)

    def set_string(self, text: str) -> None:
        """Parse text, then persist and store the resulting value."""
        value = self.parse(text)
        if self.before_set is not None:
            value = self.before_set(self, value)
        self._commit(value)

    def default_string(self) -> str:
        return self.stringify(self.default)

    def bind(self, persist: Optional[Persist]) -> None:
        """Attach the callable that saves ``(name, text)`` on every change."""
        self._persist = persist

    def _store(self, value: Any) -> None:
        with self._lock:
            self._value = value

    def _commit(self, value: Any) -> None:
        if self._persist is not None:
            self._persist(self.name, self.stringify(value))
        self._store(value)
        if self.after_set is not None:
            self.after_set(self, value)

    def __str__(self) -> str:
        return self.stringify(self.get())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, group={self.group!r}, value={self.get()!r})"


class SettingsRegistry:
    """Settings by name and by group, plus a priority queue of settings awaiting init."""

    def __init__(self, persist: Optional[Persist] = None) -> None:
        self._persist = persist
        self._settings: Dict[str, Setting] = {}
        self._groups: Dict[str, Dict[str, Setting]] = {}
        self._pending: List[Tuple[int, int, Setting]] = []
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def __contains__(self, name: object) -> bool:
        return name in self._settings

    def __len__(self) -> int:
        return len(self._settings)

    def new(self, setting: Setting) -> Setting:
        """Register a setting whose name must not be taken yet."""
        with self._lock:
            if setting.name in self._settings:
                raise SettingExistsError(f"setting {setting.name} already exists")
            return self.cover(setting)

    def cover(self, setting: Setting) -> Setting:
        """Register a setting, replacing any setting of the same name."""
        with self._lock:
            setting.bind(self._persist)
            self._settings[setting.name] = setting
            self._groups.setdefault(setting.group, {})[setting.name] = setting
            self._push_need_init(setting)
            return setting

    def load(self, name: str, kind: Optional[type] = None) -> Optional[Setting]:
        """Return the named setting, or None if absent or not of ``kind``."""
        with self._lock:
            setting = self._settings.get(name)
        if setting is None:
            return None
        if kind is not None and not isinstance(setting, kind):
            return None
        return setting

    def load_or_new(self, setting: Setting) -> Setting:
        """Return an existing setting of the same name and kind, else register this one."""
        with self._lock:
            existing = self.load(setting.name, type(setting))
            if existing is not None:
                return existing
            return self.cover(setting)

    def _push_need_init(self, setting: Setting) -> None:
        remaining = [entry for entry in self._pending if entry[2].name != setting.name]
        if len(remaining) != len(self._pending):
            self._pending = remaining
            heapq.heapify(self._pending)
        heapq.heappush(
            self._pending, (-setting.init_priority, next(self._counter), setting)
        )

    def pop_need_init(self) -> Optional[Setting]:
        """Return the highest-priority setting not yet initialised, or None."""
        with self._lock:
            while self._pending:
                _, _, setting = heapq.heappop(self._pending)
                if not setting.inited:
                    return setting
            return None

    def set_value(self, name: str, value: Any) -> None:
        """Set a setting from a loosely typed value such as decoded JSON."""
        setting = self.load(name)
        if setting is None:
            raise SettingNotFoundError(f"setting {name} not found")
        setting.set(setting.coerce(value))

    def group(self, group: str) -> Dict[str, Setting]:
        """Return the settings of one group by name."""
        with self._lock:
            members = self._groups.get(group)
            if members is None:
                raise SettingNotFoundError("group not found")
            return dict(members)

    def groups(self) -> Dict[str, Dict[str, Setting]]:
        """Return every group with its settings by name."""
        with self._lock:
            return {name: dict(members) for name, members in self._groups.items()}