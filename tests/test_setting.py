import pytest

from synctv.bool_setting import BoolSetting
from synctv.setting import (
    Setting,
    SettingAlreadyInitedError,
    SettingExistsError,
    SettingNotFoundError,
    SettingsRegistry,
)
from synctv.string_setting import StringSetting


def _reject_empty(value):
    if value == "":
        raise ValueError("empty")


def test_get_returns_default_before_init():
    s = Setting("site", "home", "server")
    assert s.get() == "home"
    assert s.inited is False
    assert s.default_string() == "home"


def test_init_marks_inited_and_second_init_fails():
    s = Setting("site", "home", "server")
    s.init("away")
    assert s.get() == "away"
    assert s.inited is True
    with pytest.raises(SettingAlreadyInitedError, match="setting already inited"):
        s.init("again")
    assert s.get() == "away"


def test_before_init_replaces_value_and_after_init_sees_it():
    seen = []
    s = Setting(
        "site",
        "home",
        "server",
        before_init=lambda _s, v: v.upper(),
        after_init=lambda _s, v: seen.append(v),
    )
    s.init("abc")
    assert s.get() == "ABC"
    assert seen == ["ABC"]


def test_set_persists_then_stores_then_calls_after_set():
    saved = []
    changed = []
    s = Setting("site", "home", "server", after_set=lambda _s, v: changed.append(v))
    s.bind(lambda name, text: saved.append((name, text)))
    s.set("away")
    assert saved == [("site", "away")]
    assert changed == ["away"]
    assert str(s) == "away"


def test_persist_failure_keeps_old_value():
    def fail(name, text):
        raise OSError("disk")

    s = Setting("site", "home", "server")
    s.bind(fail)
    with pytest.raises(OSError):
        s.set("away")
    assert s.get() == "home"


def test_before_set_refusal_prevents_persist():
    saved = []

    def refuse(_s, _v):
        raise PermissionError("read only")

    s = Setting("site", "home", "server", before_set=refuse)
    s.bind(lambda name, text: saved.append(name))
    with pytest.raises(PermissionError):
        s.set_string("away")
    assert saved == []
    assert s.get() == "home"


def test_validator_applies_to_set_and_set_string():
    s = Setting("site", "home", "server", validator=_reject_empty)
    with pytest.raises(ValueError):
        s.set("")
    with pytest.raises(ValueError):
        s.set_string("")
    assert s.get() == "home"


def test_after_get_transforms_reads():
    s = Setting("site", "home", "server", after_get=lambda _s, v: v + "!")
    assert s.get() == "home!"
    assert str(s) == "home!"


def test_new_refuses_duplicate_name():
    registry = SettingsRegistry()
    registry.new(Setting("a", "x", "g"))
    with pytest.raises(SettingExistsError):
        registry.new(Setting("a", "y", "g"))


def test_cover_replaces_existing():
    registry = SettingsRegistry()
    registry.new(Setting("a", "x", "g"))
    replacement = registry.cover(Setting("a", "y", "g"))
    assert registry.load("a") is replacement
    assert registry.group("g") == {"a": replacement}


def test_load_with_kind_mismatch_returns_none():
    registry = SettingsRegistry()
    registry.new(StringSetting("a", "x", "g"))
    assert registry.load("a", BoolSetting) is None
    assert registry.load("missing") is None
    assert registry.load("a", StringSetting).get() == "x"


def test_load_or_new_returns_existing_of_same_kind():
    registry = SettingsRegistry()
    first = registry.load_or_new(StringSetting("a", "x", "g"))
    second = registry.load_or_new(StringSetting("a", "y", "g"))
    assert second is first
    assert second.get() == "x"


def test_pop_need_init_highest_priority_first_and_skips_inited():
    registry = SettingsRegistry()
    low = registry.new(Setting("low", "", "g", init_priority=1))
    high = registry.new(Setting("high", "", "g", init_priority=5))
    done = registry.new(Setting("done", "", "g", init_priority=9))
    done.init("v")
    assert registry.pop_need_init() is high
    assert registry.pop_need_init() is low
    assert registry.pop_need_init() is None


def test_cover_does_not_duplicate_pending_entry():
    registry = SettingsRegistry()
    registry.new(Setting("a", "", "g"))
    replacement = registry.cover(Setting("a", "", "g"))
    assert registry.pop_need_init() is replacement
    assert registry.pop_need_init() is None


def test_registry_binds_persist():
    saved = []
    registry = SettingsRegistry(lambda name, text: saved.append((name, text)))
    registry.new(StringSetting("title", "x", "g"))
    registry.set_value("title", "y")
    assert saved == [("title", "y")]
    assert registry.load("title").get() == "y"


def test_set_value_unknown_name():
    registry = SettingsRegistry()
    with pytest.raises(SettingNotFoundError, match="setting nope not found"):
        registry.set_value("nope", 1)


def test_group_lookup_and_groups():
    registry = SettingsRegistry()
    a = registry.new(Setting("a", "", "one"))
    b = registry.new(Setting("b", "", "two"))
    assert registry.groups() == {"one": {"a": a}, "two": {"b": b}}
    with pytest.raises(SettingNotFoundError, match="group not found"):
        registry.group("three")
    assert "a" in registry
    assert len(registry) == 2