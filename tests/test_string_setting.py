import pytest

from synctv.setting import SettingAlreadyInitedError, SettingsRegistry, SettingType
from synctv.string_setting import StringSetting


def _no_spaces(value):
    if " " in value:
        raise ValueError("spaces not allowed")


def test_parse_and_stringify_are_identity():
    s = StringSetting("s", "abc", "g")
    assert s.parse("xyz") == "xyz"
    assert s.stringify("xyz") == "xyz"
    assert s.setting_type is SettingType.STRING


def test_validator_rejects_in_parse_and_set():
    s = StringSetting("s", "abc", "g", validator=_no_spaces)
    with pytest.raises(ValueError):
        s.parse("a b")
    with pytest.raises(ValueError):
        s.set("a b")
    assert s.get() == "abc"


@pytest.mark.parametrize(
    "value, expected",
    [("text", "text"), (None, ""), (True, "true"), (3, "3")],
)
def test_coerce(value, expected):
    assert StringSetting("s", "", "g").coerce(value) == expected


def test_read_only_setting_pattern():
    def refuse(_s, _v):
        raise ValueError("version can not be set")

    registry = SettingsRegistry()
    s = registry.new(
        StringSetting(
            "version",
            "placeholder string",
            "server",
            before_init=lambda _s, _v: "dev",
            before_set=refuse,
        )
    )
    assert registry.pop_need_init() is s
    s.init("anything")
    assert s.get() == "dev"
    with pytest.raises(ValueError, match="version can not be set"):
        registry.set_value("version", "other")
    assert s.get() == "dev"
    assert s.default_string() == "placeholder string"
    with pytest.raises(SettingAlreadyInitedError):
        s.init("again")


def test_set_round_trip_persists_text():
    saved = []
    s = StringSetting("s", "abc", "g")
    s.bind(lambda name, text: saved.append((name, text)))
    s.set("def")
    assert s.get() == "def"
    assert saved == [("s", "def")]
    assert str(s) == "def"