# synctv

Building blocks for a watch-together server. The package has three parts:

- typed runtime settings and a registry that holds them;
- shutdown and reload tasks that run when the process receives a signal;
- release lookup and in-place replacement of the running executable.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Settings (`synctv.setting` and the typed settings)

`Setting` is the base class. It has a name, a default value and a group. The
typed kinds are:

- `synctv.bool_setting.BoolSetting`
- `synctv.string_setting.StringSetting`
- `synctv.int_setting.Int64Setting`
- `synctv.float_setting.Float64Setting`

Every setting takes these keyword-only options: `init_priority`, `validator`,
`before_init`, `before_set`, `after_init`, `after_set` and `after_get`.

- A validator raises to reject a value.
- `before_init` and `before_set` are called with the setting and the value. They
  return the value to store, or raise to refuse it.
- `after_get` returns the value that `get()` hands back.

Methods of a setting:

- `parse(text)` turns stored text into a value.
- `stringify(value)` renders a value as text.
- `init(text)` loads the stored text once. A second call raises
  `SettingAlreadyInitedError`.
- `set(value)` and `set_string(text)` change the value. Each one persists the
  new value and then runs `after_set`.

Bad text makes `parse` raise `ValueError`. `Int64Setting` keeps values within
the signed 64-bit range. `Float64Setting` accepts decimal, hexadecimal, `inf`
and `nan` text.

`SettingsRegistry` indexes settings by name and by group:

- `new` registers a setting. It raises `SettingExistsError` if the name is
  already taken.
- `cover` registers a setting and replaces any setting of the same name.
- `load(name, kind)` returns the named setting, or `None`.
- `load_or_new(setting)` returns an existing setting of the same name and kind,
  or registers the one given.
- `group(name)` returns one group. It raises `SettingNotFoundError` for an
  unknown group.
- `groups()` returns every group.
- `pop_need_init()` returns the settings that have not been initialised yet,
  highest `init_priority` first.
- `set_value(name, value)` takes a loosely typed value, such as decoded JSON,
  and converts it to the setting's kind. It raises `SettingNotFoundError` for an
  unknown name.

The `persist` callable given to the registry is called with the setting's name
and its new text on every change.

```python
from synctv.setting import SettingsRegistry
from synctv.bool_setting import BoolSetting
from synctv.int_setting import Int64Setting

stored = {}
registry = SettingsRegistry(persist=lambda name, text: stored.__setitem__(name, text))

signup = registry.new(BoolSetting("enable_signup", True, "user"))
limit = registry.new(Int64Setting("room_limit", 10, "room", init_priority=5))

while (setting := registry.pop_need_init()) is not None:
    setting.init(stored.get(setting.name, setting.default_string()))

registry.set_value("room_limit", 20)
assert limit.get() == 20
assert stored["room_limit"] == "20"
```

## Shutdown and reload tasks (`synctv.sysnotify`)

A `SysNotify` runs the tasks registered for a signal.

- `SIGHUP`, `SIGINT`, `SIGQUIT` and `SIGTERM` run the `NotifyType.EXIT` tasks.
- `SIGUSR1` and `SIGUSR2` run the `NotifyType.RELOAD` tasks, on platforms that
  have those signals.

`parse_notify_type(signum)` maps a signal number to its `NotifyType`. It
returns `None` for a signal that has no meaning here.

Methods of `SysNotify`:

- `install()` sets the signal handlers and returns the previous handlers.
- `register(priority, task)` queues a `Task(name, notify_type, task)`. Lower
  priorities run first. It raises `ValueError` for a missing task or a missing
  type.
- `notify(signum)` delivers a signal by hand.
- `run_tasks(notify_type)` runs and drains the queued tasks of one type. It
  returns their names. A task that raises is logged, and the rest still run.
- `wait()` handles signals until an exit signal arrives. It runs the exit tasks
  and then returns. Only the first call waits.

```python
from synctv.sysnotify import NotifyType, SysNotify, Task

def close_database():
    ...

notify = SysNotify()
notify.install()
notify.register(0, Task("close database", NotifyType.EXIT, close_database))
notify.wait()
```

## Versions and self-update (`synctv.version`)

`VersionInfo(current, base_url, session)` reads release data from a
releases API at `base_url`.

- `latest()` returns the tag of the latest release. It fetches the release once
  and then reuses it.
- `check_latest()` fetches the latest release again.
- `latest_binary_url()` and `dev_binary_url()` return the download URL of the
  asset whose name starts with `synctv-<os>-<arch>` for the running platform.
  They raise `LookupError` if no asset matches.
- `need_update()` is true when the current version is older than the latest. A
  current version of `dev` never needs an update.
- `self_update(dev=False)` decides whether to update in the same way. When it
  updates, it downloads the binary and replaces the running executable. It
  returns whether it replaced the executable.

The module-level functions are:

- `compare_versions(current, latest)` returns `-1`, `0` or `1`.
- `download_with_progress(url, directory, session)` downloads a file into a
  directory and logs its progress.
- `self_replace(url, session)` swaps in the downloaded file for the running
  executable. If the swap fails, it restores the old executable.
- `executable_file()` returns the path of the running program.
- `register_version_setting(registry, version)` adds a read-only `version`
  setting to a registry.

```python
from synctv.version import VersionInfo

info = VersionInfo("v0.9.0")
if info.need_update():
    info.self_update()
```

## What this package does not do

There is no HTTP server, API route or command-line program here. Settings are
not stored anywhere by the package: keeping values between runs is up to the
`persist` callable you give the registry, and to the text you pass to
`init`.