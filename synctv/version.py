"""Release lookup and in-place self update of the running executable."""

from __future__ import annotations

import logging
import os
import platform
import re
import shutil
import sys
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote, urljoin, urlparse

import requests
from packaging.version import Version

from .setting import SettingsRegistry
from .string_setting import StringSetting

log = logging.getLogger(__name__)

VERSION = "dev"
OWNER = "synctv-org"
REPO = "synctv"
DEFAULT_BASE_URL = "https://api.github.com/"
SETTING_GROUP_SERVER = "server"

_TIMEOUT = 30
_PROGRESS_INTERVAL = 0.25
_CHUNK = 64 * 1024
_DISPOSITION = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)

_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "riscv64": "riscv64",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "loongarch64": "loong64",
    "mips64": "mips64",
}


def _goos() -> str:
    if sys.platform.startswith("win") or sys.platform == "cygwin":
        return "windows"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    return sys.platform


def _goarch() -> str:
    machine = platform.machine().lower()
    return _GOARCH.get(machine, machine)


def _binary_prefix() -> str:
    return f"synctv-{_goos()}-{_goarch()}"


def compare_versions(current: str, latest: str) -> int:
    """Return -1, 0 or 1 as ``current`` is older than, equal to or newer than ``latest``."""
    a, b = Version(current), Version(latest)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def register_version_setting(registry: SettingsRegistry, version: str = VERSION) -> StringSetting:
    """Register the read-only ``version`` setting, which always reports ``version``."""

    def before_set(_setting: Any, _value: Any) -> str:
        raise ValueError("version can not be set")

    setting = StringSetting(
        "version",
        "placeholder string",
        SETTING_GROUP_SERVER,
        before_init=lambda _setting, _value: version,
        before_set=before_set,
    )
    registry.new(setting)
    return setting


def executable_file() -> str:
    """Return the resolved path of the program currently running."""
    path = sys.argv[0] if sys.argv and os.path.isfile(sys.argv[0]) else sys.executable
    if not path:
        raise FileNotFoundError("cannot determine the executable file")
    return os.path.realpath(path)


def _filename(response: requests.Response, url: str) -> str:
    disposition = response.headers.get("Content-Disposition", "")
    match = _DISPOSITION.search(disposition)
    name = unquote(match.group(1)) if match else ""
    if not name:
        name = unquote(urlparse(response.url or url).path)
    name = os.path.basename(name.rstrip("/"))
    if not name or name in (".", ".."):
        raise ValueError("no filename could be determined")
    return name


def download_with_progress(
    url: str, directory: str | os.PathLike, session: Optional[requests.Session] = None
) -> str:
    """Download ``url`` into ``directory``, logging progress; return the file path."""
    http = session or requests.Session()
    with http.get(url, stream=True, timeout=_TIMEOUT) as response:
        response.raise_for_status()
        target = Path(directory) / _filename(response, url)
        size = int(response.headers.get("Content-Length") or -1)
        done = 0
        last = time.monotonic()
        with open(target, "wb") as out:
            for chunk in response.iter_content(_CHUNK):
                out.write(chunk)
                done += len(chunk)
                now = time.monotonic()
                if now - last >= _PROGRESS_INTERVAL:
                    last = now
                    progress = 100 * done / size if size > 0 else 0.0
                    log.info(
                        "self update: transferred %d / %d bytes (%.2f%%)",
                        done,
                        size,
                        progress,
                    )
    return str(target)


def self_replace(url: str, session: Optional[requests.Session] = None) -> None:
    """Replace the running executable with the file at ``url``, rolling back on failure."""
    now = time.time_ns()
    current = executable_file()
    log.debug("self update: current executable file: %s", current)

    tmp = Path(tempfile.gettempdir()) / "synctv-server" / f"self-update-{now}"
    tmp.mkdir(mode=0o755, parents=True, exist_ok=True)
    log.info("self update: temp path: %s", tmp)
    try:
        file = download_with_progress(url, tmp, session)
        log.info("self update: download success: %s", file)
        os.chmod(file, 0o755)

        old = f"{current}-{now}.old"
        os.rename(current, old)
        log.debug("self update: rename success: %s -> %s", current, old)
        try:
            os.rename(file, current)
        except OSError:
            log.warning("self update: rollback: %s -> %s", old, current)
            try:
                os.rename(old, current)
            except OSError as exc:
                log.error("self update: rollback: rename %s -> %s error: %s", old, current, exc)
            raise
        try:
            os.remove(old)
        except OSError as exc:
            log.warning("self update: remove old executable file error: %s", exc)
        log.info("self update: update success: %s", current)
    finally:
        log.info("self update: remove temp path: %s", tmp)
        shutil.rmtree(tmp, ignore_errors=True)


class VersionInfo:
    """The running version and the published releases it can be compared with."""

    def __init__(
        self,
        current: str = VERSION,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.current = current
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/") + "/"
        self._session = session or requests.Session()
        self._latest: Optional[Dict[str, Any]] = None
        self._dev: Optional[Dict[str, Any]] = None

    def _release(self, path: str) -> Dict[str, Any]:
        response = self._session.get(
            urljoin(self.base_url, f"repos/{OWNER}/{REPO}/releases/{path}"),
            headers={"Accept": "application/vnd.github+json"},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()

    def _latest_release(self) -> Dict[str, Any]:
        if self._latest is None:
            self._latest = self._release("latest")
        return self._latest

    def _dev_release(self) -> Dict[str, Any]:
        if self._dev is None:
            self._dev = self._release("tags/dev")
        return self._dev

    def latest(self) -> str:
        """Tag of the latest release, fetched once and then remembered."""
        return self._latest_release().get("tag_name") or ""

    def check_latest(self) -> str:
        """Fetch the latest release again and return its tag."""
        self._latest = self._release("latest")
        return self._latest.get("tag_name") or ""

    def latest_binary_url(self) -> str:
        return self._binary_url(self._latest_release())

    def dev_binary_url(self) -> str:
        return self._binary_url(self._dev_release())

    @staticmethod
    def _binary_url(release: Dict[str, Any]) -> str:
        prefix = _binary_prefix()
        for asset in release.get("assets") or []:
            if (asset.get("name") or "").startswith(prefix):
                return asset.get("browser_download_url") or ""
        raise LookupError("no binary found")

    def need_update(self) -> bool:
        """True if the running version is older than the latest; never for ``dev``."""
        if self.current == "dev":
            return False
        return compare_versions(self.current, self.latest()) < 0

    def self_update(self, dev: bool = False) -> bool:
        """Install the newer release (or the dev build); return whether one was installed."""
        if dev:
            log.info("self update: dev mode, update to latest dev version")
        elif self.current != "dev":
            latest = self.latest()
            comp = compare_versions(self.current, latest)
            if comp == 0:
                log.info("self update: current version is latest: %s", self.current)
                return False
            if comp > 0:
                log.info(
                    "self update: current version is greater than latest: %s ? %s",
                    self.current,
                    latest,
                )
                return False
            log.info(
                "self update: current version is less than latest: %s -> %s",
                self.current,
                latest,
            )
        else:
            log.info("self update: current version is dev, force update")

        url = self.dev_binary_url() if dev else self.latest_binary_url()
        self_replace(url, self._session)
        return True