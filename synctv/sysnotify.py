"""Run registered shutdown and reload tasks when the process receives signals."""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import signal
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Tuple

log = logging.getLogger(__name__)


class NotifyType(IntEnum):
    """What a signal asks the process to do."""

    EXIT = 1
    RELOAD = 2


def _signals(*names: str) -> frozenset:
    return frozenset(
        getattr(signal, name) for name in names if hasattr(signal, name)
    )


_EXIT_SIGNALS = _signals("SIGHUP", "SIGINT", "SIGQUIT", "SIGTERM")
# SIGUSR1/SIGUSR2 do not exist on Windows, so reload is never triggered there.
_RELOAD_SIGNALS = _signals("SIGUSR1", "SIGUSR2")


def parse_notify_type(signum: int) -> Optional[NotifyType]:
    """Map a signal number to the kind of notification, or None if it means nothing."""
    if signum in _EXIT_SIGNALS:
        return NotifyType.EXIT
    if signum in _RELOAD_SIGNALS:
        return NotifyType.RELOAD
    return None


@dataclass
class Task:
    """A named callable run when a notification of its type arrives."""

    name: str
    notify_type: Optional[NotifyType]
    task: Optional[Callable[[], None]]


@dataclass
class _TaskQueue:
    heap: List[Tuple[int, int, Task]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class SysNotify:
    """Collects signals and runs the tasks registered for them, lowest priority first."""

    def __init__(self) -> None:
        self._signals: "queue.Queue[int]" = queue.Queue()
        self._queues: Dict[NotifyType, _TaskQueue] = {}
        self._queues_lock = threading.Lock()
        self._counter = itertools.count()
        self._wait_lock = threading.Lock()
        self._waited = False

    def install(self) -> Dict[int, object]:
        """Install handlers for the exit and reload signals; return the previous handlers."""
        previous: Dict[int, object] = {}
        for signum in sorted(_EXIT_SIGNALS | _RELOAD_SIGNALS):
            previous[signum] = signal.signal(signum, self._handle)
        return previous

    def _handle(self, signum: int, _frame: object) -> None:
        self.notify(signum)

    def register(self, priority: int, task: Optional[Task]) -> None:
        """Queue a task to run on its notification; smaller priorities run first."""
        if task is None or task.task is None:
            raise ValueError("task is nil")
        if not task.notify_type:
            raise ValueError("task notify type is 0")
        notify_type = NotifyType(task.notify_type)
        with self._queues_lock:
            tasks = self._queues.setdefault(notify_type, _TaskQueue())
        with tasks.lock:
            heapq.heappush(tasks.heap, (priority, next(self._counter), task))

    def notify(self, signum: int) -> None:
        """Deliver a signal number as if the process had received it."""
        self._signals.put(signum)

    def run_tasks(self, notify_type: NotifyType) -> List[str]:
        """Run and drain every task of one type; return the names of the tasks run."""
        with self._queues_lock:
            tasks = self._queues.get(notify_type)
        if tasks is None:
            return []
        ran: List[str] = []
        with tasks.lock:
            while tasks.heap:
                _, _, task = heapq.heappop(tasks.heap)
                log.info("task: %s running", task.name)
                try:
                    task.task()
                except Exception as exc:  # one failing task must not stop the rest
                    log.error("task: %s an error occurred: %s", task.name, exc)
                log.info("task: %s done", task.name)
                ran.append(task.name)
        return ran

    def wait(self) -> None:
        """Handle incoming signals until an exit signal; only the first call waits."""
        with self._wait_lock:
            if self._waited:
                return
            self._waited = True
        log.info("wait sys notify")
        while True:
            signum = self._signals.get()
            log.info("receive sys notify: %s", signum)
            notify_type = parse_notify_type(signum)
            if notify_type is NotifyType.EXIT:
                log.info("task: NotifyTypeEXIT running...")
                self.run_tasks(NotifyType.EXIT)
                log.info("task: all done")
                return
            if notify_type is NotifyType.RELOAD:
                log.info("task: NotifyTypeRELOAD running...")
                self.run_tasks(NotifyType.RELOAD)