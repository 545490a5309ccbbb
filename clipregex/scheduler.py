"""
scheduler.py — Delayed side effects that a newer trigger can supersede.

Each task has a key ("paste", "revert"). Scheduling a key that is still
pending cancels the earlier timer first, so two writers never race for
the clipboard.
"""

import threading
from typing import Callable, Dict


class TaskScheduler:

    def __init__(self, log: Callable = None):
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._log  = log or (lambda message, tag="info": None)

    def schedule(self, key: str, delay_s: float, fn: Callable, *args) -> threading.Timer:
        with self._lock:
            previous = self._timers.pop(key, None)
            if previous is not None:
                previous.cancel()

            timer = threading.Timer(max(delay_s, 0.0), self._run, args=(key, fn, args))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()
            return timer

    def _run(self, key: str, fn: Callable, args: tuple):
        with self._lock:
            if self._timers.get(key) is threading.current_thread():
                del self._timers[key]
        try:
            fn(*args)
        except Exception as exc:
            self._log(f"Scheduled task '{key}' failed: {exc}", "err")

    def pending(self, key: str) -> bool:
        with self._lock:
            return key in self._timers

    def cancel(self, key: str) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self):
        with self._lock:
            timers, self._timers = list(self._timers.values()), {}
        for timer in timers:
            timer.cancel()
