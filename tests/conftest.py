import threading

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from clipregex.errors import ClipboardError
from clipregex.notify import Notifier


class FakeClipboard:
    def __init__(self, text: str = ""):
        self.text       = text
        self.writes     = []
        self.fail_read  = False
        self.fail_write = False
        self._lock      = threading.Lock()

    def read(self) -> str:
        if self.fail_read:
            raise ClipboardError("read failed")
        with self._lock:
            return self.text

    def write(self, text: str):
        if self.fail_write:
            raise ClipboardError("write failed")
        with self._lock:
            self.text = text
            self.writes.append(text)


class ManualScheduler:
    """Keeps scheduled tasks until a test runs them explicitly."""

    def __init__(self):
        self.tasks = {}

    def schedule(self, key, delay_s, fn, *args):
        self.tasks[key] = (delay_s, fn, args)

    def pending(self, key):
        return key in self.tasks

    def cancel(self, key):
        return self.tasks.pop(key, None) is not None

    def cancel_all(self):
        self.tasks.clear()

    def run(self, key):
        _, fn, args = self.tasks.pop(key)
        fn(*args)


class LogCollector:
    def __init__(self):
        self.entries  = []
        self.profiles = []

    def __call__(self, message, tag="info", profile_name=""):
        self.entries.append((tag, message))
        if profile_name:
            self.profiles.append(profile_name)

    def tagged(self, tag):
        return [m for t, m in self.entries if t == tag]


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self):
        super().__init__()
        self.values = {}

    def get_password(self, service, username):
        return self.values.get((service, username))

    def set_password(self, service, username, password):
        self.values[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.values[(service, username)]
        except KeyError:
            raise PasswordDeleteError(username) from None


@pytest.fixture
def log():
    return LogCollector()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def popups():
    return []


@pytest.fixture
def notifier(log, popups):
    return Notifier(
        sinks=[log],
        popup=lambda title, message: popups.append((title, message)),
        level="info",
    )


@pytest.fixture
def memory_keyring():
    previous = keyring.get_keyring()
    backend  = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)
