"""
app.py — ClipRegex runtime: hotkeys in, clipboard out.

One trigger, start to finish, under the history lock:

    read clipboard -> transform -> write clipboard -> record history

then, outside the lock, two delayed side effects:

    paste after paste_delay_ms -> (automatic reversion) revert after revert_delay_ms

A newer trigger cancels whatever is still pending from the previous one,
and the revert itself is tied to the history generation it was issued
for, so a late revert never overwrites newer clipboard content.

Config and secrets are immutable snapshots; reload swaps both at once.
"""

import sys
import threading
from typing import NamedTuple

import pyperclip

try:
    import keyboard
    KEYBOARD_AVAILABLE = True
except ImportError:
    KEYBOARD_AVAILABLE = False

from . import config as cfgmod
from .diffreport import format_summary, render_unified, summarize_changes
from .engine import TransformationEngine, TransformResult
from .errors import ClipboardError, ConfigError, SecretStoreError
from .history import DiffPair, HistoryManager
from .notify import (
    LEVEL_ERROR, LEVEL_INFO, LEVEL_WARN, LEVELS, Notifier, build_replacement_message,
)
from .rules import RuleApplier
from .scheduler import TaskScheduler
from .secret_store import EMPTY_RESOLVER


# ─── Platform collaborators ──────────────────────────────────────────────────

class SystemClipboard:
    """pyperclip-backed clipboard; failures become ClipboardError."""

    def read(self) -> str:
        try:
            return pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Failed to read clipboard: {exc}") from exc

    def write(self, text: str):
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Failed to write clipboard: {exc}") from exc


def simulate_paste():
    if not KEYBOARD_AVAILABLE:
        raise RuntimeError("'keyboard' not installed — cannot simulate paste")
    keyboard.send("command+v" if sys.platform == "darwin" else "ctrl+v")


class TriggerOutcome(NamedTuple):
    result:     TransformResult
    message:    str
    can_revert: bool


# ─── Main application ────────────────────────────────────────────────────────

class ClipRegexApp:

    def __init__(self, config: cfgmod.Config, resolver=None, clipboard=None,
                 paste=None, notifier: Notifier = None,
                 scheduler: TaskScheduler = None, secret_store=None):
        self.notifier     = notifier or Notifier.from_config(config)
        self.clipboard    = clipboard or SystemClipboard()
        self.paste        = paste or simulate_paste
        self.scheduler    = scheduler or TaskScheduler(log=self.notifier.log)
        self.secret_store = secret_store
        self.history      = HistoryManager(on_revert_status=self._on_revert_status)
        self.can_revert   = False

        self._hotkey_handles = []
        self._stop_evt       = threading.Event()

        self._install(config, resolver or EMPTY_RESOLVER)

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def _build_engine(self, config, resolver) -> TransformationEngine:
        applier = RuleApplier(
            resolver=resolver,
            timeout_ms=config.regex_timeout_ms,
            escape_secrets=config.escape_secrets_in_pattern,
            log=self.notifier.log,
        )
        return TransformationEngine(config.profiles, applier, log=self.notifier.log)

    def _install(self, config, resolver):
        engine = self._build_engine(config, resolver)
        with self.history.lock:
            self.config   = config
            self.resolver = resolver
            self.engine   = engine
            if not config.temporary_clipboard:
                self.history.disable()
        level = config.admin_notification_level.lower()
        self.notifier.level                 = LEVELS.get(level, LEVEL_WARN)
        self.notifier.notify_on_replacement = config.notify_on_replacement
        self.notifier.enabled               = config.use_notifications

    def _on_revert_status(self, can_revert: bool):
        self.can_revert = can_revert

    # ── Trigger processing ────────────────────────────────────────────────────

    def process_trigger(self, trigger: str, reverse: bool = False) -> TriggerOutcome:
        """
        Run one hotkey press. Raises ClipboardError when the clipboard
        cannot be read or written; history is untouched in that case.
        """
        with self.history.lock:
            config, engine = self.config, self.engine
            original = self.clipboard.read()
            result   = engine.transform(original, trigger, reverse)
            if result.changed:
                self.clipboard.write(result.text)
            holding    = self.history.record(original, result.text, config.temporary_clipboard)
            generation = self.history.generation

        message = build_replacement_message(result, config, holding)
        if message:
            self.notifier.replacement("Clipboard Updated", message)
        else:
            self.notifier.log("No replacements applied or text did not change", "info")

        self.scheduler.cancel("revert")
        self.scheduler.schedule(
            "paste", config.paste_delay_ms / 1000.0,
            self._paste_then_revert, config, generation,
        )
        return TriggerOutcome(result, message, holding)

    def _paste_then_revert(self, config, generation: int):
        try:
            self.paste()
        except Exception as exc:
            self.notifier.log(f"Paste simulation failed: {exc}", "warn")

        if config.temporary_clipboard and config.automatic_reversion and self.history.can_revert:
            self.scheduler.schedule(
                "revert", config.revert_delay_ms / 1000.0, self._auto_revert, generation,
            )

    def _auto_revert(self, generation: int):
        try:
            restored = self.history.auto_revert(generation, self.clipboard.write)
        except ClipboardError as exc:
            self.notifier.log(f"Automatic revert failed: {exc}", "err")
            return
        if restored is None:
            self.notifier.log("Automatic revert skipped: clipboard changed since", "info")
        else:
            self.notifier.log("Original clipboard content automatically restored", "ok")

    def revert(self) -> bool:
        self.scheduler.cancel("revert")
        try:
            restored = self.history.revert(self.clipboard.write)
        except ClipboardError as exc:
            self.notifier.admin(LEVEL_ERROR, "Revert Failed", str(exc))
            return False
        if restored is None:
            self.notifier.log("No original clipboard content to restore", "info")
            return False
        self.notifier.admin(LEVEL_INFO, "Clipboard Reverted",
                            "Original clipboard content has been restored.")
        return True

    # ── Change inspection ─────────────────────────────────────────────────────

    def last_diff(self) -> DiffPair:
        return self.history.last_diff_pair()

    def diff_report(self) -> str:
        pair = self.history.last_diff_pair()
        if not pair.available:
            return "No changes recorded from the last operation."
        summary = summarize_changes(pair.original, pair.modified)
        return format_summary(summary) + "\n" + render_unified(
            pair.original, pair.modified, self.config.diff_context_lines
        )

    # ── Config edits / reload ─────────────────────────────────────────────────

    def reload(self, path=None) -> bool:
        try:
            fresh, structure_changed = cfgmod.reload_config(self.config, path)
        except ConfigError as exc:
            self.notifier.admin(LEVEL_ERROR, "Configuration Error", str(exc))
            return False

        resolver = self.resolver
        if self.secret_store is not None:
            resolver = self.secret_store.load(fresh.secrets)
        self._install(fresh, resolver)

        if self._hotkey_handles:
            self.unregister_hotkeys()
            self.register_hotkeys()

        if structure_changed:
            self.notifier.admin(LEVEL_WARN, "Configuration Reloaded",
                                "Profile set changed; hotkeys have been re-registered.")
        else:
            self.notifier.admin(LEVEL_INFO, "Configuration Reloaded",
                                "Configuration and secrets updated.")
        return True

    def set_profile_enabled(self, name: str, enabled: bool):
        updated = cfgmod.set_profile_enabled(self.config, name, enabled)
        self._install(updated, self.resolver)
        state = "enabled" if enabled else "disabled"
        self.notifier.log(f"Profile '{name}' {state}", "ok")

    def add_simple_rule(self, profile_name: str, source: str, replacement: str,
                        case_insensitive: bool = False):
        cfgmod.add_simple_rule(self.config, profile_name, source, replacement, case_insensitive)
        self.notifier.log(f"Rule added to profile '{profile_name}'", "ok")
        self.reload()

    def add_secret(self, name: str, value: str, profile_name: str = None,
                   replacement: str = None):
        if self.secret_store is None:
            raise SecretStoreError("No secret store configured")
        name = cfgmod.validate_secret_name(name)
        if not value:
            raise SecretStoreError("Secret value must not be empty")
        self.secret_store.store(name, value)
        updated = cfgmod.add_secret_reference(self.config, name)
        if profile_name:
            cfgmod.add_secret_rule(updated, name, profile_name, replacement or "")
        self.notifier.log(f"Secret '{name}' stored", "ok")
        self.reload()

    def remove_secret(self, name: str):
        if self.secret_store is None:
            raise SecretStoreError("No secret store configured")
        self.secret_store.remove(name)
        cfgmod.remove_secret_reference(self.config, name)
        self.notifier.log(f"Secret '{name}' removed", "ok")
        self.reload()

    # ── Hotkeys ───────────────────────────────────────────────────────────────

    def _on_hotkey(self, trigger: str, reverse: bool):
        try:
            self.process_trigger(trigger, reverse)
        except ClipboardError as exc:
            self.notifier.admin(LEVEL_ERROR, "Clipboard Error", str(exc))
        except Exception as exc:
            self.notifier.log(f"Hotkey error [{trigger}]: {exc}", "err")

    def _on_revert_hotkey(self):
        try:
            self.revert()
        except Exception as exc:
            self.notifier.log(f"Revert hotkey error: {exc}", "err")

    def register_hotkeys(self) -> int:
        if not KEYBOARD_AVAILABLE:
            self.notifier.admin(LEVEL_WARN, "Hotkeys Disabled",
                                "'keyboard' not installed — pip install keyboard")
            return 0

        bindings = [
            (hotkey, self._on_hotkey, (hotkey, reverse))
            for hotkey, reverse in self.engine.triggers()
        ]
        if self.config.revert_hotkey:
            bindings.append((self.config.revert_hotkey, self._on_revert_hotkey, ()))

        failed = []
        for hotkey, callback, args in bindings:
            try:
                handle = keyboard.add_hotkey(hotkey, callback, args=args)
            except (ValueError, OSError, ImportError) as exc:
                failed.append(f"{hotkey}: {exc}")
                continue
            self._hotkey_handles.append(handle)
            self.notifier.log(f"Hotkey registered: {hotkey}", "ok")

        if failed:
            self.notifier.admin(LEVEL_WARN, "Hotkey Registration Issue",
                                "Some hotkeys could not be registered: " + "; ".join(failed))
        return len(self._hotkey_handles)

    def unregister_hotkeys(self):
        if not KEYBOARD_AVAILABLE:
            return
        for handle in self._hotkey_handles:
            try:
                keyboard.remove_hotkey(handle)
            except (KeyError, ValueError):
                pass
        self._hotkey_handles = []

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def run(self):
        """Register hotkeys and block until stop() or Ctrl+C."""
        self.register_hotkeys()
        self.notifier.log(
            f"ClipRegex running with {len(self.config.profiles)} profile(s)", "ok"
        )
        try:
            while not self._stop_evt.wait(0.5):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def stop(self):
        self._stop_evt.set()
        self.scheduler.cancel_all()
        self.unregister_hotkeys()
