"""
notify.py — Where diagnostics and user-facing messages go.

Every diagnostic is a (message, tag) pair, tag one of info/ok/warn/err/chain.
All of them are forwarded to the log sinks (stderr, the SQLite log). Only
some reach the desktop:

  - admin notices, filtered by `admin_notification_level`
    (none < error < warn < info)
  - replacement summaries, when `notify_on_replacement` is on

Actually showing a desktop popup is platform work; the Notifier takes a
`popup(title, message)` callable and defaults to printing on stderr.
"""

import sys
from datetime import datetime

LEVEL_NONE  = 0
LEVEL_ERROR = 1
LEVEL_WARN  = 2
LEVEL_INFO  = 3

LEVELS = {
    "none":  LEVEL_NONE,
    "error": LEVEL_ERROR,
    "warn":  LEVEL_WARN,
    "info":  LEVEL_INFO,
}

TAG_LEVELS = {
    "err":   LEVEL_ERROR,
    "warn":  LEVEL_WARN,
    "info":  LEVEL_INFO,
    "ok":    LEVEL_INFO,
    "chain": LEVEL_INFO,
}


def console_sink(message: str, tag: str = "info", profile_name: str = ""):
    ts = datetime.now().strftime("%H:%M:%S")
    where = f" [{profile_name}]" if profile_name else ""
    print(f"[{ts}] {tag:<5}{where} {message}", file=sys.stderr)


def console_popup(title: str, message: str):
    print(f"*** {title}: {message}", file=sys.stderr)


class Notifier:

    def __init__(self, sinks=None, popup=None, level: str = "warn",
                 notify_on_replacement: bool = True, enabled: bool = True):
        self.sinks                 = list(sinks) if sinks is not None else [console_sink]
        self.popup                 = popup or console_popup
        self.level                 = LEVELS.get((level or "warn").lower(), LEVEL_WARN)
        self.notify_on_replacement = notify_on_replacement
        self.enabled               = enabled

    @classmethod
    def from_config(cls, config, sinks=None, popup=None) -> "Notifier":
        return cls(
            sinks=sinks,
            popup=popup,
            level=config.admin_notification_level,
            notify_on_replacement=config.notify_on_replacement,
            enabled=config.use_notifications,
        )

    def log(self, message: str, tag: str = "info", profile_name: str = ""):
        for sink in self.sinks:
            sink(message, tag, profile_name)

    __call__ = log

    def admin(self, level: int, title: str, message: str) -> bool:
        """Log, then pop up if *level* passes the configured threshold."""
        tag = {LEVEL_ERROR: "err", LEVEL_WARN: "warn"}.get(level, "info")
        self.log(f"{title}: {message}", tag)
        if not self.enabled or level == LEVEL_NONE or self.level < level:
            return False
        self.popup(title, message)
        return True

    def replacement(self, title: str, message: str) -> bool:
        self.log(message, "ok")
        if not (self.enabled and self.notify_on_replacement and message):
            return False
        self.popup(title, message)
        return True


def build_replacement_message(result, config, holding_original: bool) -> str:
    """User-facing summary of one trigger, or "" when nothing changed."""
    if not result.changed:
        return ""
    if result.count == 0:
        return "Clipboard updated. Use 'diff' to view details."

    direction = " (reverse)" if result.reverse else ""
    names     = ", ".join(result.profiles)
    if len(result.profiles) > 1:
        source = f" from profiles: {names}"
    elif result.profiles:
        source = f" from profile: {names}"
    else:
        source = ""
    message = f"{result.count} replacement(s){direction} applied{source}."

    if config.temporary_clipboard and holding_original:
        if config.automatic_reversion:
            message += " Clipboard will be automatically reverted after paste."
        elif config.revert_hotkey:
            message += f" Press {config.revert_hotkey} to revert."
        else:
            message += " Use 'revert' to restore the original."
    return message
