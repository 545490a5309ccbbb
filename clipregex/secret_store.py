"""
secret_store.py — Secret placeholders and the stores that back them.

Rules may embed {{name}} in `regex`, `replace_with` or `reverse_with`.
Values come from a SecretResolver; in the running app that is a snapshot
loaded once from the OS credential store through `keyring`, swapped as a
whole on config reload.

Unresolved placeholders are left in the text verbatim and reported back
to the caller, which decides how loudly to complain.
"""

import re
from typing import Dict, Iterable, Mapping, Optional, Protocol, Tuple

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import SecretStoreError

PLACEHOLDER = re.compile(r"\{\{([a-zA-Z0-9_]+)\}\}")

DEFAULT_SERVICE = "ClipRegex"


class SecretResolver(Protocol):
    def resolve(self, name: str) -> Optional[str]: ...


class StaticSecretResolver:
    """Read-only name -> value snapshot."""

    def __init__(self, values: Mapping[str, str] = None):
        self._values = dict(values or {})

    def resolve(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def names(self) -> list:
        return sorted(self._values)

    def __len__(self):
        return len(self._values)


EMPTY_RESOLVER = StaticSecretResolver()


def placeholder_names(text: str) -> list:
    return PLACEHOLDER.findall(text or "")


def escape_template(text: str) -> str:
    """Make *text* literal inside a replacement template."""
    return text.replace("\\", "\\\\")


def resolve_placeholders(text: str, resolver: SecretResolver,
                         escape: bool = False,
                         template: bool = False) -> Tuple[str, list]:
    """
    Substitute every {{name}} in *text* with the resolver's value.
    Returns (resolved_text, missing_names). With escape=True values are
    regex-escaped before insertion; with template=True their backslashes
    are doubled so a replacement template keeps them literal.
    """
    missing = []

    def _sub(match):
        name  = match.group(1)
        value = resolver.resolve(name)
        if value is None:
            missing.append(name)
            return match.group(0)
        if escape:
            return re.escape(value)
        return escape_template(value) if template else value

    return PLACEHOLDER.sub(_sub, text), missing


# ── OS credential store ───────────────────────────────────────────────────────

class KeyringSecretStore:
    """
    Thin wrapper around `keyring` for one service name.
    The config file only records which names exist; values live here.
    """

    def __init__(self, service: str = DEFAULT_SERVICE, log=None):
        self.service = service
        self._log    = log or (lambda message, tag="info": None)

    def load(self, names: Iterable[str]) -> StaticSecretResolver:
        values: Dict[str, str] = {}
        for name in names:
            try:
                value = keyring.get_password(self.service, name)
            except KeyringError as exc:
                self._log(f"Error reading secret '{name}' from keyring: {exc}", "err")
                continue
            if value is None:
                self._log(
                    f"Secret '{name}' not found in keyring for service "
                    f"'{self.service}'. Rules using it will not match.", "warn"
                )
                continue
            values[name] = value
            self._log(f"Loaded secret '{name}'", "ok")
        return StaticSecretResolver(values)

    def store(self, name: str, value: str):
        try:
            keyring.set_password(self.service, name, value)
        except KeyringError as exc:
            raise SecretStoreError(f"Failed to store secret '{name}': {exc}") from exc

    def remove(self, name: str):
        try:
            keyring.delete_password(self.service, name)
        except PasswordDeleteError:
            self._log(f"Secret '{name}' was not in the keyring", "warn")
        except KeyringError as exc:
            raise SecretStoreError(f"Failed to remove secret '{name}': {exc}") from exc
