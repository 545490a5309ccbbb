"""
rules.py — One pattern -> replacement rule, applied forward or in reverse.

Forward:  compile `pattern` (secrets resolved first), replace every match
          with `replacement` (or a per-match re-cased copy of it).
Reverse:  find the literal `replacement` text and put the rule's source
          back: `reverse_with` if given, else the first alternative of the
          pattern's first group.

A bad regex, a bad template, a timeout or a missing reverse source
makes the rule a no-op for this call and is reported through `log`.
A rule whose output equals its input reports a count of 0.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import regex

from .alternatives import extract_primary
from .casing import preserve_case
from .secret_store import EMPTY_RESOLVER, SecretResolver, resolve_placeholders


@dataclass(frozen=True)
class Rule:
    pattern:       str
    replacement:   str = ""
    preserve_case: bool = False
    reverse_with:  str = ""

    def to_dict(self) -> dict:
        data = {"regex": self.pattern, "replace_with": self.replacement}
        if self.preserve_case:
            data["preserve_case"] = True
        if self.reverse_with:
            data["reverse_with"] = self.reverse_with
        return data


def _quiet(message: str, tag: str = "info"):
    pass


class RuleApplier:
    """Applies single rules against a fixed secret snapshot and timeout."""

    def __init__(self, resolver: SecretResolver = EMPTY_RESOLVER,
                 timeout_ms: Optional[int] = None,
                 escape_secrets: bool = False,
                 log: Callable = None):
        self.resolver       = resolver
        self.timeout        = timeout_ms / 1000.0 if timeout_ms else None
        self.escape_secrets = escape_secrets
        self._log           = log or _quiet

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _resolve(self, text: str, label: str, field: str, escape: bool = False,
                 template: bool = False) -> str:
        resolved, missing = resolve_placeholders(
            text, self.resolver, escape=escape, template=template
        )
        for name in missing:
            self._log(
                f"{label}: secret '{{{{{name}}}}}' in {field} is not loaded; "
                "placeholder left as literal text", "warn"
            )
        return resolved

    def _substitute(self, compiled, repl, text: str, label: str) -> Tuple[str, int]:
        try:
            result, count = compiled.subn(repl, text, timeout=self.timeout)
        except TimeoutError:
            self._log(f"{label}: regex timed out after {self.timeout}s, skipped", "warn")
            return text, 0
        except (regex.error, IndexError) as exc:
            self._log(f"{label}: invalid replacement template: {exc}", "err")
            return text, 0
        if count == 0 or result == text:
            return text, 0
        return result, count

    # ── Directions ────────────────────────────────────────────────────────────

    def forward(self, text: str, rule: Rule, label: str = "rule") -> Tuple[str, int]:
        pattern     = self._resolve(rule.pattern, label, "regex", escape=self.escape_secrets)
        replacement = self._resolve(
            rule.replacement, label, "replace_with", template=not rule.preserve_case
        )

        try:
            compiled = regex.compile(pattern)
        except regex.error as exc:
            self._log(f"{label}: invalid regex '{rule.pattern}': {exc}", "err")
            return text, 0

        if rule.preserve_case:
            repl = lambda m: preserve_case(m.group(0), replacement)
        else:
            repl = replacement
        return self._substitute(compiled, repl, text, label)

    def reverse(self, text: str, rule: Rule, label: str = "rule") -> Tuple[str, int]:
        target = self._resolve(rule.replacement, label, "replace_with")
        if not target:
            self._log(f"{label}: empty replace_with, rule cannot be reversed", "warn")
            return text, 0

        if rule.reverse_with:
            raw = rule.reverse_with
        else:
            raw = extract_primary(rule.pattern)
            if not raw:
                raw = regex.sub(r"^\(\?i\)", "", rule.pattern).strip("()")
        source = self._resolve(raw, label, "reverse source")

        if not source or source == target:
            self._log(
                f"{label}: no usable reverse source for '{rule.pattern}' "
                f"(derived '{source}')", "err"
            )
            return text, 0

        flags  = regex.IGNORECASE if rule.preserve_case else 0
        finder = regex.compile(regex.escape(target), flags)
        if rule.preserve_case:
            repl = lambda m: preserve_case(m.group(0), source)
        else:
            repl = lambda m: source
        return self._substitute(finder, repl, text, label)

    def apply(self, text: str, rule: Rule, reverse: bool = False,
              label: str = "rule") -> Tuple[str, int]:
        if reverse:
            return self.reverse(text, rule, label)
        return self.forward(text, rule, label)
