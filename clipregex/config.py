"""
config.py — Load, validate and persist the ClipRegex config document.

The config is a YAML file (clipregex.yaml by default):

    temporary_clipboard: true
    automatic_reversion: false
    revert_hotkey: ctrl+shift+alt+r
    paste_delay_ms: 400
    secrets:
      api_key: managed
    profiles:
      - name: General Cleanup
        enabled: true
        hotkey: ctrl+alt+v
        reverse_hotkey: ctrl+alt+shift+v
        replacements:
          - regex: "(?i)(Alice|Alicia)"
            replace_with: Bob
            preserve_case: true
            reverse_with: Alice

Loading yields a frozen Config snapshot. Edit operations never touch the
live snapshot: they build a new Config, save it, and return it; the app
then swaps the new snapshot in as a whole.

Older files with a top-level `hotkey` + `replacements` (no profiles) are
migrated into a single "Default" profile and re-saved.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

import regex
import yaml

from .engine import Profile
from .errors import ConfigError
from .rules import Rule
from .secret_store import PLACEHOLDER, escape_template

CONFIG_NAME = "clipregex.yaml"

NOTIFICATION_LEVELS = ("none", "error", "warn", "info")

_BAD_SECRET_CHARS = set(" {}[]()<>|=+*?^$\\./")

DEFAULTS = {
    "use_notifications":         True,
    "notify_on_replacement":     True,
    "admin_notification_level":  "warn",
    "temporary_clipboard":       True,
    "automatic_reversion":       False,
    "revert_hotkey":             "",
    "paste_delay_ms":            400,
    "revert_delay_ms":           300,
    "regex_timeout_ms":          500,
    "escape_secrets_in_pattern": False,
    "diff_context_lines":        3,
}

_INT_KEYS = ("paste_delay_ms", "revert_delay_ms", "regex_timeout_ms", "diff_context_lines")


@dataclass(frozen=True)
class Config:
    profiles:                  Tuple[Profile, ...] = ()
    secrets:                   Tuple[str, ...] = ()
    use_notifications:         bool = True
    notify_on_replacement:     bool = True
    admin_notification_level:  str = "warn"
    temporary_clipboard:       bool = True
    automatic_reversion:       bool = False
    revert_hotkey:             str = ""
    paste_delay_ms:            int = 400
    revert_delay_ms:           int = 300
    regex_timeout_ms:          int = 500
    escape_secrets_in_pattern: bool = False
    diff_context_lines:        int = 3
    path: Optional[Path] = field(default=None, compare=False)

    def profile(self, name: str) -> Optional[Profile]:
        return next((p for p in self.profiles if p.name == name), None)

    def profile_names(self) -> list:
        return [p.name for p in self.profiles]


# ─── Default document ────────────────────────────────────────────────────────

def default_document() -> dict:
    doc = dict(DEFAULTS)
    doc["revert_hotkey"] = "ctrl+shift+alt+r"
    doc["secrets"] = {}
    doc["profiles"] = [
        {
            "name":    "General Cleanup",
            "enabled": True,
            "hotkey":  "ctrl+alt+v",
            "replacements": [
                {"regex": r"[ \t]+", "replace_with": " "},
            ],
        },
        {
            "name":    "Example Secret Redaction",
            "enabled": False,
            "hotkey":  "ctrl+alt+s",
            "replacements": [
                {"regex": "{{my_secret_placeholder}}", "replace_with": "[REDACTED_SECRET]"},
            ],
        },
    ]
    return doc


def create_default_config(path) -> bool:
    """Write the default document if *path* does not exist. Returns True if written."""
    path = Path(path)
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    _write_yaml(path, default_document())
    return True


# ─── Parsing ─────────────────────────────────────────────────────────────────

def migrate_legacy(doc: dict) -> Tuple[dict, bool]:
    """Fold a pre-profiles document into one 'Default' profile."""
    if doc.get("hotkey") and doc.get("replacements") and not doc.get("profiles"):
        doc = dict(doc)
        doc["profiles"] = [{
            "name":         "Default",
            "enabled":      True,
            "hotkey":       doc.pop("hotkey"),
            "replacements": doc.pop("replacements"),
        }]
        return doc, True
    return doc, False


def _parse_rule(raw, where: str) -> Rule:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: replacement must be a mapping")
    pattern = raw.get("regex")
    if not pattern or not isinstance(pattern, str):
        raise ConfigError(f"{where}: 'regex' is required")
    return Rule(
        pattern=pattern,
        replacement=str(raw.get("replace_with") or ""),
        preserve_case=bool(raw.get("preserve_case", False)),
        reverse_with=str(raw.get("reverse_with") or ""),
    )


def _parse_profile(raw, index: int) -> Profile:
    where = f"profiles[{index}]"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: profile must be a mapping")
    rules = raw.get("replacements") or []
    if not isinstance(rules, list):
        raise ConfigError(f"{where}: 'replacements' must be a list")
    return Profile(
        name=str(raw.get("name") or "").strip(),
        hotkey=str(raw.get("hotkey") or "").strip(),
        enabled=bool(raw.get("enabled", True)),
        reverse_hotkey=str(raw.get("reverse_hotkey") or "").strip(),
        rules=tuple(
            _parse_rule(r, f"{where}.replacements[{i}]") for i, r in enumerate(rules)
        ),
    )


def parse_config(doc, path=None) -> Config:
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise ConfigError("Config document must be a mapping")

    settings = {}
    for key, default in DEFAULTS.items():
        value = doc.get(key, default)
        if key in _INT_KEYS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ConfigError(f"'{key}' must be an integer, got {value!r}") from None
        elif isinstance(default, bool):
            value = bool(value)
        else:
            value = "" if value is None else str(value)
        settings[key] = value

    profiles = doc.get("profiles") or []
    if not isinstance(profiles, list):
        raise ConfigError("'profiles' must be a list")

    secrets = doc.get("secrets") or {}
    if not isinstance(secrets, dict):
        raise ConfigError("'secrets' must be a mapping of name -> 'managed'")

    config = Config(
        profiles=tuple(_parse_profile(p, i) for i, p in enumerate(profiles)),
        secrets=tuple(sorted(secrets)),
        path=Path(path) if path else None,
        **settings,
    )
    validate_config(config)
    return config


# ─── Validation ──────────────────────────────────────────────────────────────

def _check_rule(rule: Rule, where: str):
    neutral = PLACEHOLDER.sub("x", rule.pattern)
    try:
        compiled = regex.compile(neutral)
    except regex.error as exc:
        raise ConfigError(f"{where}: invalid regex '{rule.pattern}': {exc}") from None

    if rule.preserve_case:
        return
    # An empty alternative guarantees one match, so the template is expanded
    template = PLACEHOLDER.sub("x", rule.replacement)
    try:
        regex.compile(compiled.pattern + "|").sub(template, "")
    except (regex.error, IndexError) as exc:
        raise ConfigError(
            f"{where}: invalid replace_with '{rule.replacement}': {exc}"
        ) from None


def validate_config(config: Config):
    seen = set()
    for index, profile in enumerate(config.profiles):
        where = f"profile '{profile.name}'" if profile.name else f"profiles[{index}]"
        if not profile.name:
            raise ConfigError(f"{where}: name must not be empty")
        if profile.name in seen:
            raise ConfigError(f"Duplicate profile name '{profile.name}'")
        seen.add(profile.name)
        if not profile.hotkey:
            raise ConfigError(f"{where}: hotkey must not be empty")
        for i, rule in enumerate(profile.rules, start=1):
            _check_rule(rule, f"{where} rule #{i}")

    for key in _INT_KEYS:
        if getattr(config, key) < 0:
            raise ConfigError(f"'{key}' must not be negative")

    if config.admin_notification_level.lower() not in NOTIFICATION_LEVELS:
        raise ConfigError(
            f"admin_notification_level must be one of {', '.join(NOTIFICATION_LEVELS)}"
        )


def validate_secret_name(name: str) -> str:
    name = (name or "").strip()
    if not name or any(ch in _BAD_SECRET_CHARS or ch.isspace() for ch in name):
        raise ConfigError(
            f"Invalid secret name '{name}': must be non-empty, without spaces "
            "or special characters"
        )
    return name


# ─── Load / save ─────────────────────────────────────────────────────────────

def _write_yaml(path: Path, doc: dict):
    text = yaml.dump(
        doc,
        allow_unicode=True,
        default_flow_style=False,
        sort_keys=False,
        indent=2,
    )
    path.write_text(text, encoding="utf-8")
    try:
        path.chmod(0o600)
    except OSError:
        pass


def config_to_dict(config: Config) -> dict:
    doc = {key: getattr(config, key) for key in DEFAULTS}
    doc["secrets"]  = {name: "managed" for name in config.secrets}
    doc["profiles"] = [p.to_dict() for p in config.profiles]
    return doc


def save_config(config: Config, path=None) -> Config:
    target = Path(path) if path else config.path
    if target is None:
        raise ConfigError("No path to save the config to")
    _write_yaml(target, config_to_dict(config))
    return replace(config, path=target)


def load_config(path=CONFIG_NAME, create: bool = True) -> Config:
    path = Path(path)
    if not path.exists():
        if not create:
            raise ConfigError(f"Config file not found: {path}")
        create_default_config(path)

    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read config file '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file '{path}': {exc}") from exc

    migrated = False
    if isinstance(doc, dict):
        doc, migrated = migrate_legacy(doc)
    config = parse_config(doc, path)
    if migrated:
        save_config(config)
    return config


def reload_config(current: Optional[Config], path=None) -> Tuple[Config, bool]:
    """
    Load a fresh snapshot, keeping each surviving profile's runtime
    enabled flag. Returns (config, profile_set_changed).
    """
    path = path or (current.path if current else None) or CONFIG_NAME
    fresh = load_config(path)
    if current is None:
        return fresh, True

    enabled  = {p.name: p.enabled for p in current.profiles}
    profiles = tuple(
        p.with_enabled(enabled[p.name]) if p.name in enabled else p
        for p in fresh.profiles
    )
    changed = set(enabled) != {p.name for p in profiles}
    return replace(fresh, profiles=profiles), changed


# ─── Edit operations ─────────────────────────────────────────────────────────

def _require_profile(config: Config, name: str) -> int:
    for index, profile in enumerate(config.profiles):
        if profile.name == name:
            return index
    raise ConfigError(f"Profile '{name}' not found")


def _swap_profile(config: Config, index: int, profile: Profile) -> Config:
    profiles = list(config.profiles)
    profiles[index] = profile
    return replace(config, profiles=tuple(profiles))


def set_profile_enabled(config: Config, name: str, enabled: bool) -> Config:
    index = _require_profile(config, name)
    updated = _swap_profile(config, index, config.profiles[index].with_enabled(enabled))
    return save_config(updated)


def _append_rule(config: Config, profile_name: str, rule: Rule) -> Config:
    index   = _require_profile(config, profile_name)
    profile = config.profiles[index]
    updated = _swap_profile(config, index, replace(profile, rules=profile.rules + (rule,)))
    validate_config(updated)
    return save_config(updated)


def add_simple_rule(config: Config, profile_name: str, source: str,
                    replacement: str, case_insensitive: bool = False) -> Config:
    """Add a literal 1:1 rule; *source* and *replacement* are taken verbatim."""
    if not source:
        raise ConfigError("Source text must not be empty")
    pattern = re.escape(source)
    if case_insensitive:
        pattern = "(?i)" + pattern
    return _append_rule(
        config, profile_name,
        Rule(pattern=pattern, replacement=escape_template(replacement)),
    )


def add_secret_rule(config: Config, secret_name: str, profile_name: str,
                    replacement: str) -> Config:
    name = validate_secret_name(secret_name)
    return _append_rule(
        config, profile_name,
        Rule(pattern="{{%s}}" % name, replacement=escape_template(replacement)),
    )


def add_secret_reference(config: Config, name: str) -> Config:
    name = validate_secret_name(name)
    secrets = tuple(sorted(set(config.secrets) | {name}))
    return save_config(replace(config, secrets=secrets))


def remove_secret_reference(config: Config, name: str) -> Config:
    secrets = tuple(s for s in config.secrets if s != name)
    return save_config(replace(config, secrets=secrets))
