"""
ClipRegex

Bind hotkeys to ordered sets of regex replacement rules that rewrite the
clipboard on demand, optionally in reverse, with secrets pulled from the
OS keychain and a short-lived revert of the last change.
"""

__version__ = "0.1.0"

from .alternatives import extract_primary
from .casing import preserve_case
from .config import Config, load_config
from .engine import Profile, TransformationEngine, TransformResult, select_profiles
from .errors import ClipboardError, ClipRegexError, ConfigError, SecretStoreError
from .history import DiffPair, HistoryManager, RevertState
from .rules import Rule, RuleApplier
from .secret_store import StaticSecretResolver

__all__ = [
    "extract_primary",
    "preserve_case",
    "Config",
    "load_config",
    "Profile",
    "TransformationEngine",
    "TransformResult",
    "select_profiles",
    "ClipboardError",
    "ClipRegexError",
    "ConfigError",
    "SecretStoreError",
    "DiffPair",
    "HistoryManager",
    "RevertState",
    "Rule",
    "RuleApplier",
    "StaticSecretResolver",
]
