"""Exception types shared across ClipRegex."""


class ClipRegexError(Exception):
    pass


class ConfigError(ClipRegexError):
    """Config file missing, unparsable, or rejected by validation."""


class ClipboardError(ClipRegexError):
    """Clipboard could not be read or written; the invocation is aborted."""


class SecretStoreError(ClipRegexError):
    pass
