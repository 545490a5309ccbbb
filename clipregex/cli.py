"""
cli.py — Command-line entry point for ClipRegex.

Usage:
    python -m clipregex [--config clipregex.yaml] run
    python -m clipregex apply --hotkey ctrl+alt+v [--reverse] [--text "..."]
    python -m clipregex init
    python -m clipregex enable|disable "Profile Name"
    python -m clipregex add-rule "Profile Name" SOURCE REPLACEMENT [--ignore-case]
    python -m clipregex secrets list|add NAME|remove NAME
    python -m clipregex log [--session ID] [--tag err] [--profile NAME] [--sessions]
"""

import argparse
import getpass
import sys
from pathlib import Path

from . import __version__
from . import config as cfgmod
from .app import ClipRegexApp
from .db_logger import DBLogger, LogReader
from .engine import TransformationEngine
from .errors import ClipRegexError
from .notify import Notifier, console_sink
from .rules import RuleApplier
from .secret_store import KeyringSecretStore


def _load(args) -> cfgmod.Config:
    return cfgmod.load_config(args.config)


def _log_folder(args) -> Path:
    return Path(args.config).resolve().parent


# ─── Commands ────────────────────────────────────────────────────────────────

def cmd_run(args) -> int:
    config   = _load(args)
    db       = DBLogger(str(_log_folder(args)), str(Path(args.config).resolve()))
    notifier = Notifier.from_config(config, sinks=[console_sink, db.log])
    store    = KeyringSecretStore(log=notifier.log)
    app = ClipRegexApp(
        config,
        resolver=store.load(config.secrets),
        notifier=notifier,
        secret_store=store,
    )
    try:
        app.run()
    finally:
        db.stop()
    return 0


def cmd_apply(args) -> int:
    config = _load(args)
    text   = args.text if args.text is not None else sys.stdin.read()
    log    = console_sink if args.verbose else (lambda message, tag="info", profile_name="": None)

    resolver = KeyringSecretStore(log=log).load(config.secrets)
    applier  = RuleApplier(
        resolver=resolver,
        timeout_ms=config.regex_timeout_ms,
        escape_secrets=config.escape_secrets_in_pattern,
        log=log,
    )
    result = TransformationEngine(config.profiles, applier, log=log).transform(
        text, args.hotkey, reverse=args.reverse
    )
    sys.stdout.write(result.text)
    profiles = ", ".join(result.profiles) or "—"
    print(f"\n{result.count} replacement(s) [{profiles}]", file=sys.stderr)
    return 0


def cmd_init(args) -> int:
    if cfgmod.create_default_config(args.config):
        print(f"✔ Default config written to {args.config}")
    else:
        print(f"Config already exists: {args.config}")
    return 0


def cmd_toggle(args) -> int:
    enabled = args.command == "enable"
    cfgmod.set_profile_enabled(_load(args), args.name, enabled)
    print(f"Profile '{args.name}' {'enabled' if enabled else 'disabled'}")
    return 0


def cmd_add_rule(args) -> int:
    cfgmod.add_simple_rule(
        _load(args), args.profile, args.source, args.replacement, args.ignore_case
    )
    print(f"Rule added to profile '{args.profile}'")
    return 0


def cmd_secrets(args) -> int:
    config = _load(args)
    store  = KeyringSecretStore(log=console_sink)

    if args.action == "list":
        if not config.secrets:
            print("No secrets are currently managed.")
        for name in config.secrets:
            print(f"- {name}")
        return 0

    if not args.name:
        raise ClipRegexError(f"secrets {args.action} needs a NAME")
    name = cfgmod.validate_secret_name(args.name)

    if args.action == "add":
        value = getpass.getpass(f"Value for secret '{name}': ")
        if not value:
            raise ClipRegexError("Secret value cannot be empty")
        store.store(name, value)
        config = cfgmod.add_secret_reference(config, name)
        if args.profile:
            cfgmod.add_secret_rule(config, name, args.profile, args.replace_with or "")
            print(f"Rule {{{{{name}}}}} -> '{args.replace_with or ''}' added to '{args.profile}'")
        print(f"Secret '{name}' stored")
    else:
        store.remove(name)
        cfgmod.remove_secret_reference(config, name)
        print(f"Secret '{name}' removed")
    return 0


def cmd_log(args) -> int:
    reader = LogReader(str(_log_folder(args)))
    if not reader.exists():
        print(f"No log database at {reader.db_path}")
        return 0

    if args.sessions:
        for s in reader.get_sessions(limit=args.limit):
            print(f"{s['id']}  {s['started_at'][:19]}  {s['entries']:>5} entries  "
                  f"{s['config_path'] or ''}")
        return 0

    entries = reader.get_entries(
        session_id=args.session, tag=args.tag, profile=args.profile, limit=args.limit
    )
    for entry in entries:
        profile = f" [{entry['profile_name']}]" if entry["profile_name"] else ""
        print(f"{entry['timestamp'][:19]} {entry['session_id']} "
              f"{entry['tag']:<5}{profile} {entry['message']}")
    return 0


# ─── Argument parsing ────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipregex",
        description="Hotkey-driven regex replacement on the clipboard, with revert."
    )
    parser.add_argument("--config", "-c", default=cfgmod.CONFIG_NAME,
                        help=f"Config file (default: ./{cfgmod.CONFIG_NAME}).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Register hotkeys and wait.").set_defaults(func=cmd_run)

    p = sub.add_parser("apply", help="Transform text once and print the result.")
    p.add_argument("--hotkey", "-k", required=True, help="Trigger to simulate.")
    p.add_argument("--reverse", "-r", action="store_true", help="Use reverse rules.")
    p.add_argument("--text", "-t", default=None, help="Input text (default: stdin).")
    p.add_argument("--verbose", "-v", action="store_true", help="Print diagnostics.")
    p.set_defaults(func=cmd_apply)

    sub.add_parser("init", help="Write the default config.").set_defaults(func=cmd_init)

    for name in ("enable", "disable"):
        p = sub.add_parser(name, help=f"{name.title()} a profile.")
        p.add_argument("name")
        p.set_defaults(func=cmd_toggle)

    p = sub.add_parser("add-rule", help="Add a literal 1:1 replacement rule.")
    p.add_argument("profile")
    p.add_argument("source")
    p.add_argument("replacement")
    p.add_argument("--ignore-case", "-i", action="store_true")
    p.set_defaults(func=cmd_add_rule)

    p = sub.add_parser("secrets", help="Manage secrets in the OS keychain.")
    p.add_argument("action", choices=("list", "add", "remove"))
    p.add_argument("name", nargs="?")
    p.add_argument("--profile", help="With 'add': also add a {{NAME}} rule here.")
    p.add_argument("--replace-with", default="", help="Replacement for that rule.")
    p.set_defaults(func=cmd_secrets)

    p = sub.add_parser("log", help="Show stored diagnostics.")
    p.add_argument("--session", default=None)
    p.add_argument("--tag", default=None)
    p.add_argument("--profile", default=None, help="Only entries logged for this profile.")
    p.add_argument("--sessions", action="store_true", help="List sessions instead of entries.")
    p.add_argument("--limit", type=int, default=100)
    p.set_defaults(func=cmd_log)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ClipRegexError as exc:
        print(f"✗ Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
