"""
alternatives.py — Derive a literal "primary" text from a rule pattern.

Used when a reversible rule has no explicit `reverse_with`: the first
alternative of the first group becomes the text written back on reverse.

    extract_primary("(?i)(Alice|Alicia|Al)")  -> "Alice"
    extract_primary("plainword")              -> "plainword"
"""

import re

_LEADING_FLAGS = re.compile(r"^\(\?[a-zA-Z]+\)")


def _strip_flags(pattern: str) -> str:
    return _LEADING_FLAGS.sub("", pattern, count=1)


def _first_group(pattern: str):
    """Return the content of the first unescaped (...) group, or None."""
    start  = -1
    depth  = 0
    escape = False
    for i, ch in enumerate(pattern):
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
        elif ch == "(":
            if start == -1:
                start = i
            depth += 1
        elif ch == ")" and start != -1:
            depth -= 1
            if depth == 0:
                return pattern[start + 1:i]
    return None


def split_alternatives(group: str) -> list:
    """
    Split group content on top-level unescaped '|'.
    Escape sequences are kept verbatim in each piece.
    """
    pieces  = []
    current = []
    depth   = 0
    escape  = False
    for ch in group:
        if escape:
            current.append(ch)
            escape = False
        elif ch == "\\":
            current.append(ch)
            escape = True
        elif ch == "(":
            depth += 1
            current.append(ch)
        elif ch == ")":
            depth -= 1
            current.append(ch)
        elif ch == "|" and depth == 0:
            pieces.append("".join(current))
            current = []
        else:
            current.append(ch)
    pieces.append("".join(current))
    return pieces


def extract_primary(pattern: str) -> str:
    stripped = _strip_flags(pattern)
    group = _first_group(stripped)
    if group is None:
        return stripped.strip()
    if group.startswith("?:"):
        group = group[2:]
    return split_alternatives(group)[0].strip()
