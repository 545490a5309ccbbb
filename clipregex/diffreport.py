"""
diffreport.py — Plain-text view of the last (original, modified) pair.

Line-level counts plus a unified diff; good enough for a terminal or a
log entry. Rendering an HTML report is left to whatever consumes the pair.
"""

import difflib
from typing import NamedTuple


class ChangeSummary(NamedTuple):
    original_lines: int
    modified_lines: int
    inserted:       int
    deleted:        int
    changed:        int


def _lines(text: str) -> list:
    return text.splitlines() if text else []


def summarize_changes(original: str, modified: str) -> ChangeSummary:
    a, b = _lines(original), _lines(modified)
    inserted = deleted = changed = 0
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    for op, i1, i2, j1, j2 in matcher.get_opcodes():
        if op == "insert":
            inserted += j2 - j1
        elif op == "delete":
            deleted += i2 - i1
        elif op == "replace":
            paired   = min(i2 - i1, j2 - j1)
            changed  += paired
            deleted  += (i2 - i1) - paired
            inserted += (j2 - j1) - paired
    return ChangeSummary(len(a), len(b), inserted, deleted, changed)


def format_summary(summary: ChangeSummary) -> str:
    return (
        "Comparison Summary:\n"
        f"- Original Lines : {summary.original_lines}\n"
        f"- Modified Lines : {summary.modified_lines}\n"
        f"- Lines Inserted : {summary.inserted}\n"
        f"- Lines Deleted  : {summary.deleted}\n"
        f"- Lines Changed  : {summary.changed}\n"
    )


def render_unified(original: str, modified: str, context_lines: int = 3) -> str:
    diff = difflib.unified_diff(
        _lines(original), _lines(modified),
        fromfile="original", tofile="modified",
        n=context_lines, lineterm="",
    )
    return "\n".join(diff)
