from clipregex.diffreport import (
    ChangeSummary, format_summary, render_unified, summarize_changes,
)


def test_summary_counts():
    original = "one\ntwo\nthree\n"
    modified = "one\nTWO\nthree\nfour\n"
    assert summarize_changes(original, modified) == ChangeSummary(3, 4, 1, 0, 1)


def test_summary_of_deletion():
    assert summarize_changes("a\nb\nc", "a\nc") == ChangeSummary(3, 2, 0, 1, 0)


def test_summary_of_empty_texts():
    assert summarize_changes("", "") == ChangeSummary(0, 0, 0, 0, 0)


def test_format_summary():
    text = format_summary(ChangeSummary(3, 4, 1, 0, 1))
    assert text.startswith("Comparison Summary:\n")
    assert "- Original Lines : 3" in text
    assert "- Lines Inserted : 1" in text


def test_unified_diff():
    diff = render_unified("a\nb\nc", "a\nB\nc", context_lines=0)
    assert diff.splitlines() == [
        "--- original", "+++ modified", "@@ -2 +2 @@", "-b", "+B",
    ]


def test_unified_diff_identical_is_empty():
    assert render_unified("same", "same") == ""
