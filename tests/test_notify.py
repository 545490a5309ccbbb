import pytest

from clipregex.config import Config
from clipregex.engine import TransformResult
from clipregex.notify import (
    LEVEL_ERROR, LEVEL_INFO, LEVEL_WARN, Notifier, build_replacement_message,
)


def _result(count=1, profiles=("P",), reverse=False, changed=True):
    return TransformResult(
        original="a", text="b" if changed else "a",
        count=count, profiles=list(profiles), reverse=reverse,
    )


@pytest.mark.parametrize("level, shown", [
    ("none",  []),
    ("error", ["E"]),
    ("warn",  ["E", "W"]),
    ("info",  ["E", "W", "I"]),
])
def test_admin_level_threshold(log, level, shown):
    popped   = []
    notifier = Notifier(sinks=[log], popup=lambda t, m: popped.append(t), level=level)
    notifier.admin(LEVEL_ERROR, "E", "error")
    notifier.admin(LEVEL_WARN, "W", "warning")
    notifier.admin(LEVEL_INFO, "I", "info")
    assert popped == shown
    assert [t for t, _ in log.entries] == ["err", "warn", "info"]


def test_disabled_notifications_still_log(log):
    popped   = []
    notifier = Notifier(sinks=[log], popup=lambda t, m: popped.append(t), enabled=False)
    assert not notifier.admin(LEVEL_ERROR, "E", "x")
    assert not notifier.replacement("R", "1 replacement(s)")
    assert popped == []
    assert len(log.entries) == 2


def test_replacement_popup_can_be_turned_off(log):
    popped   = []
    notifier = Notifier(sinks=[log], popup=lambda t, m: popped.append(m),
                        notify_on_replacement=False)
    notifier.replacement("R", "done")
    assert popped == []
    assert log.tagged("ok") == ["done"]


def test_message_empty_when_unchanged():
    assert build_replacement_message(_result(changed=False), Config(), True) == ""


def test_message_changed_without_count():
    message = build_replacement_message(_result(count=0), Config(), True)
    assert message == "Clipboard updated. Use 'diff' to view details."


def test_message_single_profile_with_revert_hotkey():
    config = Config(revert_hotkey="ctrl+shift+alt+r")
    assert build_replacement_message(_result(count=3), config, True) == (
        "3 replacement(s) applied from profile: P. Press ctrl+shift+alt+r to revert."
    )


def test_message_several_profiles_reverse():
    message = build_replacement_message(
        _result(count=2, profiles=("A", "B"), reverse=True), Config(), True
    )
    assert message == (
        "2 replacement(s) (reverse) applied from profiles: A, B. "
        "Use 'revert' to restore the original."
    )


def test_message_automatic_reversion():
    message = build_replacement_message(_result(), Config(automatic_reversion=True), True)
    assert message.endswith("Clipboard will be automatically reverted after paste.")


def test_message_without_held_original():
    assert build_replacement_message(_result(), Config(), False) == (
        "1 replacement(s) applied from profile: P."
    )
