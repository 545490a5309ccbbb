"""
history.py — Original/transformed clipboard pair and the revert state machine.

    Idle ──(changed text, new source)──────────────> PendingRevert
    PendingRevert ──(re-run on own last output)────> PendingRevert  (snapshot kept)
    PendingRevert ──(revert / auto-revert)─────────> Idle           (original written back)
    PendingRevert ──(new source, nothing changed)──> Idle           (snapshot dropped)
    any ──(temporary clipboard disabled)───────────> Idle           (snapshot dropped)

The diff pair is tracked separately: it reflects the most recent trigger
whether or not an original is being held for revert.

One RLock guards everything. The app holds it for a whole trigger
(read -> transform -> write -> record) so concurrent hotkeys serialise.
"""

import threading
from enum import Enum
from typing import Callable, NamedTuple, Optional


class RevertState(Enum):
    IDLE           = "idle"
    PENDING_REVERT = "pending_revert"


class DiffPair(NamedTuple):
    original:  str
    modified:  str
    available: bool


class HistoryManager:

    def __init__(self, on_revert_status: Callable[[bool], None] = None):
        self.lock               = threading.RLock()
        self._on_revert_status  = on_revert_status
        self._original: Optional[str]    = None
        self._last_output: Optional[str] = None
        self._diff_original     = ""
        self._diff_modified     = ""
        self._diff_available    = False
        self._generation        = 0

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def state(self) -> RevertState:
        with self.lock:
            if self._original is None:
                return RevertState.IDLE
            return RevertState.PENDING_REVERT

    @property
    def can_revert(self) -> bool:
        return self.state is RevertState.PENDING_REVERT

    @property
    def generation(self) -> int:
        """Bumped whenever a new original is stored or the held one is released."""
        with self.lock:
            return self._generation

    @property
    def stored_original(self) -> Optional[str]:
        with self.lock:
            return self._original

    def is_new_content(self, text: str) -> bool:
        with self.lock:
            return self._last_output is None or text != self._last_output

    def last_diff_pair(self) -> DiffPair:
        with self.lock:
            return DiffPair(self._diff_original, self._diff_modified, self._diff_available)

    # ── Transitions ───────────────────────────────────────────────────────────

    def _notify(self, can_revert: bool):
        if self._on_revert_status:
            self._on_revert_status(can_revert)

    def _hold(self, original: str):
        self._original    = original
        self._generation += 1

    def _release(self):
        self._original    = None
        self._generation += 1

    def record(self, original: str, transformed: str,
               temporary_clipboard: bool = True) -> bool:
        """
        Register the outcome of one trigger after the clipboard was written.
        Returns whether a revert is now available.
        """
        with self.lock:
            changed = transformed != original
            is_new  = self._last_output is None or original != self._last_output

            if temporary_clipboard:
                if changed and (is_new or self._original is None):
                    self._hold(original)
                    self._notify(True)
                elif is_new and self._original is not None:
                    # Fresh copy from outside: the held original is stale
                    self._release()
                    self._notify(False)
                elif self._original is not None:
                    self._notify(True)
                else:
                    self._notify(False)
            elif self._original is not None:
                self._release()
                self._notify(False)

            if changed:
                self._diff_original  = original
                self._diff_modified  = transformed
                self._diff_available = True
            else:
                self._clear_diff()

            self._last_output = transformed
            return self._original is not None

    def _clear_diff(self):
        self._diff_original  = ""
        self._diff_modified  = ""
        self._diff_available = False

    def revert(self, write: Callable[[str], None]) -> Optional[str]:
        """
        Write the held original back through *write* and return to Idle.
        Returns the restored text, or None when nothing was held.
        Exceptions from *write* propagate and leave the state untouched.
        """
        with self.lock:
            if self._original is None:
                return None
            restored = self._original
            write(restored)
            self._release()
            self._last_output = restored
            self._clear_diff()
            self._notify(False)
            return restored

    def auto_revert(self, generation: int, write: Callable[[str], None]) -> Optional[str]:
        """Revert only if nothing has happened since *generation* was issued."""
        with self.lock:
            if generation != self._generation:
                return None
            return self.revert(write)

    def disable(self):
        """Temporary clipboard switched off: drop the held original, no write."""
        with self.lock:
            if self._original is not None:
                self._release()
                self._notify(False)
