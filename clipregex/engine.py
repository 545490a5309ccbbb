"""
engine.py — Profile selection and the transformation pipeline.

A trigger (hotkey string + direction) selects every enabled profile bound
to it, in configured order. Each selected profile's rules run in order on
the running text, so rule N sees rule N-1's output and a later profile sees
the earlier profiles' output. Replacement counts are summed across all of
them ("rule merging").
"""

from dataclasses import dataclass, field, replace
from typing import Callable, List, Sequence, Tuple

from .rules import Rule, RuleApplier

FORWARD = "forward"
REVERSE = "reverse"


@dataclass(frozen=True)
class Profile:
    name:           str
    hotkey:         str
    enabled:        bool = True
    reverse_hotkey: str = ""
    rules:          Tuple[Rule, ...] = ()

    def with_enabled(self, enabled: bool) -> "Profile":
        return replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        data = {"name": self.name, "enabled": self.enabled, "hotkey": self.hotkey}
        if self.reverse_hotkey:
            data["reverse_hotkey"] = self.reverse_hotkey
        data["replacements"] = [r.to_dict() for r in self.rules]
        return data


@dataclass
class TransformResult:
    original: str
    text:     str
    count:    int = 0
    profiles: List[str] = field(default_factory=list)
    reverse:  bool = False

    @property
    def changed(self) -> bool:
        return self.text != self.original

    @property
    def direction(self) -> str:
        return REVERSE if self.reverse else FORWARD


def select_profiles(profiles: Sequence[Profile], trigger: str,
                    reverse: bool = False) -> List[Tuple[Profile, str]]:
    """Return (profile, direction) for every enabled profile bound to *trigger*."""
    selected = []
    for profile in profiles:
        if not profile.enabled:
            continue
        if reverse:
            if profile.reverse_hotkey and profile.reverse_hotkey == trigger:
                selected.append((profile, REVERSE))
        elif profile.hotkey == trigger:
            selected.append((profile, FORWARD))
    return selected


class TransformationEngine:
    """
    Runs selected profiles over one piece of text.
    Holds a read-only profile snapshot; reload builds a new engine.
    """

    def __init__(self, profiles: Sequence[Profile], applier: RuleApplier = None,
                 log: Callable = None):
        self.profiles = tuple(profiles)
        self.applier  = applier or RuleApplier()
        self._log     = log or (lambda message, tag="info", profile_name="": None)

    def triggers(self) -> List[Tuple[str, bool]]:
        """
        Distinct (hotkey, is_reverse) pairs across all profiles, in order.
        Disabled profiles are included so toggling needs no re-registration.
        """
        seen = []
        for profile in self.profiles:
            for key in ((profile.hotkey, False), (profile.reverse_hotkey, True)):
                if key[0] and key not in seen:
                    seen.append(key)
        return seen

    def transform(self, text: str, trigger: str, reverse: bool = False) -> TransformResult:
        result   = TransformResult(original=text, text=text, reverse=reverse)
        selected = select_profiles(self.profiles, trigger, reverse)
        if not selected:
            self._log(f"No enabled profile bound to '{trigger}' ({'reverse' if reverse else 'forward'})", "info")
            return result

        for profile, direction in selected:
            result.profiles.append(profile.name)
            profile_count = 0
            for index, rule in enumerate(profile.rules, start=1):
                label = f"[{profile.name}] rule #{index}"
                replaced, count = self.applier.apply(
                    result.text, rule, reverse=(direction == REVERSE), label=label
                )
                if replaced != result.text:
                    profile_count += count
                    result.text = replaced

            if profile_count:
                self._log(
                    f"Applied {profile_count} {direction} replacement(s) "
                    f"from profile '{profile.name}'", "chain", profile.name
                )
            else:
                self._log(
                    f"Profile '{profile.name}' ({direction}) matched, "
                    "but no replacements were made", "info", profile.name
                )
            result.count += profile_count

        return result
