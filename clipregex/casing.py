"""
casing.py — Case-preserving re-casing of replacement text.

Given the text a rule matched (the "example") and the text it should be
replaced with (the "target"), return the target re-cased to follow the
example's capitalisation class. Checks run in a fixed order, first hit wins:

    1. empty example or target    -> target untouched
    2. all letters lowercase      -> target.lower()
    3. all letters uppercase      -> target.upper()
    4. Title case                 -> first char upper, rest lower
    5. anything else (camelCase)  -> only the first char follows the example
"""


def _letters(text: str) -> list:
    return [ch for ch in text if ch.isalpha()]


def _is_all_lower(text: str) -> bool:
    letters = _letters(text)
    return bool(letters) and all(ch.islower() for ch in letters)


def _is_all_upper(text: str) -> bool:
    letters = _letters(text)
    return bool(letters) and all(ch.isupper() for ch in letters)


def _is_title(text: str) -> bool:
    if not text[0].isupper():
        return False
    return all(ch.islower() for ch in _letters(text[1:]))


def preserve_case(example: str, target: str) -> str:
    """Return *target* re-cased to match the capitalisation of *example*."""
    if not example or not target:
        return target

    if _is_all_lower(example):
        return target.lower()

    if _is_all_upper(example):
        return target.upper()

    if _is_title(example) and _letters(target):
        return target[0].upper() + target[1:].lower()

    # Mixed case: match the first character only
    first = example[0]
    if not first.isalpha():
        return target
    head = target[0].upper() if first.isupper() else target[0].lower()
    return head + target[1:]
