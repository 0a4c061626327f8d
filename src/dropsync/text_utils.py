from __future__ import annotations

import unicodedata


def normalize_key(value: str) -> str:
    """Return a comparison key for case-insensitive lookups.

    App names, config keys and choice labels are matched by normalizing both
    sides with this helper rather than by storing them in a case-insensitive
    container. Unicode is canonicalized to NFC first so composed and decomposed
    forms of the same name compare equal.
    """
    return unicodedata.normalize("NFC", value).casefold()


def same_key(left: str, right: str) -> bool:
    return normalize_key(left) == normalize_key(right)
