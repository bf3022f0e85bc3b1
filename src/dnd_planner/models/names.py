"""Lookup keys for proficiency names.

Rule-book data, saved characters, and user input disagree on casing and
accents ("Thieves' Tools" vs "thieves' tools", "Elvish" vs "Élvish"). Every
match in the proficiency subsystem compares ``normalize()`` keys; the display
form of a name is never touched.
"""

import unicodedata


def normalize(name: object) -> str:
    """Fold *name* to a case- and diacritic-insensitive lookup key.

    Non-strings (``None``, numbers from corrupt data) map to ``""`` so callers
    can treat an empty key as "no name".
    """
    if not isinstance(name, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.strip().casefold()


def same_name(a: object, b: object) -> bool:
    key = normalize(a)
    return bool(key) and key == normalize(b)


def unique_names(names) -> list[str]:
    """Drop blanks and case-insensitive repeats, first spelling wins."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        key = normalize(name)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(name)
    return result
