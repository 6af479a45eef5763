"""
Name canonicalisation shared by the extractor, the registry side and the matcher.

Three levels, each built on the previous one:
  normalize()            "José  O'Brien"              → "jose obrien"
  normalize_canonical()  "The Late Dr. John Kamau of Nyeri" → "john kamau"
  signature()            "Kamau John"                 → "john kamau"   (sorted tokens)

All functions are pure and total: None or "" comes back as "".
"""

from __future__ import annotations

import re
import unicodedata

# ─── Patterns ────────────────────────────────────────────────────────

_WHITESPACE = re.compile(r"\s+")

_TITLES = re.compile(r"\b(?:dr|mr|mrs|ms|miss|rev|prof|eng)\b")
_ESTATE_PHRASES = re.compile(r"\b(?:of the estate of|estate of|the late|late)\b")
_TRAILING_PLACE = re.compile(r"\bof\s+\w[\w\s]*$")

_ALIAS_SPLIT = re.compile(
    r"\s+(?:alias|aka|a\.k\.a\.?|otherwise known as)\s+", re.IGNORECASE
)


# ─── Public API ──────────────────────────────────────────────────────


def normalize(name: object) -> str:
    """Lower-case, strip diacritics, drop non-letters, collapse whitespace.

    Idempotent: normalize(normalize(x)) == normalize(x).
    """
    if name is None:
        return ""
    text = unicodedata.normalize("NFD", str(name).lower())
    # Combining marks, digits and numeric symbols are not letters.
    text = "".join(ch for ch in text if ch.isalpha() or ch.isspace())
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(name: object) -> str:
    """Order-insensitive token signature of a normalized name.

    Single-letter fragments (initials) are dropped. Not tolerant of
    misspellings; that is the fuzzy matcher's job.
    """
    tokens = [t for t in normalize(name).split(" ") if len(t) > 1]
    return " ".join(sorted(tokens))


def normalize_canonical(name: object) -> str:
    """normalize() plus removal of honorifics, estate boilerplate and 'of <place>'."""
    text = normalize(name)
    text = _TITLES.sub(" ", text)
    text = _ESTATE_PHRASES.sub(" ", text)
    text = _TRAILING_PLACE.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def signature(name: object) -> str:
    """Token signature of the canonical form. The key used by tokens mode."""
    return tokenize(normalize_canonical(name))


def token_set(name: object) -> set[str]:
    """Canonical tokens as a set, for Jaccard and blocking."""
    return set(signature(name).split())


def split_aliases(name: object) -> list[str]:
    """Split 'JOHN KAMAU alias JOHN MWANGI' into ['JOHN KAMAU', 'JOHN MWANGI'].

    Returns the raw (un-normalized) parts; an empty input gives [].
    """
    if name is None:
        return []
    parts = [p.strip() for p in _ALIAS_SPLIT.split(str(name))]
    return [p for p in parts if p]
