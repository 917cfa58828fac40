"""Short client codes embedded in invoice numbers."""
from __future__ import annotations

import re

PLACEHOLDER = "XXXX"
MAX_LENGTH = 4

_STOPWORDS = frozenset({"pvt", "ltd", "inc", "llc", "co", "the", "and", "of"})
_NON_ALPHA = re.compile(r"[^A-Za-z]")
_HUMP = re.compile(r"[A-Z][^A-Z]*")


def _letters(token: str) -> str:
    return _NON_ALPHA.sub("", token)


def _camel_humps(word: str) -> list[str]:
    """Split ``FocalDive`` into ``["Focal", "Dive"]``; anything else stays whole."""

    humps = _HUMP.findall(word)
    if len(humps) > 1 and "".join(humps) == word and all(len(hump) > 1 for hump in humps):
        return humps
    return [word]


def client_abbreviation(name: str) -> str:
    """Return the uppercase code (at most four characters) for a client name.

    Legal-form and filler words (``Pvt``, ``Ltd``, ``The`` ...) are ignored and
    several remaining words contribute their initials. A single CamelCase word
    whose humps all have two or more letters is treated as those words
    (``FocalDive`` gives ``FD``, ``McDonald`` gives ``MD``). Any other single
    word contributes its first four letters (``Arshaq`` gives ``ARSH``).
    """

    words = [word for word in name.split() if _letters(word).lower() not in _STOPWORDS]
    if not words:
        return PLACEHOLDER

    if len(words) == 1:
        letters = _letters(words[0])
        humps = _camel_humps(letters)
        if len(humps) > 1:
            words = humps
        else:
            return letters[:MAX_LENGTH].upper() or PLACEHOLDER

    return "".join(word[0] for word in words).upper()[:MAX_LENGTH]
