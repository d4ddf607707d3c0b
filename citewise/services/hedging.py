"""
Hedging Rewrite

Deterministic post-processing applied when the self-check reports
unsupported claims. Downgrades assertive wording to tentative wording;
it does not regenerate or remove anything.

Kept separate from generation so it can be swapped for another
``Callable[[str], str]``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Final

ASSERTIVE_TO_TENTATIVE: Final[Mapping[str, str]] = {
    "definitely": "likely",
    "certainly": "likely",
    "undoubtedly": "possibly",
    "clearly": "apparently",
    "obviously": "apparently",
    "always": "often",
    "never": "rarely",
    "proves": "suggests",
    "proved": "suggested",
    "proven": "suggested",
    "confirms": "suggests",
    "confirmed": "suggested",
    "demonstrates": "indicates",
    "demonstrated": "indicated",
    "must": "may",
}

_PATTERN = re.compile(
    r"\b(" + "|".join(sorted(ASSERTIVE_TO_TENTATIVE, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def _replace(match: re.Match[str]) -> str:
    word = match.group(0)
    replacement = ASSERTIVE_TO_TENTATIVE[word.lower()]
    if word.isupper() and len(word) > 1:
        return replacement.upper()
    if word[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def soften_assertions(text: str) -> str:
    """Rewrite assertive words as tentative ones (whole words, case-aware)."""
    return _PATTERN.sub(_replace, text)
