"""Regular expression builder for catalog search terms."""
from __future__ import annotations

import re
from dataclasses import dataclass

from unidecode import unidecode

from .models import PatternMode

SMART_PREFIX_MIN_LENGTH = 3

# MongoDB evaluates $regex byte-wise and ignores collation, so accents are
# folded into the pattern itself.
_ACCENTED = {
    "a": "áàâäã",
    "e": "éèêë",
    "i": "íìîï",
    "o": "óòôöõ",
    "u": "úùûü",
    "n": "ñ",
    "c": "ç",
    "y": "ýÿ",
}


@dataclass(frozen=True)
class SearchPattern:
    term: str
    mode: PatternMode
    anchored: bool
    regex: re.Pattern

    def matches(self, value: str | None) -> bool:
        if value is None:
            return False
        return self.regex.search(value) is not None


def resolve_mode(mode: str | PatternMode | None) -> PatternMode:
    """Map a raw mode string to a :class:`PatternMode`; unknown values mean smart."""
    if isinstance(mode, PatternMode):
        return mode
    try:
        return PatternMode((mode or "").strip().lower())
    except ValueError:
        return PatternMode.SMART


def build_pattern(
    term: str,
    mode: str | PatternMode | None = PatternMode.SMART,
    *,
    smart_prefix_min_length: int = SMART_PREFIX_MIN_LENGTH,
) -> SearchPattern:
    """Escape ``term`` and anchor it according to ``mode``.

    ``prefix`` always anchors at the start of the value and ``contains`` never
    does. ``smart`` anchors unless the term is shorter than
    ``smart_prefix_min_length`` characters.

    Case and accents are both ignored: every vowel, ``n``, ``c`` and ``y`` in
    the term becomes a character class of its accented variants, so ``jose``
    matches ``José`` and ``café`` matches ``CAFE``.
    """

    resolved = resolve_mode(mode)
    if resolved is PatternMode.PREFIX:
        anchored = True
    elif resolved is PatternMode.CONTAINS:
        anchored = False
    else:
        anchored = len(term) >= smart_prefix_min_length

    safe = accent_tolerant(term)
    expression = f"^{safe}" if anchored else safe
    return SearchPattern(
        term=term,
        mode=resolved,
        anchored=anchored,
        regex=re.compile(expression, re.IGNORECASE),
    )


def accent_tolerant(term: str) -> str:
    """Escape ``term`` with accent-insensitive classes for foldable letters."""
    parts: list[str] = []
    for char in term:
        base = unidecode(char).lower()
        variants = _ACCENTED.get(base) if len(base) == 1 else None
        if variants is None:
            parts.append(re.escape(char))
        else:
            parts.append(f"[{base}{base.upper()}{variants}{variants.upper()}]")
    return "".join(parts)
