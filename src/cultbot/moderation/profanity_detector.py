"""
Disallowed-term matching with tolerance for common obfuscation.

For every configured term two patterns are compiled once:

* exact       ``\\b<term>\\b``
* obfuscated  look-alike character classes (``o`` -> ``[o0]`` ...) with
  optional whitespace, dash or underscore separators between characters

Terms are tried in configuration order and the first hit wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List

from cultbot.datatypes.moderation_datatypes import MatchKind, ProfanityCategory, ProfanityMatch

LOOKALIKES = {
    "a": "[a@4]",
    "e": "[e3]",
    "i": "[i1!]",
    "o": "[o0]",
    "s": r"[s5$]",
    "t": "[t7]",
}

SEPARATOR = r"[\s\-_]*"


def build_exact_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(term.lower())}\b", re.IGNORECASE)


def build_obfuscated_pattern(term: str) -> re.Pattern[str]:
    """Compile the look-alike pattern for ``term`` (e.g. ``word`` also matches ``w0rd`` and ``w-o-r-d``)."""
    parts = [LOOKALIKES.get(ch, re.escape(ch)) for ch in term.lower()]
    return re.compile(rf"\b{SEPARATOR.join(parts)}\b", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class _CompiledTerm:
    term: str
    exact: re.Pattern[str]
    obfuscated: re.Pattern[str]


class ProfanityDetector:
    """Matcher over a fixed term list; all terms share one category."""

    def __init__(self, terms: Iterable[str], category: ProfanityCategory = ProfanityCategory.RACIAL_SLUR) -> None:
        self.category = category
        self._terms: List[_CompiledTerm] = []
        for raw in terms:
            term = str(raw).strip().lower()
            if not term:
                continue
            self._terms.append(_CompiledTerm(term, build_exact_pattern(term), build_obfuscated_pattern(term)))

    def __len__(self) -> int:
        return len(self._terms)

    @property
    def terms(self) -> List[str]:
        return [t.term for t in self._terms]

    def detect(self, content: str) -> ProfanityMatch | None:
        """Return the first disallowed term found in ``content``, or None."""
        if not content or not self._terms:
            return None

        text = content.lower()
        for compiled in self._terms:
            if compiled.exact.search(text):
                return ProfanityMatch(compiled.term, MatchKind.EXACT, self.category)
            if compiled.obfuscated.search(text):
                return ProfanityMatch(compiled.term, MatchKind.OBFUSCATED, self.category)
        return None
