# arch_provider/sanitizer.py

import re
from typing import Iterable, List, Sequence

_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z0-9 \-_]")
_WHITESPACE = re.compile(r"\s+")


class NameSanitizer:
    """
    Normalizes candidate names into final component names:
    strip disallowed characters, collapse whitespace, drop noise words,
    drop empties, dedup and sort.
    """

    def __init__(self, noise_tokens: Sequence[str] = ("Components", "Component"), case_insensitive: bool = False):
        self.noise_tokens = tuple(noise_tokens)
        self.case_insensitive = case_insensitive
        self._noise = None
        if self.noise_tokens:
            # longest first so "Components" is not left as a dangling "s"
            alternatives = sorted(self.noise_tokens, key=len, reverse=True)
            self._noise = re.compile(r"\b(?:" + "|".join(re.escape(t) for t in alternatives) + r")\b")

    def normalize(self, name: str) -> str:
        cleaned = _DISALLOWED_CHARS.sub("", name or "")
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if self._noise is not None:
            cleaned = self._noise.sub("", cleaned)
            cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        return cleaned

    def _dedup(self, names: Iterable[str]) -> List[str]:
        seen = set()
        out = []
        for name in names:
            key = name.casefold() if self.case_insensitive else name
            if key in seen:
                continue
            seen.add(key)
            out.append(name)
        return out

    def sanitize(self, names: Iterable[str]) -> List[str]:
        normalized = (self.normalize(n) for n in names)
        return sorted(self._dedup(n for n in normalized if n))

    @classmethod
    def from_settings(cls, settings) -> "NameSanitizer":
        return cls(noise_tokens=settings.noise_tokens, case_insensitive=settings.case_insensitive_dedup)


def sanitize_component_names(names: Iterable[str]) -> List[str]:
    return NameSanitizer().sanitize(names)
