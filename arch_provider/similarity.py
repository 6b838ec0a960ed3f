# arch_provider/similarity.py

from typing import Protocol


class SimilarityMeasure(Protocol):
    def are_words_similar(self, first: str, second: str) -> bool:
        ...


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


class LevenshteinMeasure:
    """
    Edit-distance similarity, case-insensitive.

    - Words no longer than min_length are only similar when equal.
    - Otherwise the allowed distance is max_distance, tightened to
      threshold * (length of the shorter word) for short words.
    """

    def __init__(self, min_length: int = 2, max_distance: int = 1, threshold: float = 0.5):
        if min_length < 0 or max_distance < 0:
            raise ValueError("min_length and max_distance must be non-negative")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.min_length = min_length
        self.max_distance = max_distance
        self.threshold = threshold

    def allowed_distance(self, first: str, second: str) -> int:
        shorter = min(len(first), len(second))
        return min(self.max_distance, int(self.threshold * shorter))

    def similarity_cutoff(self, first: str, second: str) -> float:
        """
        The allowed distance expressed on the normalized [0, 1] similarity scale.
        """
        longest = max(len(first), len(second))
        if longest == 0:
            return 1.0
        return 1.0 - self.allowed_distance(first, second) / longest

    def similarity(self, first: str, second: str) -> float:
        a, b = first.lower(), second.lower()
        longest = max(len(a), len(b))
        if longest == 0:
            return 1.0
        return 1.0 - levenshtein_distance(a, b) / longest

    def are_words_similar(self, first: str, second: str) -> bool:
        a, b = first.lower(), second.lower()
        if a == b:
            return True
        if len(a) <= self.min_length or len(b) <= self.min_length:
            return False
        return self.similarity(a, b) >= self.similarity_cutoff(a, b)

    @classmethod
    def from_settings(cls, settings) -> "LevenshteinMeasure":
        return cls(
            min_length=settings.levenshtein_min_length,
            max_distance=settings.levenshtein_max_distance,
            threshold=settings.levenshtein_threshold,
        )
