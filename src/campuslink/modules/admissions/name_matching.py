"""
Name Matching

Fuzzy comparison of a claimed name against the canonical name in the
admission registry. Used as a pass/fail gate during admission validation,
never shown to users as a score.
"""

NAME_MATCH_THRESHOLD = 0.6


def _normalize(name: str) -> str:
    return name.strip().lower()


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance with unit-cost insert, delete and substitute."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + (c1 != c2),  # substitution
                )
            )
        previous = current

    return previous[-1]


def similarity(a: str | None, b: str | None) -> float:
    """
    Similarity in [0, 1] between two names.

    Case-insensitive and whitespace-trimmed. 1.0 for an exact match,
    0.0 if either name is empty, otherwise
    ``1 - distance / max(len(a), len(b))``.
    """
    if not a or not b:
        return 0.0

    s1 = _normalize(a)
    s2 = _normalize(b)

    if not s1 or not s2:
        return 0.0

    if s1 == s2:
        return 1.0

    distance = levenshtein_distance(s1, s2)
    return 1 - distance / max(len(s1), len(s2))


def names_match(claimed: str, canonical: str, threshold: float = NAME_MATCH_THRESHOLD) -> bool:
    """Whether a claimed name is close enough to the registry's name."""
    return similarity(claimed, canonical) >= threshold
