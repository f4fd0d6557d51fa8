"""
Normalized edit-distance similarity between two messages.
"""


def _normalize(text: str) -> str:
    return text.strip().lower()


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance with a single rolling row.

    Runs in O(len(a) * len(b)) time and O(min(len(a), len(b))) space.
    """
    if len(a) < len(b):
        a, b = b, a
    # b is now the shorter string and sizes the row
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity in [0.0, 1.0] of two strings, ignoring case and surrounding
    whitespace. Two empty strings are identical.
    """
    a, b = _normalize(a), _normalize(b)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / longest
