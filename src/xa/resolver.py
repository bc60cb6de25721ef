"""Command name resolution: exact, then prefix, then fuzzy."""

from typing import Iterable, Optional

from rich.console import Console

err_console = Console(stderr=True)

SCORE_MATCH = 16
BONUS_BOUNDARY = 8
BONUS_CONSECUTIVE = 8
BONUS_FIRST_CHAR = 4
PENALTY_GAP_START = 3
PENALTY_GAP_EXTENSION = 1

SEPARATORS = "-_ ./"


def _score_from(candidate: str, pattern: str, start: int) -> Optional[int]:
    """Score a greedy subsequence match of `pattern` beginning at `start`."""
    score = 0
    prev = None
    pos = start
    for i, ch in enumerate(pattern):
        pos = candidate.find(ch, pos)
        if pos < 0:
            return None

        score += SCORE_MATCH
        if pos == 0 or candidate[pos - 1] in SEPARATORS:
            score += BONUS_BOUNDARY
            if i == 0:
                score += BONUS_FIRST_CHAR

        if prev is not None:
            gap = pos - prev - 1
            if gap == 0:
                score += BONUS_CONSECUTIVE
            else:
                score -= PENALTY_GAP_START + PENALTY_GAP_EXTENSION * (gap - 1)

        prev = pos
        pos += 1
    return score


def fuzzy_score(candidate: str, pattern: str) -> Optional[int]:
    """
    Score how well `pattern` matches `candidate` as a subsequence.

    Case-insensitive. Returns None when the pattern characters do not all
    appear in order in the candidate. Consecutive runs and matches at word
    boundaries score higher; gaps between matched characters cost points.
    Every possible starting position of the first character is tried and the
    best score kept.
    """
    if not pattern:
        return None

    candidate = candidate.lower()
    pattern = pattern.lower()

    best = None
    start = candidate.find(pattern[0])
    while start >= 0:
        score = _score_from(candidate, pattern, start)
        if score is None:
            break
        if best is None or score > best:
            best = score
        start = candidate.find(pattern[0], start + 1)
    return best


def find_command(name: str, commands: Iterable[str]) -> Optional[str]:
    """
    Resolve a typed command name against known command names.

    Exact match wins, then a unique prefix match, then the best fuzzy match
    with a positive score. Several prefix matches are reported as ambiguous
    and resolve to nothing. Fuzzy ties go to the lexicographically smallest
    name.
    """
    known = sorted(commands)

    if name in known:
        return name

    prefix_matches = [key for key in known if key.startswith(name)]
    if len(prefix_matches) == 1:
        return prefix_matches[0]
    if len(prefix_matches) > 1:
        err_console.print(
            f"Ambiguous command '{name}'. Did you mean one of: {', '.join(prefix_matches)}?",
            markup=False,
            highlight=False,
        )
        return None

    best_match = None
    best_score = 0
    for key in known:
        score = fuzzy_score(key, name)
        if score is not None and score > best_score:
            best_score = score
            best_match = key
    return best_match
