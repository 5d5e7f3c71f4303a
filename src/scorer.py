"""
Scoring for completed quiz sessions.
"""
from typing import Iterable, Tuple

from .models import Score


def score(responses: Iterable[Tuple[str, str]]) -> Score:
    """
    Count correct and incorrect responses.

    Args:
        responses: (selected, correct) pairs in answer order

    Returns:
        Score(correct, incorrect, total)
    """
    correct = 0
    total = 0
    for selected, right in responses:
        total += 1
        if selected == right:
            correct += 1
    return Score(correct=correct, incorrect=total - correct, total=total)
