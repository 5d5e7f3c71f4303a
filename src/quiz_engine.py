"""
Quiz engine core logic for the parts quiz runner.
Handles shuffling, question selection, limit presets and part selection.
"""
import logging
import random
from typing import Dict, List, Mapping, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIMIT_STEP = 50
DEFAULT_LIMIT_FLOOR = 10


def limit_applies(limit: Optional[int], multi_part: bool) -> bool:
    """A limit only caps sessions built from more than one part."""
    return limit is not None and multi_part


def estimated_count(part_counts: Mapping[str, int], limit: Optional[int], multi_part: bool) -> int:
    """
    Estimate how many questions a session will contain.

    Args:
        part_counts: Question count per selected part
        limit: Active limit, or None
        multi_part: Whether more than one part is selected

    Returns:
        Sum of the counts, capped by the limit when the limit applies
    """
    total = sum(part_counts.values())
    if limit_applies(limit, multi_part):
        return min(total, limit)
    return total


class QuizEngine:
    """Core quiz engine that handles shuffling and question selection."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the quiz engine.

        Args:
            rng: Random source, a fresh random.Random() when omitted
        """
        self._rng = rng or random.Random()

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """
        Return a uniformly shuffled copy using Fisher-Yates.

        Args:
            items: Sequence to shuffle; it is not modified

        Returns:
            New list with the items in random order
        """
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self._rng.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def select_questions(self, pool: Sequence[T], limit: Optional[int], multi_part: bool) -> List[T]:
        """
        Shuffle the pool and apply the limit.

        Args:
            pool: Every question available to the session
            limit: Active limit, or None
            multi_part: Whether more than one part was selected

        Returns:
            Ordered list of questions for the session
        """
        selected = self.shuffle(pool)
        if limit_applies(limit, multi_part):
            selected = self.limit_question_count(selected, limit)
        logger.debug(f"Selected {len(selected)} of {len(pool)} questions (limit={limit}, multi_part={multi_part})")
        return selected

    def limit_question_count(self, questions: Sequence[T], count: int) -> List[T]:
        """
        Take the first ``count`` questions.

        Note:
            If count is greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count < 1:
            return []

        return list(questions[:count])


class LimitSelector:
    """
    Mutually exclusive limit presets with step adjustment.

    At most one preset is active. Activating a preset starts from its base
    value; adjustments move by ``step`` and never go below ``floor``.
    """

    def __init__(self, presets: Mapping[str, int], step: int = DEFAULT_LIMIT_STEP, floor: int = DEFAULT_LIMIT_FLOOR):
        if step < 1:
            raise ValueError("Limit step must be positive")
        if floor < 1:
            raise ValueError("Limit floor must be positive")
        self.presets: Dict[str, int] = dict(presets)
        self.step = step
        self.floor = floor
        self.active_preset: Optional[str] = None
        self._value: Optional[int] = None

    @property
    def limit(self) -> Optional[int]:
        return self._value if self.active_preset is not None else None

    @property
    def is_active(self) -> bool:
        return self.active_preset is not None

    def toggle(self, preset: str) -> Optional[int]:
        """
        Activate a preset, or deactivate it if it is already active.

        Returns:
            The resulting limit, or None when no preset is active

        Raises:
            KeyError: If the preset is unknown
        """
        if preset not in self.presets:
            raise KeyError(f"Unknown limit preset: {preset}")

        if self.active_preset == preset:
            self.reset()
            return None

        self.active_preset = preset
        self._value = max(self.floor, self.presets[preset])
        logger.debug(f"Limit preset '{preset}' active at {self._value}")
        return self._value

    def adjust(self, direction: int) -> Optional[int]:
        """Move the active limit by ``direction`` steps, clamped to the floor."""
        if not self.is_active:
            return None
        self._value = max(self.floor, self._value + direction * self.step)
        return self._value

    def increase(self) -> Optional[int]:
        return self.adjust(1)

    def decrease(self) -> Optional[int]:
        return self.adjust(-1)

    def reset(self) -> None:
        self.active_preset = None
        self._value = None


class PartSelection:
    """The parts a user has picked, plus the limit that goes with them."""

    def __init__(self, available_parts: Sequence[str], limit_selector: LimitSelector):
        self.available_parts = list(available_parts)
        self.limit_selector = limit_selector
        self._parts: List[str] = []

    @property
    def parts(self) -> List[str]:
        return list(self._parts)

    @property
    def is_multi_part(self) -> bool:
        return len(self._parts) > 1

    @property
    def limit(self) -> Optional[int]:
        return self.limit_selector.limit if self.is_multi_part else None

    def toggle(self, part: str) -> bool:
        """
        Add or remove a part.

        Returns:
            True if the part is now selected

        Raises:
            KeyError: If the part is not available
        """
        if part not in self.available_parts:
            raise KeyError(f"Unknown part: {part}")

        if part in self._parts:
            self._parts.remove(part)
        else:
            self._parts.append(part)
        self._sync_limit()
        return part in self._parts

    def select_all(self) -> bool:
        """
        Select every available part, or clear the selection if all are selected.

        Returns:
            True if all parts are now selected
        """
        if len(self._parts) == len(self.available_parts):
            self.clear()
            return False
        self._parts = list(self.available_parts)
        return True

    def clear(self) -> None:
        self._parts = []
        self.limit_selector.reset()

    def _sync_limit(self) -> None:
        if not self.is_multi_part:
            self.limit_selector.reset()
