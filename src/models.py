"""
Core data models for the parts quiz runner.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


@dataclass(frozen=True)
class Question:
    """Represents a single normalized multiple-choice question."""
    text: str
    options: Tuple[str, ...]
    correct_option: str
    source_part: str

    def __post_init__(self):
        if len(self.options) < 2:
            raise ValueError("A question needs at least two options")
        if self.correct_option not in self.options:
            raise ValueError(f"Correct option {self.correct_option!r} is not one of the options")


class Response(NamedTuple):
    """One recorded answer: what was picked and what was right."""
    selected: str
    correct: str


class Score(NamedTuple):
    """Final tally of a session."""
    correct: int
    incorrect: int
    total: int


class PoolResult(NamedTuple):
    """Outcome of one aggregation: the merged pool plus that call's failures."""
    questions: List[Question]
    requested_parts: List[str]
    part_counts: Dict[str, int]
    errors: Dict[str, str]


@dataclass
class LoadResult:
    """Tagged outcome of one parsing attempt."""
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "LoadResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "LoadResult":
        return cls(ok=False, error=error)


@dataclass
class QuizSettings:
    """Configuration settings for question loading and selection."""
    resource_base: str = "./quizzes/"
    request_timeout: Optional[float] = 10.0
    resource_templates: Tuple[str, ...] = ("test{part}.js", "test{part}.json", "part{part}.json")
    available_parts: Tuple[str, ...] = ("1", "2", "3", "4", "5", "6", "7", "8")
    limit_presets: dict = field(default_factory=lambda: {"quick": 50, "standard": 100, "marathon": 200})
    limit_step: int = 50
    limit_floor: int = 10
