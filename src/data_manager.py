"""
Data manager that assembles the question pool for a session.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from .models import PoolResult, Question
from .source_loader import SourceLoader


class DataManager:
    """
    Loads the requested parts concurrently and merges them into one pool.

    One instance is shared by every channel, so each aggregation returns its
    own errors in a PoolResult. The only state kept across calls is the
    per-part question count cache and the most recent result for the
    command-line summary.
    """

    def __init__(self, loader: SourceLoader):
        """
        Initialize DataManager with a source loader.

        Args:
            loader: Loader used to fetch and normalize each part
        """
        self.loader = loader
        self.logger = logging.getLogger(__name__)
        self.part_counts: Dict[str, int] = {}
        self.last_result: Optional[PoolResult] = None

    async def load_pool(self, part_ids: Sequence[str]) -> PoolResult:
        """
        Build a fresh question pool from the given parts.

        Parts are fetched concurrently; a part that fails contributes no
        questions and is reported in the result's errors.

        Args:
            part_ids: Ordered part identifiers; duplicates are ignored

        Returns:
            PoolResult with all questions, grouped by part in the order the
            parts were given, and the failures of this call only
        """
        ordered_parts = list(dict.fromkeys(part_ids))

        if not ordered_parts:
            self.logger.warning("No parts requested, question pool is empty")
            result = PoolResult([], [], {}, {})
            self.last_result = result
            return result

        async with self.loader.fetcher:
            results = await asyncio.gather(
                *(self.loader.load_with_status(part_id) for part_id in ordered_parts)
            )

        pool: List[Question] = []
        counts: Dict[str, int] = {}
        errors: Dict[str, str] = {}
        for part_id, (questions, error) in zip(ordered_parts, results):
            if error is not None:
                errors[part_id] = error
            else:
                counts[part_id] = len(questions)
            pool.extend(questions)

        self.part_counts.update(counts)
        self.logger.info(
            f"Assembled pool of {len(pool)} questions from {len(ordered_parts)} parts"
        )
        if errors:
            self.logger.warning(f"Encountered {len(errors)} part loading errors")

        result = PoolResult(pool, ordered_parts, counts, errors)
        self.last_result = result
        return result

    async def aggregate(self, part_ids: Sequence[str]) -> List[Question]:
        """Build a fresh question pool, discarding per-part errors."""
        result = await self.load_pool(part_ids)
        return result.questions

    def get_part_count(self, part_id: str) -> Optional[int]:
        """
        Get the question count seen for a part on its last successful load.

        Returns:
            Number of questions, or None if the part has never loaded
        """
        return self.part_counts.get(part_id)

    def get_load_errors(self, result: Optional[PoolResult] = None) -> Dict[str, str]:
        """
        Get errors of the given aggregation (the most recent one if omitted), keyed by part.
        """
        result = result or self.last_result
        return dict(result.errors) if result else {}

    def has_load_errors(self, result: Optional[PoolResult] = None) -> bool:
        return len(self.get_load_errors(result)) > 0

    def get_loading_summary(self, result: Optional[PoolResult] = None) -> Dict[str, any]:
        """
        Get a summary of one aggregation.

        Args:
            result: Aggregation to summarize; the most recent one if omitted

        Returns:
            Dictionary with loading statistics and status
        """
        result = result or self.last_result or PoolResult([], [], {}, {})
        loaded_parts = [part for part in result.requested_parts if part not in result.errors]
        return {
            'requested_parts': list(result.requested_parts),
            'loaded_parts': loaded_parts,
            'part_counts': {part: result.part_counts.get(part, 0) for part in loaded_parts},
            'total_questions': len(result.questions),
            'has_errors': bool(result.errors),
            'error_count': len(result.errors),
            'errors': dict(result.errors),
        }
