"""
Unit tests for session scoring.
"""
import unittest

from src.models import Response, Score
from src.scorer import score


class TestScorer(unittest.TestCase):
    """Test cases for score()."""

    def test_mixed_responses(self):
        result = score([("a", "a"), ("b", "c")])
        self.assertEqual(result, (1, 1, 2))
        self.assertEqual(result, Score(correct=1, incorrect=1, total=2))

    def test_empty_responses(self):
        self.assertEqual(score([]), (0, 0, 0))

    def test_all_correct(self):
        responses = [Response("Paris", "Paris"), Response("4", "4"), Response("Blue", "Blue")]
        self.assertEqual(score(responses), Score(3, 0, 3))

    def test_comparison_is_exact(self):
        self.assertEqual(score([("paris", "Paris"), ("4 ", "4")]).correct, 0)

    def test_accepts_generators(self):
        result = score((str(i), "0") for i in range(5))
        self.assertEqual(result, Score(1, 4, 5))


if __name__ == '__main__':
    unittest.main()
