"""
Unit tests for DataManager pool aggregation.
"""
import asyncio
import unittest

from src.data_manager import DataManager
from src.source_loader import SourceLoader
from tests.test_fixtures import FakeFetcher, TestFixtures, async_test


class SlowFakeFetcher(FakeFetcher):
    """Serves part 1 slower than part 2 so completion order differs from request order."""

    async def fetch(self, location):
        if location.startswith("test1"):
            await asyncio.sleep(0.05)
        return await super().fetch(location)


class TestDataManager(unittest.TestCase):
    """Test cases for DataManager functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.fetcher = FakeFetcher({
            "test1.json": TestFixtures.create_json_list_payload("A"),
            "test2.js": TestFixtures.create_script_object_payload("B"),
        })
        self.data_manager = DataManager(SourceLoader(self.fetcher))

    @async_test
    async def test_aggregate_concatenates_in_requested_order(self):
        pool = await self.data_manager.aggregate(["2", "1"])

        self.assertEqual(len(pool), 4)
        self.assertEqual([q.source_part for q in pool], ["2", "2", "1", "1"])

    @async_test
    async def test_order_follows_request_not_completion(self):
        fetcher = SlowFakeFetcher(self.fetcher.resources)
        data_manager = DataManager(SourceLoader(fetcher))

        pool = await data_manager.aggregate(["1", "2"])
        self.assertEqual([q.source_part for q in pool], ["1", "1", "2", "2"])

    @async_test
    async def test_partial_load_resilience(self):
        pool = await self.data_manager.aggregate(["1", "7"])

        self.assertEqual(len(pool), 2)
        self.assertTrue(all(q.source_part == "1" for q in pool))
        self.assertTrue(self.data_manager.has_load_errors())
        self.assertIn("7", self.data_manager.get_load_errors())

    @async_test
    async def test_all_parts_failing_gives_empty_pool(self):
        pool = await self.data_manager.aggregate(["6", "7"])

        self.assertEqual(pool, [])
        self.assertEqual(set(self.data_manager.get_load_errors()), {"6", "7"})

    @async_test
    async def test_duplicate_parts_loaded_once(self):
        pool = await self.data_manager.aggregate(["1", "1"])

        self.assertEqual(len(pool), 2)
        self.assertEqual(self.fetcher.requested.count("test1.js"), 1)

    @async_test
    async def test_empty_request(self):
        with self.assertLogs("src.data_manager", level="WARNING"):
            pool = await self.data_manager.aggregate([])
        self.assertEqual(pool, [])

    @async_test
    async def test_pool_is_rebuilt_each_time(self):
        first = await self.data_manager.aggregate(["1"])
        second = await self.data_manager.aggregate(["1"])

        self.assertIsNot(first, second)
        self.assertEqual(first, second)

    @async_test
    async def test_fetcher_closed_after_aggregation(self):
        await self.data_manager.aggregate(["1", "2"])
        self.assertEqual(self.fetcher.close_count, 1)

    @async_test
    async def test_errors_reset_between_aggregations(self):
        await self.data_manager.aggregate(["7"])
        self.assertTrue(self.data_manager.has_load_errors())

        await self.data_manager.aggregate(["1"])
        self.assertFalse(self.data_manager.has_load_errors())

    @async_test
    async def test_loading_summary(self):
        await self.data_manager.aggregate(["1", "2", "7"])
        summary = self.data_manager.get_loading_summary()

        self.assertEqual(summary['requested_parts'], ["1", "2", "7"])
        self.assertEqual(summary['loaded_parts'], ["1", "2"])
        self.assertEqual(summary['part_counts'], {"1": 2, "2": 2})
        self.assertEqual(summary['total_questions'], 4)
        self.assertEqual(summary['error_count'], 1)
        self.assertEqual(self.data_manager.get_part_count("2"), 2)
        self.assertIsNone(self.data_manager.get_part_count("7"))

    @async_test
    async def test_load_pool_reports_its_own_errors(self):
        result = await self.data_manager.load_pool(["2", "7"])

        self.assertEqual([q.source_part for q in result.questions], ["2", "2"])
        self.assertEqual(result.requested_parts, ["2", "7"])
        self.assertEqual(result.part_counts, {"2": 2})
        self.assertEqual(list(result.errors), ["7"])

    @async_test
    async def test_overlapping_pools_do_not_share_errors(self):
        fetcher = SlowFakeFetcher(self.fetcher.resources)
        data_manager = DataManager(SourceLoader(fetcher))

        slow, failing = await asyncio.gather(
            data_manager.load_pool(["1", "2"]),
            data_manager.load_pool(["2", "9"]),
        )

        self.assertEqual(slow.errors, {})
        self.assertEqual(list(failing.errors), ["9"])
        self.assertEqual(data_manager.get_loading_summary(slow)['error_count'], 0)
        self.assertEqual(data_manager.get_loading_summary(failing)['loaded_parts'], ["2"])
        self.assertEqual(fetcher.close_count, 1)


if __name__ == '__main__':
    unittest.main()
