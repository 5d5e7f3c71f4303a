"""
Tests for the Discord front end: embeds, argument parsing and the question view.
"""
import random
import unittest
from unittest.mock import AsyncMock, Mock

import discord

from src.bot import (
    AnswerButton,
    NextButton,
    QuestionView,
    build_question_embed,
    build_results_embed,
    build_selection_embed,
    parse_part_list,
)
from src.config_manager import ConfigManager
from src.data_manager import DataManager
from src.models import Score
from src.quiz_controller import QuizController
from src.quiz_engine import QuizEngine
from tests.test_fixtures import TestFixtures, async_test


def create_mock_interaction():
    interaction = Mock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.send_message = AsyncMock()
    return interaction


class TestBotHelpers(unittest.TestCase):
    """Test cases for pure formatting helpers."""

    def test_parse_part_list(self):
        self.assertEqual(parse_part_list("1, 2 3"), ["1", "2", "3"])
        self.assertEqual(parse_part_list(" 4,,4 5 "), ["4", "5"])
        self.assertEqual(parse_part_list(""), [])

    def test_question_embed(self):
        question = TestFixtures.create_sample_questions("7")[1]
        embed = build_question_embed(question, 2, 10)

        self.assertEqual(embed.title, "🎯 Question 2 of 10")
        self.assertEqual(embed.description, question.text)
        self.assertEqual(embed.footer.text, "Part 7")

    def test_results_embed(self):
        embed = build_results_embed(Score(3, 1, 4))
        values = [field.value for field in embed.fields]
        self.assertEqual(values, ["3", "1", "4"])

    def test_results_embed_without_answers(self):
        embed = build_results_embed(Score(0, 0, 0))
        self.assertEqual(embed.description, "No questions were answered.")

    def test_selection_embed_shows_limit_only_for_multi_part(self):
        single = build_selection_embed(["1"], ["1", "2"], None, None, 40)
        self.assertNotIn("Limit", [field.name for field in single.fields])

        multi = build_selection_embed(["1", "2"], ["1", "2"], 50, "quick", 50)
        fields = {field.name: field.value for field in multi.fields}
        self.assertEqual(fields["Limit"], "quick: 50 questions")
        self.assertEqual(fields["Estimated questions"], "50")


class TestQuestionView(unittest.TestCase):
    """Test cases for answering through the button view."""

    def setUp(self):
        data_manager = Mock(spec=DataManager)
        data_manager.load_pool = AsyncMock(
            return_value=TestFixtures.create_pool_result(TestFixtures.create_sample_questions("1")[:2])
        )
        self.controller = QuizController(data_manager, ConfigManager(), QuizEngine(random.Random(2)))
        self.channel_id = 99

    @async_test
    async def test_answer_then_next_then_results(self):
        await self.controller.start_quiz(self.channel_id, ["1"])
        view = QuestionView(self.controller, self.channel_id)
        question = self.controller.get_current_question(self.channel_id)

        answer_buttons = [item for item in view.children if isinstance(item, AnswerButton)]
        self.assertEqual(sorted(b.option for b in answer_buttons), sorted(question.options))

        wrong = next(b for b in answer_buttons if b.option != question.correct_option)
        interaction = create_mock_interaction()
        await view.handle_answer(interaction, wrong)

        interaction.response.edit_message.assert_awaited_once()
        self.assertTrue(all(b.disabled for b in answer_buttons))
        self.assertEqual(wrong.style, discord.ButtonStyle.danger)
        right = next(b for b in answer_buttons if b.option == question.correct_option)
        self.assertEqual(right.style, discord.ButtonStyle.success)
        self.assertTrue(any(isinstance(item, NextButton) for item in view.children))

        interaction = create_mock_interaction()
        await view.handle_next(interaction)
        kwargs = interaction.response.edit_message.await_args.kwargs
        self.assertIsInstance(kwargs['view'], QuestionView)
        self.assertEqual(kwargs['embed'].title, "🎯 Question 2 of 2")

        next_view = kwargs['view']
        second = self.controller.get_current_question(self.channel_id)
        await next_view.handle_answer(create_mock_interaction(), next(
            item for item in next_view.children
            if isinstance(item, AnswerButton) and item.option == second.correct_option
        ))
        interaction = create_mock_interaction()
        await next_view.handle_next(interaction)

        kwargs = interaction.response.edit_message.await_args.kwargs
        self.assertIsNone(kwargs['view'])
        self.assertEqual(kwargs['embed'].title, "🏁 Results")
        self.assertEqual(self.controller.get_score(self.channel_id), Score(1, 1, 2))

    @async_test
    async def test_stale_view_is_rejected(self):
        await self.controller.start_quiz(self.channel_id, ["1"])
        view = QuestionView(self.controller, self.channel_id)
        button = next(item for item in view.children if isinstance(item, AnswerButton))

        self.controller.restart(self.channel_id)
        interaction = create_mock_interaction()
        await view.handle_answer(interaction, button)

        interaction.response.send_message.assert_awaited_once()
        interaction.response.edit_message.assert_not_called()

    @async_test
    async def test_view_from_previous_quiz_is_rejected_after_new_start(self):
        await self.controller.start_quiz(self.channel_id, ["1"])
        old_view = QuestionView(self.controller, self.channel_id)
        button = next(item for item in old_view.children if isinstance(item, AnswerButton))

        self.controller.restart(self.channel_id)
        await self.controller.start_quiz(self.channel_id, ["1"])
        new_session = self.controller.get_session(self.channel_id)

        interaction = create_mock_interaction()
        await old_view.handle_answer(interaction, button)

        interaction.response.send_message.assert_awaited_once()
        interaction.response.edit_message.assert_not_called()
        self.assertEqual(new_session.responses, [])

        interaction = create_mock_interaction()
        await old_view.handle_next(interaction)
        interaction.response.send_message.assert_awaited_once()
        self.assertEqual(new_session.index, 0)


if __name__ == '__main__':
    unittest.main()
