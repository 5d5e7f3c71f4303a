import discord
from discord.ext import commands
import logging
import os
import re
from typing import List, Optional

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import Question, Score
from .quiz_controller import QuizController, QuizControllerError, SessionState

logger = logging.getLogger(__name__)

MAX_BUTTON_LABEL = 80
_PART_SEPARATORS = re.compile(r"[\s,]+")


def parse_part_list(text: str) -> List[str]:
    """Split '1, 2 3' style input into part ids, keeping order and dropping repeats."""
    return list(dict.fromkeys(part for part in _PART_SEPARATORS.split(text or "") if part))


def build_selection_embed(parts: List[str], available: List[str], limit: Optional[int],
                          preset: Optional[str], estimate: int) -> discord.Embed:
    """Describe the current part selection and limit."""
    embed = discord.Embed(
        title="📚 Part Selection",
        description=", ".join(f"**{p}**" if p in parts else p for p in available),
        color=0x6699ff
    )
    embed.add_field(name="Selected", value=", ".join(parts) if parts else "none", inline=True)
    if len(parts) > 1:
        embed.add_field(
            name="Limit",
            value=f"{preset}: {limit} questions" if preset else "off",
            inline=True
        )
    embed.add_field(name="Estimated questions", value=str(estimate), inline=True)
    return embed


def build_question_embed(question: Question, number: int, total: int) -> discord.Embed:
    embed = discord.Embed(
        title=f"🎯 Question {number} of {total}",
        description=question.text,
        color=0x00ff00
    )
    embed.set_footer(text=f"Part {question.source_part}")
    return embed


def build_results_embed(result: Score) -> discord.Embed:
    embed = discord.Embed(title="🏁 Results", color=0xffaa00)
    embed.add_field(name="✅ Correct", value=str(result.correct), inline=True)
    embed.add_field(name="❌ Incorrect", value=str(result.incorrect), inline=True)
    embed.add_field(name="📊 Total", value=str(result.total), inline=True)
    if result.total == 0:
        embed.description = "No questions were answered."
    embed.set_footer(text="Use /restart to pick new parts")
    return embed


class AnswerButton(discord.ui.Button):
    """One answer option of the current question."""

    def __init__(self, option: str):
        super().__init__(label=option[:MAX_BUTTON_LABEL], style=discord.ButtonStyle.secondary)
        self.option = option

    async def callback(self, interaction: discord.Interaction):
        await self.view.handle_answer(interaction, self)


class NextButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Next ➡️", style=discord.ButtonStyle.primary)

    async def callback(self, interaction: discord.Interaction):
        await self.view.handle_next(interaction)


class QuestionView(discord.ui.View):
    """Buttons for answering one question and moving on."""

    def __init__(self, controller: QuizController, channel_id: int):
        super().__init__(timeout=None)
        self.controller = controller
        self.channel_id = channel_id
        self.session = controller.get_session(channel_id)
        self.question_index = self.session.index
        for option in controller.get_presented_options(channel_id):
            self.add_item(AnswerButton(option))

    def _is_stale(self) -> bool:
        # A restarted quiz is a new session object, even at the same index
        session = self.controller.get_session(self.channel_id)
        return session is not self.session or session.index != self.question_index

    async def handle_answer(self, interaction: discord.Interaction, button: AnswerButton):
        if self._is_stale():
            await interaction.response.send_message("This question is no longer active.", ephemeral=True)
            return

        try:
            self.controller.submit_answer(self.channel_id, button.option)
        except QuizControllerError as e:
            await interaction.response.send_message(f"❌ {e}", ephemeral=True)
            return

        correct_option = self.controller.get_current_question(self.channel_id).correct_option
        for item in self.children:
            if isinstance(item, AnswerButton):
                item.disabled = True
                if item.option == correct_option:
                    item.style = discord.ButtonStyle.success
                elif item is button:
                    item.style = discord.ButtonStyle.danger
        self.add_item(NextButton())
        await interaction.response.edit_message(view=self)

    async def handle_next(self, interaction: discord.Interaction):
        if self._is_stale():
            await interaction.response.send_message("This question is no longer active.", ephemeral=True)
            return

        try:
            has_more = self.controller.advance_question(self.channel_id)
        except QuizControllerError as e:
            await interaction.response.send_message(f"❌ {e}", ephemeral=True)
            return

        self.stop()
        if has_more:
            embed, view = build_question_message(self.controller, self.channel_id)
            await interaction.response.edit_message(embed=embed, view=view)
        else:
            result = self.controller.get_score(self.channel_id)
            await interaction.response.edit_message(embed=build_results_embed(result), view=None)


def build_question_message(controller: QuizController, channel_id: int):
    session = controller.get_session(channel_id)
    question = session.current_question()
    embed = build_question_embed(question, session.index + 1, len(session.questions))
    return embed, QuestionView(controller, channel_id)


class QuizBot(commands.Bot):
    """Discord bot for running part quizzes"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.data_manager: Optional[DataManager] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                self.config_manager.apply_config(self.app_config)

            self.data_manager = DataManager(self.config_manager.create_loader())
            self.quiz_controller = QuizController(self.data_manager, self.config_manager)

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="parts", description="Show the part selection and limit")
        async def parts_command(interaction: discord.Interaction):
            await self.handle_parts(interaction)

        @self.tree.command(name="select", description="Toggle one or more parts, e.g. '1 3 5'")
        async def select_command(interaction: discord.Interaction, parts: str):
            await self.handle_select(interaction, parts)

        @self.tree.command(name="select_all", description="Select every part, or clear if all are selected")
        async def select_all_command(interaction: discord.Interaction):
            await self.handle_select_all(interaction)

        @self.tree.command(name="limit", description="Toggle a question limit preset (multi-part quizzes only)")
        async def limit_command(interaction: discord.Interaction, preset: str):
            await self.handle_limit(interaction, preset)

        @self.tree.command(name="limit_up", description="Raise the active question limit by one step")
        async def limit_up_command(interaction: discord.Interaction):
            await self.handle_limit_adjust(interaction, 1)

        @self.tree.command(name="limit_down", description="Lower the active question limit by one step")
        async def limit_down_command(interaction: discord.Interaction):
            await self.handle_limit_adjust(interaction, -1)

        @self.tree.command(name="start", description="Start a quiz with the selected parts")
        async def start_command(interaction: discord.Interaction):
            await self.handle_start(interaction)

        @self.tree.command(name="restart", description="End the quiz and return to part selection")
        async def restart_command(interaction: discord.Interaction):
            await self.handle_restart(interaction)

        @self.tree.command(name="status", description="Show current quiz progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    def _selection_embed(self, channel_id: int) -> discord.Embed:
        selection = self.quiz_controller.get_selection(channel_id)
        return build_selection_embed(
            selection.parts,
            selection.available_parts,
            selection.limit_selector.limit,
            selection.limit_selector.active_preset,
            self.quiz_controller.get_estimated_count(channel_id)
        )

    async def handle_help(self, interaction: discord.Interaction):
        embed = discord.Embed(
            title="📖 Quiz Commands",
            description="Pick parts, optionally cap the question count, then answer one question at a time.",
            color=0x6699ff
        )
        embed.add_field(
            name="Selection",
            value=(
                "`/parts` show selection\n"
                "`/select <parts>` toggle parts\n"
                "`/select_all` select or clear all parts"
            ),
            inline=False
        )
        presets = ", ".join(self.config_manager.get_limit_presets())
        embed.add_field(
            name="Limit",
            value=(
                f"`/limit <preset>` toggle a preset ({presets})\n"
                f"`/limit_up`, `/limit_down` adjust by {self.config_manager.get_limit_step()}"
            ),
            inline=False
        )
        embed.add_field(
            name="Quiz",
            value="`/start` begin\n`/status` progress\n`/restart` back to selection",
            inline=False
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_parts(self, interaction: discord.Interaction):
        await interaction.response.send_message(embed=self._selection_embed(interaction.channel_id))

    async def handle_select(self, interaction: discord.Interaction, parts: str):
        selection = self.quiz_controller.get_selection(interaction.channel_id)
        requested = parse_part_list(parts)
        unknown = [part for part in requested if part not in selection.available_parts]
        if unknown or not requested:
            await self.send_error_response(
                interaction,
                f"Unknown parts: {', '.join(unknown) or 'none given'}. "
                f"Available: {', '.join(selection.available_parts)}"
            )
            return

        for part in requested:
            selection.toggle(part)
        await interaction.response.send_message(embed=self._selection_embed(interaction.channel_id))

    async def handle_select_all(self, interaction: discord.Interaction):
        self.quiz_controller.get_selection(interaction.channel_id).select_all()
        await interaction.response.send_message(embed=self._selection_embed(interaction.channel_id))

    async def handle_limit(self, interaction: discord.Interaction, preset: str):
        selection = self.quiz_controller.get_selection(interaction.channel_id)
        if not selection.is_multi_part:
            await self.send_warning_response(interaction, "Limits only apply when more than one part is selected.")
            return

        try:
            selection.limit_selector.toggle(preset)
        except KeyError:
            await self.send_error_response(
                interaction,
                f"Unknown preset '{preset}'. Available: {', '.join(selection.limit_selector.presets)}"
            )
            return
        await interaction.response.send_message(embed=self._selection_embed(interaction.channel_id))

    async def handle_limit_adjust(self, interaction: discord.Interaction, direction: int):
        selection = self.quiz_controller.get_selection(interaction.channel_id)
        if selection.limit_selector.adjust(direction) is None:
            await self.send_warning_response(interaction, "Choose a limit preset with `/limit` first.")
            return
        await interaction.response.send_message(embed=self._selection_embed(interaction.channel_id))

    async def handle_start(self, interaction: discord.Interaction):
        """Handle /start: load the selected parts and show the first question"""
        channel_id = interaction.channel_id
        if self.quiz_controller.has_active_session(channel_id):
            await self.send_warning_response(interaction, "A quiz is already running here. Use `/restart` first.")
            return
        if self.quiz_controller.is_starting(channel_id):
            await self.send_warning_response(interaction, "A quiz is already being started here.")
            return

        await interaction.response.defer()
        try:
            result = await self.quiz_controller.start_quiz(channel_id)
        except Exception as e:
            logger.error(f"Failed to start quiz in channel {channel_id}: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to start the quiz. Please try again.")
            return

        if not result['success']:
            await self.send_error_response(interaction, result['user_message'])
            return

        if result['load_errors']:
            failed = ", ".join(result['load_errors'])
            await self.send_warning_response(interaction, f"Some parts could not be loaded: {failed}")

        if self.quiz_controller.is_quiz_complete(channel_id):
            result_embed = build_results_embed(self.quiz_controller.get_score(channel_id))
            await interaction.followup.send(content=result['user_message'], embed=result_embed)
            return

        embed, view = build_question_message(self.quiz_controller, channel_id)
        await interaction.followup.send(content=result['user_message'], embed=embed, view=view)

    async def handle_restart(self, interaction: discord.Interaction):
        self.quiz_controller.restart(interaction.channel_id)
        await interaction.response.send_message(
            content="🔄 Back to part selection",
            embed=self._selection_embed(interaction.channel_id)
        )

    async def handle_status(self, interaction: discord.Interaction):
        channel_id = interaction.channel_id
        progress = self.quiz_controller.get_session_progress(channel_id)
        if progress is None:
            await interaction.response.send_message(embed=self._selection_embed(channel_id), ephemeral=True)
            return

        if progress['state'] == SessionState.COMPLETED.value:
            embed = build_results_embed(self.quiz_controller.get_score(channel_id))
        else:
            embed = discord.Embed(title="📊 Quiz Status", color=0x6699ff)
            embed.add_field(
                name="Progress",
                value=f"Question {progress['current_question']} of {progress['total_questions']}",
                inline=True
            )
            embed.add_field(name="Parts", value=", ".join(progress['parts']), inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def _send_embed(self, interaction: discord.Interaction, embed: discord.Embed):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send response to user")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        embed = discord.Embed(title=title, description=message, color=0xff0000)
        embed.set_footer(text="If this error persists, try using /help for available commands")
        await self._send_embed(interaction, embed)

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        """Send formatted warning response to user"""
        await self._send_embed(interaction, discord.Embed(title=title, description=message, color=0xffaa00))


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Discord Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
