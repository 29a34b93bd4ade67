import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import discord
from discord import app_commands
from discord.ext import commands

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import SessionPhase, SessionState
from .quiz_controller import ControllerClosedError, QuizController
from .views import COLOR_DANGER, COLOR_INFO, COLOR_OK, build_view, render_state_embed

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO, log_directory: str = "./logs/") -> logging.Logger:
    """Set up console and file logging for the bot."""
    # Create logs directory if it doesn't exist
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Configure root logger
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Console output
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),  # File output
        ]
    )

    # Set up error-specific logging
    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


@dataclass
class ChannelGame:
    """A channel's controller and the message its snapshots are rendered into."""
    controller: QuizController
    message: Optional[discord.Message] = None
    unsubscribe: Optional[Callable[[], None]] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    view: Optional[discord.ui.View] = None
    view_key: Optional[Tuple] = None


class WordGameBot(commands.Bot):
    """Discord bot running one word game per channel"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        # Minimal intents for slash commands
        intents = discord.Intents.none()
        intents.guilds = True

        self.config_manager = config_manager or ConfigManager()

        super().__init__(
            command_prefix=self.config_manager.get_command_prefix(),
            intents=intents,
            help_command=None
        )

        self.data_manager = DataManager(self.config_manager.get_words_file())
        self.games: Dict[int, ChannelGame] = {}
        self._play_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def setup_hook(self):
        """Called when the bot is starting up"""
        logger.info("Setting up bot components...")
        self.setup_commands()
        logger.info("Bot setup completed successfully")

    def setup_commands(self):
        """Register all slash commands"""
        question_choices = [
            app_commands.Choice(name=str(count), value=count)
            for count in ConfigManager.QUESTION_COUNT_CHOICES
        ]
        time_choices = [
            app_commands.Choice(name=f"{budget // 1000} seconds", value=budget // 1000)
            for budget in ConfigManager.TIME_BUDGET_CHOICES_MS
        ]

        @self.tree.command(name="play", description="Start a word game in this channel")
        @app_commands.describe(questions="Number of questions", seconds="Time for each question")
        @app_commands.choices(questions=question_choices, seconds=time_choices)
        async def play_command(
            interaction: discord.Interaction,
            questions: Optional[int] = None,
            seconds: Optional[int] = None
        ):
            await self.handle_play(interaction, questions, seconds)

        @self.tree.command(name="retry", description="Play again with the same settings")
        async def retry_command(interaction: discord.Interaction):
            await self.handle_retry(interaction)

        @self.tree.command(name="stop", description="Stop the word game in this channel")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show the current game's progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}, in {len(self.guilds)} guilds")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        for channel_id in list(self.games):
            await self.end_game(channel_id)
        await super().close()

    async def handle_play(
        self,
        interaction: discord.Interaction,
        questions: Optional[int] = None,
        seconds: Optional[int] = None
    ):
        """Handle /play command"""
        channel_id = interaction.channel_id
        defaults = self.config_manager.get_session_settings()
        question_count = questions or defaults.question_count
        time_budget_ms = seconds * 1000 if seconds else defaults.time_budget_ms

        # One /play at a time per channel, so a newer game never closes one mid-start
        async with self._play_locks[channel_id]:
            game = None
            try:
                await self.end_game(channel_id)

                controller = QuizController(
                    self.data_manager,
                    self.config_manager,
                    session_id=str(channel_id)
                )
                game = ChannelGame(controller=controller)
                self.games[channel_id] = game

                await interaction.response.send_message(embed=render_state_embed(controller.state))
                game.message = await interaction.original_response()

                game.unsubscribe = controller.subscribe(
                    lambda state: self.render_state(channel_id, state)
                )
                controller.start_session(question_count, time_budget_ms)

                logger.info(
                    f"Started word game in channel {channel_id}: {question_count} questions, {time_budget_ms}ms each"
                )

            except ControllerClosedError as e:
                # Stopped by /stop before the session could start
                logger.warning(f"Game in channel {channel_id} was closed while starting: {e}")
                if game is not None and self.games.get(channel_id) is game:
                    await self.end_game(channel_id)

            except discord.HTTPException as e:
                logger.error(f"Discord error starting game in channel {channel_id}: {e}")
                if game is not None and self.games.get(channel_id) is game:
                    await self.end_game(channel_id)
                await self.send_error_response(interaction, "Failed to start the game. Please try again.")

    async def render_state(self, channel_id: int, state: SessionState):
        """Edit the channel's game message to show a snapshot."""
        game = self.games.get(channel_id)
        if game is None or game.message is None:
            return

        async with game.lock:
            # A newer snapshot will be rendered by its own callback
            if state is not game.controller.state:
                return
            try:
                await game.message.edit(
                    embed=render_state_embed(state),
                    view=self.current_view(game, state)
                )
            except discord.HTTPException as e:
                logger.error(f"Failed to render game state in channel {channel_id}: {e}")

    def current_view(self, game: ChannelGame, state: SessionState) -> Optional[discord.ui.View]:
        """
        Return the buttons for a snapshot, reusing the game's view while it still applies.

        Tick snapshots keep the same view. A new question or a phase change
        stops the old view and builds a new one.
        """
        if state.phase == SessionPhase.ACTIVE:
            key = (state.phase, state.question_index)
        elif state.phase in (SessionPhase.FINISHED, SessionPhase.ERROR):
            key = (state.phase,)
        else:
            key = None

        if game.view is not None and key == game.view_key:
            return game.view

        if game.view is not None:
            game.view.stop()
        game.view = build_view(game.controller, state)
        game.view_key = key
        return game.view

    async def end_game(self, channel_id: int) -> bool:
        """
        Close and forget the game running in a channel.

        Returns:
            True if a game was running, False otherwise
        """
        game = self.games.pop(channel_id, None)
        if game is None:
            return False

        if game.unsubscribe:
            game.unsubscribe()
        if game.view is not None:
            game.view.stop()
            game.view = None
        await game.controller.close()
        return True

    async def handle_retry(self, interaction: discord.Interaction):
        """Handle /retry command"""
        game = self.games.get(interaction.channel_id)
        if game is None:
            await self.send_info_response(interaction, "No game in this channel. Use `/play` to start one.")
            return

        if game.controller.state.phase not in (SessionPhase.FINISHED, SessionPhase.ERROR):
            await self.send_info_response(interaction, "The current game is still running.")
            return

        game.controller.retry()
        await self.send_info_response(interaction, "Starting a new round with the same settings.", "🔁 Retry")

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        game = self.games.get(interaction.channel_id)
        state = game.controller.state if game else None

        if not await self.end_game(interaction.channel_id):
            await self.send_info_response(interaction, "No game in this channel. Use `/play` to start one.")
            return

        embed = discord.Embed(
            title="🛑 Game Stopped",
            description=f"Stopped at question {state.question_number}/{state.total_questions}",
            color=COLOR_DANGER
        )
        embed.set_footer(text="Use /play to begin a new game")
        await interaction.response.send_message(embed=embed)

        if game.message is not None:
            try:
                await game.message.edit(view=None)
            except discord.HTTPException as e:
                logger.error(f"Failed to remove game buttons: {e}")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        game = self.games.get(interaction.channel_id)
        if game is None:
            await self.send_info_response(interaction, "No game in this channel. Use `/play` to start one.")
            return

        state = game.controller.state
        embed = discord.Embed(title="📊 Game Status", color=COLOR_INFO)
        embed.add_field(name="Phase", value=state.phase.value, inline=True)
        embed.add_field(name="Question", value=f"{state.question_number}/{state.total_questions}", inline=True)
        embed.add_field(name="Time per question", value=f"{state.time_budget_ms / 1000:g} seconds", inline=True)

        summary = self.data_manager.get_loading_summary()
        if summary['word_count'] is not None:
            embed.add_field(name="Words", value=str(summary['word_count']), inline=True)
        if summary['has_errors']:
            embed.add_field(name="Last load error", value=summary['last_error'], inline=False)

        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        embed = discord.Embed(
            title="🎯 Word Game Commands",
            description="Judge whether each translation is correct before time runs out",
            color=COLOR_OK
        )
        embed.add_field(
            name="🎮 Commands",
            value=(
                "`/play [questions] [seconds]` - Start a game in this channel\n"
                "`/retry` - Play again with the same settings\n"
                "`/stop` - Stop the game in this channel\n"
                "`/status` - Show the current game's progress\n"
                "`/help` - Show this message"
            ),
            inline=False
        )
        embed.add_field(
            name="⚙️ Defaults",
            value=f"```\n{self.config_manager.get_settings_summary()}\n```",
            inline=False
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        await self._send_ephemeral(interaction, discord.Embed(title=title, description=message, color=COLOR_DANGER))

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        await self._send_ephemeral(interaction, discord.Embed(title=title, description=message, color=COLOR_INFO))

    async def _send_ephemeral(self, interaction: discord.Interaction, embed: discord.Embed):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send response to user")


async def run_bot(config_manager: ConfigManager):
    """Run the bot with proper error handling"""
    token = config_manager.get_bot_token()
    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = WordGameBot(config_manager)

    try:
        logger.info("Starting word game bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
