"""
Discord rendering of game session snapshots.
"""
import logging
from typing import Optional

import discord

from .models import SessionPhase, SessionState
from .quiz_controller import ControllerClosedError, QuizController

logger = logging.getLogger(__name__)

COLOR_OK = 0x00ff00
COLOR_WARNING = 0xff6600
COLOR_DANGER = 0xff0000
COLOR_INFO = 0x6699ff

# Keep finished answer lists under the embed field size limit
MAX_ANSWER_LINES = 15


def progress_bar(progress: float, width: int = 10) -> str:
    """Render progress in [0, 1] as a text bar."""
    filled = int(round(max(0.0, min(progress, 1.0)) * width))
    return "▰" * filled + "▱" * (width - filled)


def render_state_embed(state: SessionState) -> discord.Embed:
    """
    Build the embed shown for a session snapshot.

    Args:
        state: Snapshot to render

    Returns:
        Embed describing the snapshot
    """
    if state.phase == SessionPhase.ACTIVE:
        return _render_question(state)

    if state.phase == SessionPhase.FINISHED:
        return _render_finished(state)

    if state.phase == SessionPhase.ERROR:
        embed = discord.Embed(
            title="❌ Couldn't start the game",
            description=state.error_message or "Unknown error",
            color=COLOR_DANGER
        )
        if state.error_kind is not None:
            embed.set_footer(text=f"Error: {state.error_kind.value} · Press Try again to retry")
        return embed

    return discord.Embed(
        title="⏳ Loading questions...",
        description=f"Preparing {state.total_questions} questions",
        color=COLOR_INFO
    )


def _render_question(state: SessionState) -> discord.Embed:
    remaining_ms = max(state.time_budget_ms - state.elapsed_ms, 0)
    remaining_seconds = remaining_ms / 1000

    # Change color based on remaining share of the budget
    if remaining_ms > state.time_budget_ms / 2:
        color, timer_emoji = COLOR_OK, "⏱️"
    elif remaining_ms > state.time_budget_ms / 4:
        color, timer_emoji = COLOR_WARNING, "⚠️"
    else:
        color, timer_emoji = COLOR_DANGER, "🚨"

    question = state.current_question
    embed = discord.Embed(
        title=f"🎯 Question {state.question_number}/{state.total_questions}",
        description=(
            f"# {question.prompt.source}\n"
            f"Is **{question.candidate.target}** the correct translation?"
        ),
        color=color
    )
    embed.add_field(
        name=f"{timer_emoji} Time Remaining",
        value=f"{remaining_seconds:.1f} seconds",
        inline=True
    )
    embed.add_field(
        name="📊 Progress",
        value=progress_bar(state.progress),
        inline=True
    )
    return embed


def _render_finished(state: SessionState) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Finished!",
        description=f"You got **{state.total_correct}/{state.total_questions}** right",
        color=COLOR_OK
    )
    embed.add_field(
        name="⏱️ Average Time",
        value=f"{state.average_answer_time_ms} ms",
        inline=True
    )

    lines = []
    for number, answer in enumerate(state.answers[:MAX_ANSWER_LINES], start=1):
        mark = "✅" if answer.was_judged_correct else "❌"
        question = answer.question
        lines.append(
            f"{mark} {number}. {question.prompt.source} → {question.candidate.target} ({answer.elapsed_ms} ms)"
        )
    if len(state.answers) > MAX_ANSWER_LINES:
        lines.append(f"... and {len(state.answers) - MAX_ANSWER_LINES} more")

    if lines:
        embed.add_field(name="📝 Answers", value="\n".join(lines), inline=False)

    embed.set_footer(text="Press Try again for a new round or use /play to change settings")
    return embed


class AnswerView(discord.ui.View):
    """Correct/Incorrect buttons bound to one question."""

    def __init__(self, controller: QuizController, question_index: int, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.controller = controller
        self.question_index = question_index

    async def _judge(self, interaction: discord.Interaction, user_judged_correct: bool) -> None:
        try:
            self.controller.submit_answer(user_judged_correct, self.question_index)
        except ControllerClosedError:
            logger.info(f"Answer for closed session {self.controller.session_id} ignored")
        await interaction.response.defer()

    @discord.ui.button(label="Correct", style=discord.ButtonStyle.success, emoji="✅")
    async def correct_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._judge(interaction, True)

    @discord.ui.button(label="Incorrect", style=discord.ButtonStyle.danger, emoji="❌")
    async def incorrect_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._judge(interaction, False)


class RetryView(discord.ui.View):
    """Single Try again button shown on finished and failed sessions."""

    def __init__(self, controller: QuizController, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.controller = controller

    @discord.ui.button(label="Try again", style=discord.ButtonStyle.primary, emoji="🔁")
    async def retry_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        try:
            self.controller.retry()
        except ControllerClosedError:
            logger.info(f"Retry for closed session {self.controller.session_id} ignored")
        await interaction.response.defer()


def build_view(controller: QuizController, state: SessionState) -> Optional[discord.ui.View]:
    """Pick the buttons matching a snapshot. Must run inside the event loop."""
    if state.phase == SessionPhase.ACTIVE:
        return AnswerView(controller, state.question_index)

    if state.phase in (SessionPhase.FINISHED, SessionPhase.ERROR):
        return RetryView(controller)

    return None
