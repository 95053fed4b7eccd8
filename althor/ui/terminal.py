"""
Rich-based terminal user interface.

Renders the conversation transcript, voice recording status, generated
content and error notifications for the command-line front-end.
"""

import asyncio
import time
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from ..audio.pipeline import ExtractedVoiceCommand
from ..config import PROVIDER_MODELS, ModelConfig
from ..conversation.models import ConversationTurn, Feedback, Role, flatten_content
from ..errors import (
    DeviceUnavailableError,
    EmptyTranscriptError,
    InvalidRegenerationTargetError,
    MissingCredentialError,
    NetworkFailureError,
)

CHAT_HELP = [
    ("/voice", "Record a spoken message (Enter to stop)"),
    ("/good N", "Mark response N as helpful"),
    ("/bad N", "Mark response N as not helpful"),
    ("/regen N", "Regenerate response N"),
    ("/copy N", "Copy message N to the clipboard"),
    ("/help", "Show this help"),
    ("/quit", "Leave the session"),
]

FEEDBACK_MARKS = {
    Feedback.NONE: "",
    Feedback.POSITIVE: " 👍",
    Feedback.NEGATIVE: " 👎",
}


class TerminalUI:
    """
    Rich-based terminal interface for the content assistant.

    Provides an async interactive command-line experience with progress
    indicators, transcript rendering and user-visible notifications.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._recording_start_time: Optional[float] = None
        self._progress_context: Optional[Progress] = None
        self._current_task = None

    async def _ask(self, prompt: str) -> Optional[str]:
        """Read a line without blocking the event loop; None on EOF/Ctrl+C."""
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, lambda: input(prompt))
        except (KeyboardInterrupt, EOFError):
            return None

    def show_welcome(self, config: ModelConfig) -> None:
        welcome_text = Text()
        welcome_text.append("⚡ Althor AI Agent", style="bold magenta")
        welcome_text.append("\n\nAdvanced content creation & assistance\n")
        welcome_text.append(f"Model: {config.provider.value} / {config.model}", style="dim")

        self.console.print(Panel(
            welcome_text,
            title="Welcome",
            title_align="center",
            border_style="cyan",
            padding=(1, 2)
        ))
        self.console.print("Type a message, or [bold]/help[/bold] for commands.\n")

    def show_help(self) -> None:
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Command", style="cyan")
        table.add_column("Description", style="white")
        for command, description in CHAT_HELP:
            table.add_row(command, description)
        self.console.print(table)

    async def prompt_message(self) -> Optional[str]:
        return await self._ask("You: ")

    def show_turn(self, number: int, turn: ConversationTurn) -> None:
        """
        Render one transcript turn.

        Args:
            number: 1-based position shown to the user for /good, /regen etc.
            turn: The turn to render
        """
        if turn.role == Role.USER:
            title, border = "You", "blue"
        elif turn.is_generated_content:
            title, border = "Althor AI · Content", "bright_blue"
        else:
            title, border = "Althor AI", "magenta"

        stamp = turn.timestamp.strftime("%H:%M") if turn.timestamp else ""
        subtitle = f"#{number} {stamp}{FEEDBACK_MARKS[turn.feedback]}"
        self.console.print(Panel(
            Text(flatten_content(turn.content)),
            title=title,
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style=border,
            padding=(0, 1)
        ))

    def show_transcript(self, turns: List[ConversationTurn]) -> None:
        for number, turn in enumerate(turns, start=1):
            self.show_turn(number, turn)

    async def show_recording_status(self) -> None:
        """Show the recording indicator."""
        self._recording_start_time = time.time()
        self.console.print(Panel(
            Text("🔴 RECORDING", style="bold red") + Text("\n\nSpeak your request clearly... Press Enter to stop", style="white"),
            title="Recording Audio",
            title_align="center",
            border_style="red",
            padding=(1, 2)
        ))

    async def prompt_stop_recording(self) -> bool:
        """
        Wait for the user to stop recording.

        Returns:
            True when the user pressed Enter, False if they aborted.
        """
        line = await self._ask("")
        if line is None:
            return False

        if self._recording_start_time:
            duration = time.time() - self._recording_start_time
            self.console.print(f"⏹️  Recording stopped ({duration:.1f}s)")
        else:
            self.console.print("⏹️  Recording stopped")
        return True

    def show_progress(self, message: str) -> None:
        """Start or update the spinner with a message."""
        if not self._progress_context:
            self._progress_context = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=self.console,
                transient=True
            )
            self._progress_context.start()
            self._current_task = self._progress_context.add_task(message, total=None)
        elif self._current_task is not None:
            self._progress_context.update(self._current_task, description=message)

    def stop_progress(self) -> None:
        """Stop the current progress indicator."""
        if self._progress_context:
            self._progress_context.stop()
            self._progress_context = None
            self._current_task = None

    def show_voice_command(self, command: ExtractedVoiceCommand) -> None:
        table = Table(title="Voice Command", title_style="bold cyan", box=box.ROUNDED, show_header=False)
        table.add_column("Field", style="magenta")
        table.add_column("Value", style="white")
        table.add_row("Topic", command.topic or "[dim]—[/dim]")
        table.add_row("Content type", command.content_type)
        table.add_row("Tone", command.tone)
        table.add_row("Keywords", command.keywords or "[dim]—[/dim]")
        table.add_row("Additional info", command.additional_info or "[dim]—[/dim]")
        self.console.print(table)

    def show_content(self, text: str) -> None:
        self.stop_progress()
        self.console.print(Panel(
            Text(text),
            title="Generated Content",
            title_align="left",
            border_style="bright_blue",
            padding=(1, 2)
        ))

    def show_config(self, config: ModelConfig) -> None:
        table = Table(title="Model Settings", title_style="bold cyan", box=box.ROUNDED)
        table.add_column("Setting", style="magenta")
        table.add_column("Value", style="white")
        table.add_row("Provider", config.provider.value)
        table.add_row("Model", config.model)
        table.add_row("Custom key", "yes" if config.use_custom_key else "no")
        table.add_row("API key", "set" if config.api_key else "[dim]not set[/dim]")
        table.add_row("Available models", ", ".join(PROVIDER_MODELS[config.provider]))
        self.console.print(table)

    async def show_error(self, error: Exception) -> None:
        """
        Display error message with Rich formatting.

        Args:
            error: Exception to display
        """
        self.stop_progress()

        # Guidance for the error kinds a user can act on
        if isinstance(error, MissingCredentialError):
            guidance = "\n\n💡 Set an API key with: althor config set-key"
        elif isinstance(error, DeviceUnavailableError):
            guidance = "\n\n💡 Check that a microphone is connected and permitted."
        elif isinstance(error, EmptyTranscriptError):
            guidance = "\n\n💡 Try again and speak a little closer to the microphone."
        elif isinstance(error, NetworkFailureError):
            guidance = "\n\n💡 Check your internet connection and try again."
        elif isinstance(error, InvalidRegenerationTargetError):
            guidance = "\n\n💡 Only responses that follow one of your messages can be regenerated."
        else:
            guidance = ""

        self.console.print(Panel(
            Text(f"❌ {error}{guidance}", style="red"),
            title="Error",
            title_align="center",
            border_style="red",
            padding=(1, 2)
        ))

    async def show_success(self, message: str) -> None:
        """
        Display success message with Rich formatting.

        Args:
            message: Success message to display
        """
        self.stop_progress()
        self.console.print(f"[green]✅ {message}[/green]")
