"""
Main application entry point for Althor.

This module provides the command-line interface and wires the provider
registry, conversation agent, content generator and voice pipeline to the
terminal UI.
"""

import asyncio
import logging
import sys
from typing import Optional

import click
import pyperclip
from rich.logging import RichHandler

from . import __version__
from .audio.pipeline import VoiceCommandPipeline
from .audio.recorder import AudioRecorder
from .audio.transcriber import ElevenLabsTranscriber
from .config import Environment, ModelConfigStore, resolve_config_dir
from .conversation.agent import ContentAgent
from .conversation.models import ConversationTurn, Feedback
from .errors import AlthorError, ConfigurationError
from .generator import ContentGenerator
from .providers.prompts import CONTENT_TYPES, DEFAULT_CONTENT_TYPE, DEFAULT_TONE, TONES, ContentRequest, detect_content_request
from .providers.registry import build_default_registry
from .ui.terminal import TerminalUI

logger = logging.getLogger(__name__)


class AlthorApp:
    """
    Main application class that coordinates all components.

    Reads the environment once (a missing default provider key is fatal),
    loads the persisted model settings, and builds the provider lookup
    table before any session starts.
    """

    def __init__(self, environment: Optional[Environment] = None, ui: Optional[TerminalUI] = None):
        self.environment = environment or Environment.from_env()
        self.config_store = ModelConfigStore.load(self.environment.config_dir)
        self.registry = build_default_registry(self.environment)
        self.ui = ui or TerminalUI()

        self.agent = ContentAgent(self.registry, self._current_config)
        self.generator = ContentGenerator(self.registry, self._current_config)
        self.transcriber = ElevenLabsTranscriber(
            self.environment.elevenlabs_api_key,
            model_id=self.environment.stt_model,
            timeout=self.environment.request_timeout,
        )
        self.pipeline = VoiceCommandPipeline(
            AudioRecorder(),
            self.transcriber,
            self.registry,
            self._current_config,
        )

    def _current_config(self):
        return self.config_store.config

    async def run_chat_session(self) -> None:
        """Run an interactive chat session until the user quits."""
        self.ui.show_welcome(self.config_store.config)
        self.ui.show_transcript(self.agent.store.turns)

        while True:
            line = await self.ui.prompt_message()
            if line is None:
                break
            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                if not await self._handle_command(line):
                    break
                continue
            await self._send(line)

    async def _send(self, text: str) -> None:
        try:
            self.ui.show_progress("Writing..." if detect_content_request(text) else "Thinking...")
            turn = await self.agent.submit(text)
        except AlthorError as e:
            await self.ui.show_error(e)
            return
        finally:
            self.ui.stop_progress()
        if turn is not None:
            self._show_reply(turn)

    def _show_reply(self, turn: ConversationTurn) -> None:
        self.ui.show_turn(self.agent.store.index_of(turn.id) + 1, turn)
        if turn.is_generated_content:
            self.ui.console.print("[dim]You can /copy it or rate it with /good or /bad.[/dim]")

    async def _handle_command(self, line: str) -> bool:
        """
        Execute a slash command.

        Returns:
            False when the session should end.
        """
        command, _, argument = line.partition(" ")
        command = command.lower()

        if command in ("/quit", "/exit"):
            return False
        if command == "/help":
            self.ui.show_help()
        elif command == "/voice":
            await self._chat_voice()
        elif command in ("/good", "/bad", "/regen", "/copy"):
            turn = self._turn_by_number(argument)
            if turn is None:
                await self.ui.show_error(AlthorError(f"No message numbered '{argument}'"))
            elif command == "/good":
                await self._feedback(turn, Feedback.POSITIVE)
            elif command == "/bad":
                await self._feedback(turn, Feedback.NEGATIVE)
            elif command == "/regen":
                await self._regenerate(turn)
            else:
                await self._copy(self.agent.copy_text(turn.id))
        else:
            await self.ui.show_error(AlthorError(f"Unknown command {command}. Type /help for commands."))
        return True

    def _turn_by_number(self, argument: str) -> Optional[ConversationTurn]:
        turns = self.agent.store.turns
        try:
            number = int(argument.strip())
        except ValueError:
            return None
        if 1 <= number <= len(turns):
            return turns[number - 1]
        return None

    async def _feedback(self, turn: ConversationTurn, value: Feedback) -> None:
        if not self.agent.give_feedback(turn.id, value):
            self.ui.console.print("[yellow]Feedback was already given for this message.[/yellow]")
        elif value == Feedback.NEGATIVE:
            number = self.agent.store.index_of(turn.id) + 1
            self.ui.console.print(f"[red]Sorry about that. Use /regen {number} to try again.[/red]")
        else:
            await self.ui.show_success("Thanks for your feedback!")

    async def _regenerate(self, turn: ConversationTurn) -> None:
        try:
            self.ui.show_progress("Regenerating...")
            new_turn = await self.agent.regenerate(turn.id)
        except AlthorError as e:
            await self.ui.show_error(e)
            return
        finally:
            self.ui.stop_progress()
        self._show_reply(new_turn)
        await self.ui.show_success("Content regenerated successfully.")

    async def _copy(self, text: str) -> None:
        """
        Copy text to system clipboard.

        Args:
            text: Text to copy
        """
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            self.ui.console.print(f"[yellow]⚠️  Could not copy to clipboard: {e}[/yellow]")
            self.ui.console.print(f"[green]{text}[/green]")
            return
        await self.ui.show_success("Content copied to clipboard!")

    async def _capture(self) -> bool:
        """
        Record until the user presses Enter.

        Returns:
            True if a recording is ready to be processed.
        """
        await self.pipeline.reset()
        try:
            await self.pipeline.start()
        except AlthorError as e:
            await self.ui.show_error(e)
            return False

        await self.ui.show_recording_status()
        if not await self.ui.prompt_stop_recording():
            await self.pipeline.cancel()
            return False
        return True

    async def _chat_voice(self) -> None:
        if not await self._capture():
            return
        try:
            self.ui.show_progress("Processing voice command...")
            turn = await self.agent.submit_voice(self.pipeline)
        except AlthorError as e:
            await self.ui.show_error(e)
            return
        finally:
            self.ui.stop_progress()
        if turn is not None:
            # Echo what was heard before the reply
            index = self.agent.store.index_of(turn.id)
            self.ui.show_turn(index, self.agent.store.turns[index - 1])
            self._show_reply(turn)

    async def run_generate(self, content_request: Optional[ContentRequest], use_voice: bool, copy: bool) -> None:
        """Generate one piece of content from form fields or a spoken command."""
        if use_voice:
            if not await self._capture():
                return
            try:
                self.ui.show_progress("Understanding your request...")
                command = await self.pipeline.stop_and_extract()
            except AlthorError as e:
                await self.ui.show_error(e)
                return
            finally:
                self.ui.stop_progress()
            self.ui.show_voice_command(command)
            content_request = command.to_content_request()

        try:
            self.ui.show_progress("Generating content...")
            result = await self.generator.generate(content_request)
        except AlthorError as e:
            await self.ui.show_error(e)
            return
        finally:
            self.ui.stop_progress()

        self.ui.show_content(result.text)
        if copy:
            await self._copy(result.text)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _run(coroutine_factory) -> None:
    try:
        app = AlthorApp()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        asyncio.run(coroutine_factory(app))
    except KeyboardInterrupt:
        click.echo("\nSession cancelled by user.")
        sys.exit(0)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def main(verbose: bool) -> None:
    """
    Althor - AI content writing assistant.

    Chat with the assistant, generate content from a few form fields, or
    speak your request. Requires MISTRAL_API_KEY; voice commands also need
    ELEVENLABS_API_KEY.
    """
    _configure_logging(verbose)


@main.command()
def chat() -> None:
    """Start an interactive chat session."""
    _run(lambda app: app.run_chat_session())


@main.command()
@click.option('--topic', help='What the content is about')
@click.option(
    '--content-type',
    default=DEFAULT_CONTENT_TYPE,
    type=click.Choice(list(CONTENT_TYPES)),
    help='Kind of content to write'
)
@click.option('--tone', default=DEFAULT_TONE, type=click.Choice(list(TONES)), help='Writing tone')
@click.option('--keywords', default='', help='Comma separated keywords')
@click.option('--info', 'additional_info', default='', help='Additional context')
@click.option('--voice', is_flag=True, help='Speak the request instead of using options')
@click.option('--copy', is_flag=True, help='Copy the result to the clipboard')
def generate(
    topic: Optional[str],
    content_type: str,
    tone: str,
    keywords: str,
    additional_info: str,
    voice: bool,
    copy: bool,
) -> None:
    """Generate a single piece of content."""
    if not voice and not topic:
        raise click.UsageError("Provide --topic or use --voice")

    content_request = None
    if not voice:
        content_request = ContentRequest(
            topic=topic,
            content_type=content_type,
            tone=tone,
            keywords=keywords,
            additional_info=additional_info,
        )
    _run(lambda app: app.run_generate(content_request, use_voice=voice, copy=copy))


@main.group()
def config() -> None:
    """Show or change the model settings."""
    pass


def _config_store() -> ModelConfigStore:
    return ModelConfigStore.load(resolve_config_dir())


def _apply(change) -> None:
    ui = TerminalUI()
    try:
        ui.show_config(change(_config_store()))
    except ConfigurationError as e:
        raise click.ClickException(str(e))


@config.command('show')
def config_show() -> None:
    """Show the current settings."""
    TerminalUI().show_config(_config_store().config)


@config.command('set-provider')
@click.argument('provider')
def config_set_provider(provider: str) -> None:
    """Select a provider (resets the model to its default)."""
    _apply(lambda store: store.set_provider(provider))


@config.command('set-model')
@click.argument('model')
def config_set_model(model: str) -> None:
    """Select a model of the current provider."""
    _apply(lambda store: store.set_model(model))


@config.command('set-key')
@click.option('--api-key', prompt=True, hide_input=True, help='API key for the selected provider')
def config_set_key(api_key: str) -> None:
    """Store your own API key."""
    _apply(lambda store: store.set_api_key(api_key))


@config.command('use-custom-key')
@click.argument('enabled', type=click.BOOL)
def config_use_custom_key(enabled: bool) -> None:
    """Use the stored key with the default provider too."""
    _apply(lambda store: store.set_use_custom_key(enabled))


if __name__ == "__main__":
    main()
