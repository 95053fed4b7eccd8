"""
Integration tests for Althor components.

These tests verify that components work together correctly and catch
common integration issues like missing methods or incompatible interfaces.
Provider SDK clients are patched; everything above them is real.
"""

import inspect
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from althor.audio.pipeline import ExtractedVoiceCommand, VoiceCommandPipeline
from althor.config import CONFIG_FILENAME, Provider
from althor.conversation.agent import WELCOME_TURN_ID, ContentAgent
from althor.conversation.models import Feedback, Role
from althor.errors import InvalidContentRequestError, MissingCredentialError
from althor.generator import ContentGenerator
from althor.main import AlthorApp, main
from althor.providers.prompts import (
    REGENERATE_CONTENT_INSTRUCTION,
    STRUCTURE_HINT,
    SYSTEM_PREAMBLE,
    ContentRequest,
)
from althor.ui.terminal import TerminalUI

from .conftest import make_completion, make_result

OPENAI_CLIENT = "althor.providers.openai_compat.openai.OpenAI"


class TestMethodExistence:
    """Test that all required methods exist on components."""

    def test_terminal_ui_methods(self):
        """The UI methods main.py awaits are coroutines."""
        ui = TerminalUI()

        for name in ("prompt_message", "show_recording_status", "prompt_stop_recording",
                     "show_error", "show_success"):
            assert inspect.iscoroutinefunction(getattr(ui, name)), name
        for name in ("show_turn", "show_transcript", "show_progress", "stop_progress",
                     "show_content", "show_config", "show_voice_command"):
            assert not inspect.iscoroutinefunction(getattr(ui, name)), name

    def test_agent_methods(self, mock_registry, default_config):
        agent = ContentAgent(mock_registry, lambda: default_config)

        assert inspect.iscoroutinefunction(agent.submit)
        assert inspect.iscoroutinefunction(agent.submit_voice)
        assert inspect.iscoroutinefunction(agent.regenerate)
        assert not inspect.iscoroutinefunction(agent.give_feedback)
        assert not inspect.iscoroutinefunction(agent.copy_text)

    def test_althor_app_wiring(self, environment):
        """AlthorApp builds every component from one environment."""
        app = AlthorApp(environment=environment, ui=MagicMock())

        assert isinstance(app.pipeline, VoiceCommandPipeline)
        assert app.pipeline.transcriber is app.transcriber
        assert app.agent.registry is app.registry
        assert app.generator.registry is app.registry
        assert app.transcriber.api_key == "test-elevenlabs-key"
        assert inspect.iscoroutinefunction(app.run_chat_session)
        assert inspect.iscoroutinefunction(app.run_generate)


@pytest.fixture
def agent(registry, config_store):
    return ContentAgent(registry, lambda: config_store.config)


@pytest.mark.asyncio
class TestChatFlow:
    """The chat scenarios exercised end to end down to the SDK call."""

    async def test_content_request_round_trip(self, agent):
        with patch(OPENAI_CLIENT) as client_cls:
            create = client_cls.return_value.chat.completions.create
            create.return_value = make_completion("# Coffee\n\nA blog post.")

            reply = await agent.submit("write a blog post about coffee")

        turns = agent.store.turns
        assert [t.id for t in turns][0] == WELCOME_TURN_ID
        assert turns[1].role == Role.USER
        assert turns[1].content == "write a blog post about coffee"
        assert turns[2] is reply
        assert reply.content == "# Coffee\n\nA blog post."
        assert reply.is_generated_content is True
        assert reply.feedback == Feedback.NONE

        messages = create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PREAMBLE + STRUCTURE_HINT}
        assert messages[-1] == {"role": "user", "content": "write a blog post about coffee"}

    async def test_plain_question_is_not_marked_as_content(self, agent):
        with patch(OPENAI_CLIENT) as client_cls:
            client_cls.return_value.chat.completions.create.return_value = make_completion("Hi!")
            reply = await agent.submit("hello there")

        assert reply.is_generated_content is False

    async def test_blank_message_is_ignored(self, agent):
        with patch(OPENAI_CLIENT) as client_cls:
            assert await agent.submit("   ") is None
        client_cls.assert_not_called()
        assert len(agent.store) == 1

    async def test_negative_feedback_then_regenerate(self, agent):
        with patch(OPENAI_CLIENT) as client_cls:
            create = client_cls.return_value.chat.completions.create
            create.return_value = make_completion("First draft")
            reply = await agent.submit("write a blog post about coffee")

            assert agent.give_feedback(reply.id, Feedback.NEGATIVE)
            assert agent.store.get(reply.id).feedback == Feedback.NEGATIVE

            create.return_value = make_completion("Second draft")
            new_turn = await agent.regenerate(reply.id)

        turns = agent.store.turns
        assert len(turns) == 3
        assert turns[2] is new_turn
        assert new_turn.content == "Second draft"
        assert new_turn.feedback == Feedback.NONE
        assert new_turn.is_generated_content is True
        assert agent.store.get(reply.id) is None

        messages = create.call_args.kwargs["messages"]
        assert messages[0]["content"] == REGENERATE_CONTENT_INSTRUCTION
        assert messages[-1] == {"role": "user", "content": "write a blog post about coffee"}

    async def test_missing_key_keeps_user_turn(self, agent, config_store):
        config_store.set_provider("openai")

        with patch(OPENAI_CLIENT) as client_cls:
            with pytest.raises(MissingCredentialError):
                await agent.submit("write a blog post about coffee")

        client_cls.assert_not_called()
        turns = agent.store.turns
        assert len(turns) == 2
        assert turns[-1].role == Role.USER

    async def test_stored_key_is_sent_for_selected_provider(self, agent, config_store):
        config_store.set_provider("openai")
        config_store.set_api_key("sk-user")

        with patch(OPENAI_CLIENT) as client_cls:
            client_cls.return_value.chat.completions.create.return_value = make_completion("ok")
            await agent.submit("hello")

        assert client_cls.call_args.kwargs["api_key"] == "sk-user"
        assert client_cls.return_value.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"

    async def test_voice_message_is_submitted_as_text(self, mock_registry, default_config):
        agent = ContentAgent(mock_registry, lambda: default_config)
        pipeline = AsyncMock(spec=VoiceCommandPipeline)
        pipeline.stop_and_transcribe.return_value = "what is cold brew"

        reply = await agent.submit_voice(pipeline)

        assert agent.store.turns[1].content == "what is cold brew"
        assert agent.store.turns[2] is reply

    async def test_voice_message_when_not_recording(self, mock_registry, default_config):
        agent = ContentAgent(mock_registry, lambda: default_config)
        pipeline = AsyncMock(spec=VoiceCommandPipeline)
        pipeline.stop_and_transcribe.return_value = None

        assert await agent.submit_voice(pipeline) is None
        mock_registry.generate.assert_not_called()


@pytest.mark.asyncio
class TestContentGenerator:

    async def test_blank_topic_makes_no_call(self, mock_registry, default_config):
        generator = ContentGenerator(mock_registry, lambda: default_config)

        with pytest.raises(InvalidContentRequestError):
            await generator.generate(ContentRequest(topic="   "))
        mock_registry.generate.assert_not_called()

    async def test_prompt_carries_form_fields(self, mock_registry, default_config):
        generator = ContentGenerator(mock_registry, lambda: default_config)

        result = await generator.generate(ContentRequest(
            topic="Cold brew at home",
            content_type="email",
            tone="humorous",
            keywords="coffee, summer",
            additional_info="Mention the newsletter",
        ))

        assert result.text == "generated text"
        request = mock_registry.generate.call_args.args[0]
        assert request.system_preamble == SYSTEM_PREAMBLE
        assert request.prior_turns == []
        assert "Cold brew at home" in request.new_user_text
        assert "humorous" in request.new_user_text
        assert "coffee" in request.new_user_text
        assert "Mention the newsletter" in request.new_user_text

    async def test_generate_from_voice(self, mock_registry, default_config):
        generator = ContentGenerator(mock_registry, lambda: default_config)

        await generator.generate_from_voice(ExtractedVoiceCommand(topic="Espresso"))

        assert "Espresso" in mock_registry.generate.call_args.args[0].new_user_text


@pytest.fixture
def mock_ui():
    ui = AsyncMock(spec=TerminalUI)
    ui.console = MagicMock()
    return ui


@pytest.mark.asyncio
class TestMockedApp:
    """Test the app loop with mocked interactive parts."""

    async def test_chat_session_with_commands(self, environment, mock_ui):
        app = AlthorApp(environment=environment, ui=mock_ui)
        app.agent.registry = AsyncMock()
        app.agent.registry.generate.return_value = make_result("A coffee post")
        mock_ui.prompt_message.side_effect = [
            "write a blog post about coffee",
            "/good 3",
            "/copy 3",
            "/quit",
        ]

        with patch("pyperclip.copy") as mock_clipboard:
            await app.run_chat_session()

        turns = app.agent.store.turns
        assert len(turns) == 3
        assert turns[2].feedback == Feedback.POSITIVE
        mock_clipboard.assert_called_once_with("A coffee post")
        mock_ui.show_error.assert_not_called()

    async def test_chat_session_reports_errors_and_continues(self, environment, mock_ui):
        app = AlthorApp(environment=environment, ui=mock_ui)
        mock_ui.prompt_message.side_effect = ["/regen 1", "/bogus", None]

        await app.run_chat_session()

        assert mock_ui.show_error.await_count == 2

    async def test_generate_from_form_and_copy(self, environment, mock_ui):
        app = AlthorApp(environment=environment, ui=mock_ui)
        app.generator.registry = AsyncMock()
        app.generator.registry.generate.return_value = make_result("Finished email")

        with patch("pyperclip.copy") as mock_clipboard:
            await app.run_generate(ContentRequest(topic="Launch"), use_voice=False, copy=True)

        mock_ui.show_content.assert_called_once_with("Finished email")
        mock_clipboard.assert_called_once_with("Finished email")

    async def test_generate_from_voice(self, environment, mock_ui):
        app = AlthorApp(environment=environment, ui=mock_ui)
        app.pipeline = AsyncMock(spec=VoiceCommandPipeline)
        app.pipeline.stop_and_extract.return_value = ExtractedVoiceCommand(topic="Espresso")
        app.generator.registry = AsyncMock()
        app.generator.registry.generate.return_value = make_result("Espresso post")
        mock_ui.prompt_stop_recording.return_value = True

        await app.run_generate(None, use_voice=True, copy=False)

        app.pipeline.start.assert_awaited_once()
        mock_ui.show_voice_command.assert_called_once_with(ExtractedVoiceCommand(topic="Espresso"))
        mock_ui.show_content.assert_called_once_with("Espresso post")

    async def test_cancelled_recording_generates_nothing(self, environment, mock_ui):
        app = AlthorApp(environment=environment, ui=mock_ui)
        app.pipeline = AsyncMock(spec=VoiceCommandPipeline)
        mock_ui.prompt_stop_recording.return_value = False

        await app.run_generate(None, use_voice=True, copy=False)

        app.pipeline.cancel.assert_awaited_once()
        app.pipeline.stop_and_extract.assert_not_called()
        mock_ui.show_content.assert_not_called()


class TestCli:
    """Click commands, with settings stored in a temporary directory."""

    @pytest.fixture
    def runner(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ALTHOR_CONFIG_DIR", str(tmp_path))
        return CliRunner()

    def test_config_show_defaults(self, runner):
        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "mistral" in result.output
        assert "mistral-large-latest" in result.output

    def test_config_set_provider_persists(self, runner, tmp_path):
        result = runner.invoke(main, ["config", "set-provider", "openai"])

        assert result.exit_code == 0
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert '"provider": "openai"' in (tmp_path / CONFIG_FILENAME).read_text(encoding="utf-8")

    def test_config_rejects_unsupported_model(self, runner):
        result = runner.invoke(main, ["config", "set-model", "not-a-model"])

        assert result.exit_code == 1
        assert "not-a-model" in result.output

    def test_config_set_key(self, runner, tmp_path):
        runner.invoke(main, ["config", "set-provider", Provider.GROQ.value])
        result = runner.invoke(main, ["config", "set-key", "--api-key", "gsk-123"])

        assert result.exit_code == 0
        assert "gsk-123" in (tmp_path / CONFIG_FILENAME).read_text(encoding="utf-8")

    def test_generate_needs_topic_or_voice(self, runner):
        result = runner.invoke(main, ["generate"])
        assert result.exit_code == 2

    def test_missing_default_key_exits(self, runner, monkeypatch):
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        result = runner.invoke(main, ["chat"])
        assert result.exit_code == 1
