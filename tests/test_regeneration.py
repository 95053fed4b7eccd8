"""
Tests for regenerating assistant turns.
"""

import asyncio

import pytest

from althor.config import ModelConfig, Provider
from althor.conversation.models import ConversationTurn, Feedback, Role
from althor.conversation.regeneration import RegenerationController
from althor.conversation.store import ConversationStore
from althor.errors import (
    InvalidRegenerationTargetError,
    NetworkFailureError,
    RegenerationInProgressError,
)
from althor.providers.prompts import (
    REGENERATE_ANSWER_INSTRUCTION,
    REGENERATE_CONTENT_INSTRUCTION,
    SYSTEM_PREAMBLE,
)

from .conftest import make_result


def _conversation():
    """welcome, user, assistant (content), user, assistant (answer)."""
    store = ConversationStore()
    store.append(ConversationTurn(Role.ASSISTANT, "Welcome"))
    store.append(ConversationTurn(Role.USER, "write a blog post about coffee"))
    store.append(ConversationTurn(Role.ASSISTANT, "Coffee post", is_generated_content=True))
    store.append(ConversationTurn(Role.USER, "what is a pour-over?"))
    store.append(ConversationTurn(Role.ASSISTANT, "A brewing method"))
    return store


@pytest.fixture
def store():
    return _conversation()


@pytest.fixture
def controller(store, mock_registry, default_config):
    return RegenerationController(store, mock_registry, lambda: default_config)


class TestTargetValidation:
    """Invalid targets are rejected before any provider call."""

    @pytest.mark.asyncio
    async def test_first_turn_is_rejected(self, controller, store, mock_registry):
        with pytest.raises(InvalidRegenerationTargetError):
            await controller.regenerate(store.turns[0].id)
        mock_registry.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_turn_is_rejected(self, controller, store, mock_registry):
        with pytest.raises(InvalidRegenerationTargetError):
            await controller.regenerate(store.turns[1].id)
        mock_registry.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_turn_is_rejected(self, controller, mock_registry):
        with pytest.raises(InvalidRegenerationTargetError):
            await controller.regenerate("missing")
        mock_registry.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_assistant_after_assistant_is_rejected(self, mock_registry, default_config):
        store = ConversationStore()
        store.append(ConversationTurn(Role.USER, "hi"))
        store.append(ConversationTurn(Role.ASSISTANT, "one"))
        store.append(ConversationTurn(Role.ASSISTANT, "two"))
        controller = RegenerationController(store, mock_registry, lambda: default_config)

        with pytest.raises(InvalidRegenerationTargetError):
            await controller.regenerate(store.turns[2].id)
        mock_registry.generate.assert_not_called()


class TestRequestShape:

    def test_history_stops_before_prompting_user_turn(self, controller, store):
        turns = store.turns
        request = controller.build_request(turns[4].id)

        assert [t.id for t in request.prior_turns] == [t.id for t in turns[:3]]
        assert request.new_user_text == "what is a pour-over?"
        assert request.system_preamble == f"{REGENERATE_ANSWER_INSTRUCTION}\n\n{SYSTEM_PREAMBLE}"

    def test_generated_content_uses_content_instruction(self, controller, store):
        turns = store.turns
        request = controller.build_request(turns[2].id)

        assert [t.id for t in request.prior_turns] == [turns[0].id]
        assert request.new_user_text == "write a blog post about coffee"
        assert request.system_preamble == REGENERATE_CONTENT_INSTRUCTION

    def test_uses_current_model_config(self, store, mock_registry):
        config = ModelConfig(provider=Provider.GROQ, model="llama-3.1-8b-instant", api_key="gsk")
        controller = RegenerationController(store, mock_registry, lambda: config)

        request = controller.build_request(store.turns[4].id)

        assert request.provider == Provider.GROQ
        assert request.model == "llama-3.1-8b-instant"
        assert request.api_key_override == "gsk"


class TestRegenerate:

    @pytest.mark.asyncio
    async def test_replaces_turn_in_place(self, controller, store, mock_registry):
        before = store.turns
        target = before[2]
        store.set_feedback(target.id, Feedback.NEGATIVE)
        mock_registry.generate.return_value = make_result("A better coffee post")

        new_turn = await controller.regenerate(target.id)

        after = store.turns
        assert len(after) == len(before)
        assert after[2] is new_turn
        assert new_turn.id != target.id
        assert new_turn.content == "A better coffee post"
        assert new_turn.feedback == Feedback.NONE
        assert new_turn.is_generated_content is True
        assert new_turn.role == Role.ASSISTANT
        for i in (0, 1, 3, 4):
            assert after[i] is before[i]

    @pytest.mark.asyncio
    async def test_keeps_plain_answer_flag(self, controller, store):
        new_turn = await controller.regenerate(store.turns[4].id)
        assert new_turn.is_generated_content is False

    @pytest.mark.asyncio
    async def test_failure_leaves_original_in_place(self, controller, store, mock_registry):
        before = store.turns
        target = before[4]
        mock_registry.generate.side_effect = NetworkFailureError("offline")

        with pytest.raises(NetworkFailureError):
            await controller.regenerate(target.id)

        assert store.turns[4] is target
        assert not controller.is_regenerating(target.id)

    @pytest.mark.asyncio
    async def test_concurrent_regeneration_of_same_turn_is_rejected(self, controller, store, mock_registry):
        target_id = store.turns[4].id
        gate = asyncio.Event()

        async def slow_generate(request):
            await gate.wait()
            return make_result("fresh")

        mock_registry.generate.side_effect = slow_generate

        first = asyncio.create_task(controller.regenerate(target_id))
        await asyncio.sleep(0)
        assert controller.is_regenerating(target_id)

        with pytest.raises(RegenerationInProgressError):
            await controller.regenerate(target_id)

        gate.set()
        new_turn = await first

        assert store.turns[4] is new_turn
        assert mock_registry.generate.call_count == 1
        assert not controller.is_regenerating(target_id)

    @pytest.mark.asyncio
    async def test_different_turns_may_regenerate_together(self, controller, store, mock_registry):
        turns = store.turns
        results = await asyncio.gather(
            controller.regenerate(turns[2].id),
            controller.regenerate(turns[4].id),
        )

        assert store.turns[2] is results[0]
        assert store.turns[4] is results[1]
        assert mock_registry.generate.call_count == 2
