"""
Tests for prompt assembly helpers.
"""

import pytest

from althor.providers.prompts import (
    REGENERATE_ANSWER_INSTRUCTION,
    REGENERATE_CONTENT_INSTRUCTION,
    STRUCTURE_HINT,
    SYSTEM_PREAMBLE,
    ContentRequest,
    build_content_prompt,
    conversation_preamble,
    detect_content_request,
    regeneration_preamble,
    split_keywords,
)


class TestBuildContentPrompt:

    def test_minimal_request(self):
        prompt = build_content_prompt(ContentRequest(topic="  Coffee  "))
        assert prompt == (
            'Write a professional blog post about "Coffee". '
            "Structure it appropriately for a blog post."
        )

    def test_keywords_and_additional_info(self):
        prompt = build_content_prompt(ContentRequest(
            topic="Launch",
            content_type="email",
            tone="enthusiastic",
            keywords="beta, , invite ",
            additional_info="Send on Monday",
        ))

        assert prompt.startswith('Write a enthusiastic email about "Launch".')
        assert "Incorporate the following keywords naturally: beta, invite." in prompt
        assert prompt.endswith("\n\nAdditional context: Send on Monday")

    def test_unknown_type_and_tone_fall_back(self):
        prompt = build_content_prompt(ContentRequest(topic="X", content_type="poem", tone="grumpy"))
        assert prompt.startswith('Write a professional content about "X".')


@pytest.mark.parametrize("text,expected", [
    ("Write a blog post about coffee", True),
    ("Can you DRAFT an email to my team?", True),
    ("what time is it", False),
    ("hello", False),
])
def test_detect_content_request(text, expected):
    assert detect_content_request(text) is expected


def test_split_keywords():
    assert split_keywords(" a, b ,,c ") == ["a", "b", "c"]
    assert split_keywords("") == []


def test_preambles():
    assert conversation_preamble(False) == SYSTEM_PREAMBLE
    assert conversation_preamble(True) == SYSTEM_PREAMBLE + STRUCTURE_HINT
    assert regeneration_preamble(True) == REGENERATE_CONTENT_INSTRUCTION
    assert regeneration_preamble(False).startswith(REGENERATE_ANSWER_INSTRUCTION)
