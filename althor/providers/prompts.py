"""
Prompt templates and content catalogs.

All natural-language instructions sent to providers live here so that the
conversation flow, the form generator, regeneration and voice extraction
share one vocabulary.
"""

from dataclasses import dataclass
from typing import Dict, List

ASSISTANT_NAME = "Althor AI"

# Form values and their display labels
CONTENT_TYPES: Dict[str, str] = {
    "blog-post": "Blog Post",
    "article": "Article",
    "social-media": "Social Media Post",
    "email": "Email",
    "product-description": "Product Description",
    "essay": "Essay",
}

TONES: Dict[str, str] = {
    "professional": "Professional",
    "conversational": "Conversational",
    "enthusiastic": "Enthusiastic",
    "informative": "Informative",
    "formal": "Formal",
    "humorous": "Humorous",
}

DEFAULT_CONTENT_TYPE = "blog-post"
DEFAULT_TONE = "professional"

# Repertoire advertised to the model in conversation mode
AGENT_CONTENT_TYPES: List[str] = [
    "blog post", "article", "social media post", "email",
    "product description", "ad copy", "press release",
    "newsletter", "website copy",
]

AGENT_TONES: List[str] = [
    "professional", "conversational", "enthusiastic",
    "informative", "persuasive", "humorous",
    "formal", "friendly",
]

CONTENT_KEYWORDS: List[str] = [
    "write", "create", "generate", "draft", "compose", "blog post", "article",
    "social media", "content", "copy", "text", "email", "newsletter", "post",
]

WELCOME_MESSAGE = (
    f"Hello! I'm {ASSISTANT_NAME}, your advanced content writing assistant. "
    "I can help you create engaging blog posts, articles, social media content, "
    "emails, and more. Just describe what you need or use the voice command "
    "button to speak your request."
)

SYSTEM_PREAMBLE = (
    f"You are {ASSISTANT_NAME}, an advanced content writing assistant. Your goal is to "
    "create high-quality, engaging content based on the user's requirements.\n"
    "Focus on being creative, clear, and tailored to the specified audience and purpose.\n"
    f"You can create various types of content including: {', '.join(AGENT_CONTENT_TYPES)}.\n"
    f"You can write in different tones such as: {', '.join(AGENT_TONES)}.\n"
    "When the user asks for content, provide complete, ready-to-use content that "
    "requires minimal editing.\n"
    "Always maintain a helpful, professional tone and provide thoughtful responses."
)

STRUCTURE_HINT = " Structure it appropriately for the content type requested."

REGENERATE_CONTENT_INSTRUCTION = (
    f"You are {ASSISTANT_NAME}, an advanced content writing assistant. The previous "
    "content was not satisfactory. Please create a completely new version that is "
    "more engaging, well-structured, and better addresses the user's requirements. "
    "Focus on quality, creativity, and relevance."
)

REGENERATE_ANSWER_INSTRUCTION = (
    f"You are {ASSISTANT_NAME}. The previous response was not satisfactory. Please "
    "provide a more helpful, accurate, and comprehensive answer."
)

VOICE_EXTRACTION_INSTRUCTION = (
    "You extract content generation parameters from a spoken request. Respond with "
    "a single JSON object and nothing else, using exactly these keys:\n"
    '- "topic": the subject to write about\n'
    f'- "contentType": one of {", ".join(CONTENT_TYPES)} (default "{DEFAULT_CONTENT_TYPE}")\n'
    f'- "tone": one of {", ".join(TONES)} (default "{DEFAULT_TONE}")\n'
    '- "keywords": comma separated keywords, or "" if none were mentioned\n'
    '- "additionalInfo": any other instructions, or "" if none were given'
)


@dataclass
class ContentRequest:
    """Fields of the content generation form."""
    topic: str
    content_type: str = DEFAULT_CONTENT_TYPE
    tone: str = DEFAULT_TONE
    keywords: str = ""
    additional_info: str = ""


def split_keywords(keywords: str) -> List[str]:
    """Split a comma separated keyword string, dropping blanks."""
    return [kw.strip() for kw in keywords.split(",") if kw.strip()]


def build_content_prompt(request: ContentRequest) -> str:
    """
    Assemble the single instruction string for form-based generation.

    Unknown content types are described as generic "content" and unknown
    tones as professional.
    """
    content_label = CONTENT_TYPES.get(request.content_type, "Content").lower()
    tone_label = TONES.get(request.tone, TONES[DEFAULT_TONE]).lower()

    prompt = f'Write a {tone_label} {content_label} about "{request.topic.strip()}".'
    keywords = split_keywords(request.keywords)
    if keywords:
        prompt += f" Incorporate the following keywords naturally: {', '.join(keywords)}."
    prompt += f" Structure it appropriately for a {content_label}."
    if request.additional_info.strip():
        prompt += f"\n\nAdditional context: {request.additional_info.strip()}"
    return prompt


def detect_content_request(text: str) -> bool:
    """True when the user is asking for long-form content."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in CONTENT_KEYWORDS)


def conversation_preamble(is_content_request: bool) -> str:
    return SYSTEM_PREAMBLE + STRUCTURE_HINT if is_content_request else SYSTEM_PREAMBLE


def regeneration_preamble(is_generated_content: bool) -> str:
    """Strengthened instruction used when regenerating a turn."""
    if is_generated_content:
        return REGENERATE_CONTENT_INSTRUCTION
    return f"{REGENERATE_ANSWER_INSTRUCTION}\n\n{SYSTEM_PREAMBLE}"
