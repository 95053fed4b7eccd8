"""
Conversation data model.

Defines the turn record kept by the conversation store and the single
reducer that turns any turn or provider payload into plain text.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence, Union


class Role(str, Enum):
    """Conversation turn roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Feedback(str, Enum):
    """Tri-state feedback on an assistant turn."""
    NONE = "none"
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class ContentFragment:
    """One typed piece of structured message content."""
    kind: str
    text: str = ""


Content = Union[str, Sequence[Any]]


def new_turn_id() -> str:
    """Generate an opaque, client-side turn identifier."""
    return uuid.uuid4().hex


def _fragment_kind(fragment: Any) -> Optional[str]:
    if isinstance(fragment, dict):
        return fragment.get("type", fragment.get("kind"))
    return getattr(fragment, "type", None) or getattr(fragment, "kind", None)


def _fragment_text(fragment: Any) -> str:
    """Text contributed by one fragment; non-text kinds contribute nothing."""
    if isinstance(fragment, str):
        return fragment
    if _fragment_kind(fragment) != "text":
        return ""
    if isinstance(fragment, dict):
        text = fragment.get("text")
    else:
        text = getattr(fragment, "text", None)
    return text if isinstance(text, str) else ""


def flatten_content(content: Optional[Content]) -> str:
    """
    Reduce message content to a single string.

    Plain strings are returned unchanged. Fragment sequences are joined
    with a single space, every fragment contributing its text (or an empty
    string for non-text kinds) in original order.

    Args:
        content: A string, a sequence of fragments (dicts, SDK objects or
            ``ContentFragment``), or None.

    Returns:
        The plain text; never None.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return " ".join(_fragment_text(fragment) for fragment in content)


@dataclass
class ConversationTurn:
    """A single message in the conversation log."""
    role: Role
    content: Content
    id: str = field(default_factory=new_turn_id)
    timestamp: Optional[datetime] = None
    feedback: Feedback = Feedback.NONE
    is_generated_content: bool = False

    @property
    def text(self) -> str:
        """Plain-text view of the content."""
        return flatten_content(self.content)
