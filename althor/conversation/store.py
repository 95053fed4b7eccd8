"""
Conversation transcript storage.

The store is the single source of truth for the visible chat log. It only
ever appends turns or substitutes one in place, so list positions stay a
stable ordering key.
"""

import logging
from datetime import datetime
from typing import Iterator, List, Optional

from .models import ConversationTurn, Feedback, Role, flatten_content

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Ordered, mutable log of conversation turns.

    Supports appending, in-place replacement for regeneration, and
    write-once feedback annotation. Designed for a single writer on one
    event loop; each method completes without suspending.

    Example:
        >>> store = ConversationStore()
        >>> turn = store.append(ConversationTurn(Role.USER, "hello"))
        >>> store.index_of(turn.id)
        0
    """

    def __init__(self, turns: Optional[List[ConversationTurn]] = None):
        self._turns: List[ConversationTurn] = []
        for turn in turns or []:
            self.append(turn)

    def append(self, turn: ConversationTurn) -> ConversationTurn:
        """
        Add a turn at the end of the log.

        Args:
            turn: Turn to append; its timestamp is set if missing.

        Returns:
            The appended turn.
        """
        if turn.timestamp is None:
            turn.timestamp = datetime.now()
        self._turns.append(turn)
        logger.debug(f"Appended {turn.role.value} turn {turn.id} at index {len(self._turns) - 1}")
        return turn

    def replace_at(self, turn_id: str, new_turn: ConversationTurn) -> bool:
        """
        Substitute the turn with ``turn_id`` by ``new_turn`` at the same index.

        Does nothing when the id is unknown; callers validate beforehand.

        Returns:
            True if a turn was replaced.
        """
        index = self.index_of(turn_id)
        if index is None:
            return False
        if new_turn.timestamp is None:
            new_turn.timestamp = datetime.now()
        self._turns[index] = new_turn
        logger.debug(f"Replaced turn {turn_id} at index {index} with {new_turn.id}")
        return True

    def set_feedback(self, turn_id: str, value: Feedback) -> bool:
        """
        Record feedback on an assistant turn, once.

        Feedback that is already set is never overwritten, so repeated
        clicks cannot race each other.

        Returns:
            True if the feedback was applied, False if it was rejected.
        """
        turn = self.get(turn_id)
        if turn is None or turn.role != Role.ASSISTANT:
            logger.debug(f"Feedback rejected: {turn_id} is not an assistant turn")
            return False
        if value == Feedback.NONE or turn.feedback != Feedback.NONE:
            logger.debug(f"Feedback rejected for {turn_id}: already {turn.feedback.value}")
            return False
        turn.feedback = value
        return True

    @staticmethod
    def extract_plain_text(turn: ConversationTurn) -> str:
        """Plain text of a turn, as used for prompts and clipboard copy."""
        return flatten_content(turn.content)

    def get(self, turn_id: str) -> Optional[ConversationTurn]:
        index = self.index_of(turn_id)
        return None if index is None else self._turns[index]

    def index_of(self, turn_id: str) -> Optional[int]:
        for index, turn in enumerate(self._turns):
            if turn.id == turn_id:
                return index
        return None

    @property
    def turns(self) -> List[ConversationTurn]:
        """Snapshot of the log; mutating it does not affect the store."""
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(list(self._turns))
