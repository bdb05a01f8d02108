from typing import List

from config import DEFAULT_HISTORY_TURNS
from data_types import ConversationTurn

CONTEXT_ROLES = ("user", "assistant")


class ConversationHistory:
    """Full chat transcript; only a bounded user/assistant slice is sent to the model."""

    def __init__(self):
        self._turns: List[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def append(self, role: str, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content)
        self._turns.append(turn)
        return turn

    def clear(self) -> None:
        self._turns.clear()

    def build_context(self, max_turns: int = DEFAULT_HISTORY_TURNS) -> List[ConversationTurn]:
        """Last `max_turns` user/assistant turns, excluding the prompt just submitted.

        The in-flight prompt is already in the transcript when this is called,
        so the most recent conversational turn is dropped.
        """
        if max_turns <= 0:
            return []
        conversational = [t for t in self._turns if t.role in CONTEXT_ROLES]
        return conversational[:-1][-max_turns:]
