"""
Conversation history for QuranIQ.
Keeps an ordered, append-only record of turns and summarizes the recent ones for prompting.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .composer import HISTORY_TURNS, summarize_history

USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    """A single turn in the conversation."""
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    sources: Tuple[str, ...] = ()  # verse references cited, e.g. "2:155"

    def __post_init__(self):
        if self.role not in (USER, ASSISTANT):
            raise ValueError(f"Unknown role: {self.role}")


class ConversationState:
    """Maintains conversation context across turns."""

    def __init__(self):
        self.turns: List[ChatTurn] = []
        self.recent_sources: List[str] = []  # most recent first

    def add_user_message(self, content: str) -> ChatTurn:
        turn = ChatTurn(role=USER, content=content)
        self.turns.append(turn)
        return turn

    def add_assistant_message(self, content: str, sources: Optional[Sequence[str]] = None) -> ChatTurn:
        sources = tuple(sources or ())
        turn = ChatTurn(role=ASSISTANT, content=content, sources=sources)
        self.turns.append(turn)

        for source in sources:
            if source in self.recent_sources:
                self.recent_sources.remove(source)
            self.recent_sources.insert(0, source)

        # Keep only last 50 sources
        self.recent_sources = self.recent_sources[:50]
        return turn

    def get_message_history(self) -> List[dict]:
        """Get message history in format suitable for LLM."""
        return [{"role": t.role, "content": t.content} for t in self.turns]

    def recent_summary(self, n_turns: int = HISTORY_TURNS) -> str:
        """The last n turns joined into one line."""
        return summarize_history(self.get_message_history(), n_turns)

    def get_sources_for_context(self, n: int = 5) -> List[str]:
        return self.recent_sources[:n]

    def __len__(self) -> int:
        return len(self.turns)
