"""Interfaces of the components a rewind coordinates but does not own."""

from abc import ABC, abstractmethod

from .core import ConversationRecord, Message
from .history import HistoryItem


class ChatClient(ABC):
    """The live chat client holding the in-memory turn list."""

    @abstractmethod
    def set_history(self, history: list[dict]) -> None:
        """Replace the client's turns with the given history."""
        ...

    @abstractmethod
    def get_messages(self) -> list[Message]:
        """Return the messages of the currently loaded conversation."""
        ...


class FileReverter(ABC):
    """Undoes file edits recorded in a conversation."""

    @abstractmethod
    async def revert_changes_since(self, conversation: ConversationRecord, message_index: int) -> None:
        """Undo every file edit made by messages after message_index.

        Receives the full, untruncated conversation. Raises on failure.
        """
        ...


class ContextManager(ABC):
    """Caches a project-context summary derived from the conversation."""

    @abstractmethod
    async def refresh(self) -> None:
        ...


class UISurface(ABC):
    """The transcript view hosting the rewind dialog."""

    @abstractmethod
    def load_history(self, items: list[HistoryItem], pending_input: str) -> None:
        """Replace the displayed transcript and prefill the input box."""
        ...

    @abstractmethod
    def add_item(self, item: dict, timestamp: float) -> None:
        """Append a notice ({"type": "info"|"error", "text": ...})."""
        ...

    @abstractmethod
    def remove_component(self) -> None:
        """Dismiss the rewind dialog."""
        ...
