"""Conversation session store and rewind engine."""

from .core import ConversationRecord, Message, RewindOutcome, SessionIndexEntry, SessionKey
from .diff import DiffResolution, DiffResolver
from .hashing import project_hash
from .rewind import RewindEngine, RewindResult, RewindState
from .store import SessionStore

__all__ = [
    "ConversationRecord",
    "DiffResolution",
    "DiffResolver",
    "Message",
    "RewindEngine",
    "RewindOutcome",
    "RewindResult",
    "RewindState",
    "SessionIndexEntry",
    "SessionKey",
    "SessionStore",
    "project_hash",
]
