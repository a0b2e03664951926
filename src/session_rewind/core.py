"""Core data models for session-rewind."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

USER_TYPE = "user"
ASSISTANT_TYPES = ("assistant", "gemini")
NOTICE_TYPES = ("info", "error", "warning")

EMPTY_DISPLAY_NAME = "Empty conversation"
DISPLAY_NAME_LIMIT = 60

_MESSAGE_KEYS = {"type", "content", "timestamp", "toolCalls"}
_RECORD_KEYS = {"sessionId", "messages", "startTime", "lastUpdated"}


class RewindOutcome(str, Enum):
    """What the user chose to do with the selected message."""

    CANCEL = "cancel"
    REWIND_ONLY = "rewind_only"
    REVERT_ONLY = "revert_only"
    REWIND_AND_REVERT = "rewind_and_revert"


@dataclass(frozen=True)
class SessionKey:
    """Addresses one record file: the project hash directory plus its file name."""

    hash: str
    file_name: str

    def __str__(self) -> str:
        return f"{self.hash}/{self.file_name}"


@dataclass
class Message:
    """A single message within a conversation record."""

    type: str  # "user" | "gemini" | "assistant" | "info" | "error" | "warning"
    content: Any  # str, or a list of parts ({"text": ...}, {"functionCall": ...}, str)
    timestamp: Optional[datetime] = None
    tool_calls: list[dict] = field(default_factory=list)
    extra: dict = field(default_factory=dict)  # persisted keys we don't model (id, thoughts, tokens)

    @property
    def text(self) -> str:
        return content_to_text(self.content)

    def is_command(self) -> bool:
        """True for slash commands typed by the user, e.g. "/help"."""
        return self.type == USER_TYPE and self.text.startswith("/")

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        tool_calls = data.get("toolCalls")
        if not isinstance(tool_calls, list):
            tool_calls = []
        return cls(
            type=data.get("type", ""),
            content=data.get("content", ""),
            timestamp=parse_iso(data.get("timestamp")),
            tool_calls=[tc for tc in tool_calls if isinstance(tc, dict)],
            extra={k: v for k, v in data.items() if k not in _MESSAGE_KEYS},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data["type"] = self.type
        data["content"] = self.content
        if self.timestamp:
            data["timestamp"] = format_iso(self.timestamp)
        if self.tool_calls:
            data["toolCalls"] = self.tool_calls
        return data


@dataclass
class ConversationRecord:
    """The durable representation of one chat session."""

    session_id: str
    messages: list[Message] = field(default_factory=list)
    start_time: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    extra: dict = field(default_factory=dict)  # e.g. projectHash

    def truncated(self, index: int) -> "ConversationRecord":
        """Return a copy holding messages [0, index] with last_updated reset to now.

        Raises IndexError when index does not address an existing message.
        """
        if index < 0 or index >= len(self.messages):
            raise IndexError(
                f"Message index {index} out of range for {len(self.messages)} messages"
            )
        return ConversationRecord(
            session_id=self.session_id,
            messages=list(self.messages[: index + 1]),
            start_time=self.start_time,
            last_updated=utcnow(),
            extra=dict(self.extra),
        )

    def display_name(self) -> str:
        """First plain-text user message, skipping slash commands."""
        for msg in self.messages:
            if msg.type != USER_TYPE or msg.is_command():
                continue
            text = msg.text
            if text.strip():
                if len(text) > DISPLAY_NAME_LIMIT:
                    return text[: DISPLAY_NAME_LIMIT - 3] + "..."
                return text
        return EMPTY_DISPLAY_NAME

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationRecord":
        """Build a record from parsed JSON.

        Callers validate required fields first (see store._validate_record).
        """
        return cls(
            session_id=data["sessionId"],
            messages=[Message.from_dict(m) for m in data["messages"] if isinstance(m, dict)],
            start_time=parse_iso(data.get("startTime")),
            last_updated=parse_iso(data.get("lastUpdated")),
            extra={k: v for k, v in data.items() if k not in _RECORD_KEYS},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data["sessionId"] = self.session_id
        if self.start_time:
            data["startTime"] = format_iso(self.start_time)
        if self.last_updated:
            data["lastUpdated"] = format_iso(self.last_updated)
        data["messages"] = [m.to_dict() for m in self.messages]
        return data


@dataclass
class SessionIndexEntry:
    """Listing projection of one record file. Built by scanning, never persisted."""

    session_id: str
    display_name: str
    message_count: int
    project_path: Optional[str]  # None when the hash could not be resolved
    mtime: datetime
    hash: str
    file_name: str

    @property
    def key(self) -> SessionKey:
        return SessionKey(self.hash, self.file_name)


def content_to_text(content: Any) -> str:
    """Flatten message content (a string or a list of parts) into plain text.

    Non-text parts (function calls, inline data) contribute nothing.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        text = content.get("text")
        return text if isinstance(text, str) else ""
    if isinstance(content, list):
        return "".join(content_to_text(part) for part in content)
    return str(content)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string. Naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_iso(value: datetime) -> str:
    """Format a datetime the way the records are written: UTC with a trailing Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
