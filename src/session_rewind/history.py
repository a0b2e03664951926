"""Convert stored messages into the formats the UI and the chat client consume.

Both histories are always derived fresh from a record's messages. Display ids
are assigned from position here and never written back to disk.
"""

from dataclasses import dataclass, field

from .core import ASSISTANT_TYPES, NOTICE_TYPES, USER_TYPE, Message, content_to_text


@dataclass
class HistoryItem:
    """One entry of the displayed transcript."""

    id: int
    type: str  # "user" | "gemini" | "info" | "error" | "warning" | "tool_group"
    text: str = ""
    tools: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"id": self.id, "type": self.type}
        if self.type == "tool_group":
            data["tools"] = self.tools
        else:
            data["text"] = self.text
        return data


def to_ui_history(messages: list[Message], start_id: int = 1) -> list[HistoryItem]:
    """Build the displayed transcript with fresh ordinal ids starting at start_id."""
    items = []
    for msg in messages:
        text = msg.text
        if text.strip():
            if msg.type == USER_TYPE or msg.type in NOTICE_TYPES:
                item_type = msg.type
            else:
                item_type = "gemini"
            items.append(HistoryItem(id=0, type=item_type, text=text))

        if msg.type != USER_TYPE and msg.tool_calls:
            items.append(HistoryItem(
                id=0,
                type="tool_group",
                tools=[_tool_display(tc) for tc in msg.tool_calls],
            ))

    for offset, item in enumerate(items):
        item.id = start_id + offset
    return items


def to_client_history(messages: list[Message]) -> list[dict]:
    """Build the turn list the live chat client expects.

    Notices and slash commands are dropped. An assistant message with tool
    calls becomes a model turn with functionCall parts followed by a user
    turn carrying the function responses.
    """
    history = []
    for msg in messages:
        if msg.type in NOTICE_TYPES:
            continue

        text = msg.text
        if msg.type == USER_TYPE:
            stripped = text.strip()
            if stripped.startswith("/") or stripped.startswith("?"):
                continue
            history.append({"role": "user", "parts": _as_parts(msg.content, text)})

        elif msg.type in ASSISTANT_TYPES:
            if not msg.tool_calls:
                if msg.content:
                    history.append({"role": "model", "parts": _as_parts(msg.content, text)})
                continue

            model_parts = []
            if text.strip():
                model_parts.append({"text": text})
            for tc in msg.tool_calls:
                call = {"name": tc.get("name", ""), "args": tc.get("args", {})}
                if tc.get("id"):
                    call["id"] = tc["id"]
                model_parts.append({"functionCall": call})
            history.append({"role": "model", "parts": model_parts})

            response_parts = []
            for tc in msg.tool_calls:
                response_parts.extend(_function_response_parts(tc))
            if response_parts:
                history.append({"role": "user", "parts": response_parts})

    return history


def convert_session_to_history_formats(messages: list[Message]) -> tuple[list[HistoryItem], list[dict]]:
    """Return (ui_history, client_history) for the same message list."""
    return to_ui_history(messages), to_client_history(messages)


# ── Private helpers ──────────────────────────────────────────────


def _as_parts(content, text: str) -> list:
    if isinstance(content, list):
        return [{"text": part} if isinstance(part, str) else part for part in content]
    return [{"text": text}]


def _tool_display(tool_call: dict) -> dict:
    return {
        "callId": tool_call.get("id", ""),
        "name": tool_call.get("displayName") or tool_call.get("name", "unknown"),
        "description": tool_call.get("description", ""),
        "status": "success" if tool_call.get("status") == "success" else "error",
        "resultDisplay": tool_call.get("resultDisplay"),
    }


def _function_response_parts(tool_call: dict) -> list:
    result = tool_call.get("result")
    if not result:
        return []

    if isinstance(result, str):
        response = {"name": tool_call.get("name", ""), "response": {"output": result}}
        if tool_call.get("id"):
            response["id"] = tool_call["id"]
        return [{"functionResponse": response}]

    if isinstance(result, list):
        return [{"text": part} if isinstance(part, str) else part for part in result]

    if isinstance(result, dict):
        return [result]

    return [{"text": content_to_text(result)}]
