"""Shared test fixtures for session-rewind."""

import json

import pytest

from session_rewind.core import SessionKey
from session_rewind.hashing import project_hash
from session_rewind.store import SessionStore

PROJECT_PATH = "/Users/testuser/dev/myapp"


def _message(type_, content, ts, **extra):
    msg = {"id": f"msg-{ts}", "type": type_, "content": content, "timestamp": ts}
    msg.update(extra)
    return msg


@pytest.fixture
def session_root(tmp_path):
    root = tmp_path / "tmp"
    root.mkdir()
    return root


@pytest.fixture
def write_record(session_root):
    """Return a helper that writes raw record data (dict or str) and returns its key."""

    def _write(hash, file_name, data):
        chats = session_root / hash / "chats"
        chats.mkdir(parents=True, exist_ok=True)
        text = data if isinstance(data, str) else json.dumps(data)
        (chats / file_name).write_text(text, encoding="utf-8")
        return SessionKey(hash, file_name)

    return _write


@pytest.fixture
def conversation_data():
    """A realistic five-message conversation with a tool call.

    Index 0: system-style info carrying the working directory
    Index 1: user prompt
    Index 2: assistant reply with an edit tool call
    Index 3: user follow-up
    Index 4: assistant reply
    """
    return {
        "sessionId": "11111111-2222-3333-4444-555555555555",
        "projectHash": project_hash(PROJECT_PATH),
        "startTime": "2025-01-20T10:00:00.000Z",
        "lastUpdated": "2025-01-20T10:05:00.000Z",
        "messages": [
            _message("info", f"I'm currently working in the directory: {PROJECT_PATH}\n", "2025-01-20T10:00:00.000Z"),
            _message("user", "Help me refactor the auth module", "2025-01-20T10:00:10.000Z"),
            _message(
                "gemini",
                "I'll split the token checks out.",
                "2025-01-20T10:00:30.000Z",
                toolCalls=[{
                    "id": "call-1",
                    "name": "replace",
                    "displayName": "Edit",
                    "args": {"file_path": "/src/auth.py"},
                    "status": "success",
                    "result": "File edited successfully",
                }],
            ),
            _message("user", [{"text": "Now add tests"}], "2025-01-20T10:04:00.000Z"),
            _message("gemini", "Added tests in tests/test_auth.py.", "2025-01-20T10:05:00.000Z"),
        ],
    }


@pytest.fixture
def project_key(write_record, conversation_data):
    return write_record(
        project_hash(PROJECT_PATH),
        "session-2025-01-20T10-00-11111111.json",
        conversation_data,
    )


@pytest.fixture
def store(session_root):
    return SessionStore(session_root, candidate_paths=[])
