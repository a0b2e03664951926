"""Path resolution for session data and the settings that help resolve it."""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SESSION_FILE_PREFIX = "session-"
SESSION_FILE_SUFFIX = ".json"
CHATS_DIR = "chats"


def get_session_root() -> Path:
    """Return the directory holding one subdirectory per project hash."""
    env = os.environ.get("SESSION_REWIND_ROOT")
    if env:
        return Path(env)

    return Path.home() / ".gemini" / "tmp"


def get_diff_root() -> Path:
    """Return the only directory pending diff proposals may live under."""
    env = os.environ.get("SESSION_REWIND_DIFF_ROOT")
    if env:
        return Path(env)

    return get_session_root() / "diff"


def get_settings_path() -> Path:
    """Return the path to the user's settings.json."""
    env = os.environ.get("SESSION_REWIND_SETTINGS")
    if env:
        return Path(env)

    return Path.home() / ".gemini" / "settings.json"


def resolve_setting_path(value: str) -> str:
    """Resolve a directory from settings: absolute as-is, ~/ expanded, else under home."""
    if os.path.isabs(value):
        return value
    if value.startswith("~/"):
        return str(Path.home() / value[2:])
    return str((Path.home() / value).resolve())


def load_candidate_paths(settings_path: Path | None = None) -> list[str]:
    """Return project directories named in the settings file.

    Reads terminalCwd and context.includeDirectories. A missing or unreadable
    settings file yields no candidates.
    """
    path = settings_path or get_settings_path()
    if not path.exists():
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load settings for session path resolution from %s: %s", path, e)
        return []

    if not isinstance(data, dict):
        return []

    candidates = []
    terminal_cwd = data.get("terminalCwd")
    if isinstance(terminal_cwd, str) and terminal_cwd:
        candidates.append(resolve_setting_path(terminal_cwd))

    context = data.get("context")
    if isinstance(context, dict):
        for directory in context.get("includeDirectories") or []:
            if isinstance(directory, str) and directory:
                candidates.append(resolve_setting_path(directory))

    # Deduplicate, keeping order
    return list(dict.fromkeys(candidates))
