"""Per-project storage of conversation records.

Layout under the session root::

    <root>/<project hash>/chats/session-<stamp>-<id>.json

Each file holds one ConversationRecord as JSON with required keys
"sessionId" and "messages". Reads that scan many files isolate failures per
file; writes propagate their errors to the caller.
"""

import json
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os

from .config import (
    CHATS_DIR,
    SESSION_FILE_PREFIX,
    SESSION_FILE_SUFFIX,
    get_session_root,
    load_candidate_paths,
)
from .core import ConversationRecord, Message, SessionIndexEntry, SessionKey, utcnow
from .errors import NotFoundError, ParseError
from .hashing import canonicalize_path, project_hash

logger = logging.getLogger(__name__)

WORKING_DIR_PATTERN = re.compile(r"I'm currently working in the directory: ([^\n]+)")
WORKING_DIR_SCAN_LIMIT = 5


class SessionStore:
    """Reads and writes conversation records below one session root.

    Construct one per root; nothing here is process-global, so tests can run
    several isolated stores side by side.
    """

    def __init__(
        self,
        root: Path | None = None,
        candidate_paths: list[str] | None = None,
    ):
        self.root = Path(root) if root is not None else get_session_root()
        self._candidate_paths = candidate_paths

    def chats_dir(self, hash: str) -> Path:
        return self.root / hash / CHATS_DIR

    def path_for(self, key: SessionKey) -> Path:
        return self.chats_dir(key.hash) / key.file_name

    # ── Listing ──────────────────────────────────────────────────────

    async def list_recent(self) -> list[SessionIndexEntry]:
        """Return an entry for every readable record, most recently updated first."""
        if not await aiofiles.os.path.isdir(self.root):
            return []

        path_by_hash = self._candidate_hashes()
        entries = []

        for hash in sorted(await aiofiles.os.listdir(self.root)):
            chats_dir = self.chats_dir(hash)
            try:
                if not await aiofiles.os.path.isdir(chats_dir):
                    continue
                file_names = await aiofiles.os.listdir(chats_dir)
            except OSError as e:
                logger.warning("Failed to list sessions in %s: %s", chats_dir, e)
                continue

            for file_name in sorted(file_names):
                if not is_session_file(file_name):
                    continue
                key = SessionKey(hash, file_name)
                try:
                    entries.append(await self._index_entry(key, path_by_hash))
                except (ParseError, OSError) as e:
                    logger.warning("Skipping session %s: %s", key, e)

        entries.sort(key=lambda e: e.mtime, reverse=True)
        return entries

    async def _index_entry(self, key: SessionKey, path_by_hash: dict[str, str]) -> SessionIndexEntry:
        record = await self.load(key)
        mtime = record.last_updated or record.start_time
        if mtime is None:
            stat = await aiofiles.os.stat(self.path_for(key))
            mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        return SessionIndexEntry(
            session_id=record.session_id,
            display_name=record.display_name(),
            message_count=len(record.messages),
            project_path=self._resolve(key.hash, record, path_by_hash),
            mtime=mtime,
            hash=key.hash,
            file_name=key.file_name,
        )

    # ── Project path resolution ──────────────────────────────────────

    def candidate_paths(self) -> list[str]:
        """Directories that may have produced a hash: the cwd plus configured ones."""
        if self._candidate_paths is not None:
            return list(self._candidate_paths)
        return list(dict.fromkeys([os.getcwd(), *load_candidate_paths()]))

    def _candidate_hashes(self) -> dict[str, str]:
        path_by_hash = {}
        for path in self.candidate_paths():
            path_by_hash.setdefault(project_hash(path), canonicalize_path(path))
        return path_by_hash

    def resolve_project_path(self, hash: str, record: ConversationRecord | None = None) -> str | None:
        """Best-effort reverse lookup of the directory a project hash came from.

        Returns None when neither a candidate directory nor the record's
        working-directory marker gives an answer.
        """
        return self._resolve(hash, record, self._candidate_hashes())

    def _resolve(
        self,
        hash: str,
        record: ConversationRecord | None,
        path_by_hash: dict[str, str],
    ) -> str | None:
        matched = path_by_hash.get(hash)
        if matched:
            return matched

        # Last resort: the system prompt usually names the working directory
        if record is not None:
            for msg in record.messages[:WORKING_DIR_SCAN_LIMIT]:
                match = WORKING_DIR_PATTERN.search(msg.text)
                if match:
                    return match.group(1).strip()
        return None

    # ── Single records ───────────────────────────────────────────────

    async def load(self, key: SessionKey) -> ConversationRecord:
        """Parse one record file.

        Raises NotFoundError if the file is missing and ParseError if it is
        not a JSON object with "sessionId" and "messages".
        """
        path = self.path_for(key)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            raise NotFoundError(f"Session not found: {key}")
        except UnicodeDecodeError:
            raise ParseError(path, "not valid UTF-8")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(path, f"not valid JSON ({e})")

        _validate_record(path, data)
        try:
            return ConversationRecord.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise ParseError(path, f"unexpected record structure ({e})")

    async def save(self, key: SessionKey, record: ConversationRecord) -> None:
        """Replace the record file with the full record.

        The new content goes to a temporary file beside the record first, so
        a failed write leaves the previous record intact.
        """
        path = self.path_for(key)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
            await aiofiles.os.replace(tmp, path)
        finally:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)

    async def create(self, project_path: str, session_id: str | None = None) -> tuple[SessionKey, ConversationRecord]:
        """Start a new record for a project and write it immediately."""
        session_id = session_id or str(uuid.uuid4())
        now = utcnow()
        record = ConversationRecord(
            session_id=session_id,
            start_time=now,
            last_updated=now,
            extra={"projectHash": project_hash(project_path)},
        )
        stamp = now.strftime("%Y-%m-%dT%H-%M")
        file_name = f"{SESSION_FILE_PREFIX}{stamp}-{session_id[:8]}{SESSION_FILE_SUFFIX}"
        key = SessionKey(project_hash(project_path), file_name)
        await self.save(key, record)
        logger.info("Created session %s at %s", session_id, key)
        return key, record

    async def append(self, key: SessionKey, message: Message) -> ConversationRecord:
        """Append one message and persist the record."""
        record = await self.load(key)
        record.messages.append(message)
        now = utcnow()
        if record.last_updated is None or now > record.last_updated:
            record.last_updated = now
        await self.save(key, record)
        return record

    async def delete(self, key: SessionKey) -> None:
        """Remove one record file. Failures are logged and re-raised."""
        path = self.path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.error("Failed to delete session %s: file not found", key)
            raise NotFoundError(f"Session not found: {key}")
        except OSError as e:
            logger.error("Failed to delete session %s: %s", key, e)
            raise
        logger.info("Deleted session %s", key)

    async def ensure_in_project(self, key: SessionKey, target_path: str) -> None:
        """Make sure a record is visible from the project at target_path.

        Copies the file into the target's hash directory when it lives under
        another hash. Failures are logged, not raised: a resumed session
        without history is preferable to crashing the caller.
        """
        target_hash = project_hash(target_path)
        if key.hash == target_hash:
            return

        source = self.path_for(key)
        target = self.path_for(SessionKey(target_hash, key.file_name))
        try:
            if not await aiofiles.os.path.exists(source):
                logger.warning("Source session file not found at %s, cannot migrate.", source)
                return

            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(source, "rb") as src:
                content = await src.read()
            async with aiofiles.open(target, "wb") as dst:
                await dst.write(content)
        except OSError as e:
            logger.error(
                "Failed to migrate session %s from %s to %s: %s",
                key.file_name, key.hash, target_path, e,
            )


def is_session_file(file_name: str) -> bool:
    return file_name.startswith(SESSION_FILE_PREFIX) and file_name.endswith(SESSION_FILE_SUFFIX)


def _validate_record(path: Path, data) -> None:
    if not isinstance(data, dict):
        raise ParseError(path, "expected a JSON object")
    session_id = data.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        raise ParseError(path, "missing sessionId")
    if not isinstance(data.get("messages"), list):
        raise ParseError(path, "missing messages")
