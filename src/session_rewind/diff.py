"""Approve or reject a pending file-edit proposal written by the assistant.

Each proposal is a directory below the diff root containing meta.json
({"filePath": ...}). Resolving it writes new<ext> with the approved content
(approve only) and response.json with the final status, which the waiting
assistant picks up. Paths that resolve outside the diff root are rejected
before any file is read or written.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_diff_root
from .errors import SecurityViolation

logger = logging.getLogger(__name__)

APPROVE = "approve"
INVALID_PAYLOAD = "Invalid payload"
INVALID_DIFF_PATH = "Invalid diff path"


class DiffResolveRequest(BaseModel):
    """Payload sent by the editor surface."""

    model_config = ConfigDict(populate_by_name=True)

    diff_path: str = Field(alias="diffPath", min_length=1)
    status: str
    content: Optional[str] = None


@dataclass
class DiffResolution:
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


class DiffResolver:
    """Resolves proposals confined to one root directory.

    One decision per proposal: concurrent resolution of the same diff path
    is up to the caller.
    """

    def __init__(self, root: Path | None = None):
        self.root = os.path.realpath(root if root is not None else get_diff_root())

    def check_path(self, diff_path: str) -> Path:
        """Return the canonical proposal directory, or raise SecurityViolation."""
        try:
            resolved = os.path.realpath(diff_path)
        except (ValueError, OSError) as e:
            raise SecurityViolation(f"{diff_path!r} cannot be resolved: {e}")
        if resolved != self.root and not resolved.startswith(self.root + os.sep):
            raise SecurityViolation(f"{diff_path} is outside {self.root}")
        return Path(resolved)

    async def resolve_payload(self, payload) -> DiffResolution:
        """Validate a raw payload and resolve it."""
        try:
            request = DiffResolveRequest.model_validate(payload)
        except ValidationError as e:
            logger.error("Invalid diff resolve payload: %s", e)
            return DiffResolution(success=False, error=INVALID_PAYLOAD)
        return await self.resolve(request.diff_path, request.status, request.content)

    async def resolve(self, diff_path: str, status: str, content: str | None = None) -> DiffResolution:
        """Record the decision for the proposal at diff_path."""
        try:
            proposal_dir = self.check_path(diff_path)
        except SecurityViolation:
            logger.error("Attempted path traversal in diff resolve: %s", diff_path)
            return DiffResolution(success=False, error=INVALID_DIFF_PATH)

        try:
            async with aiofiles.open(proposal_dir / "meta.json", encoding="utf-8") as f:
                meta = json.loads(await f.read())
            extension = os.path.splitext(meta["filePath"])[1]

            if status == APPROVE:
                async with aiofiles.open(proposal_dir / f"new{extension}", "w", encoding="utf-8") as f:
                    await f.write(content or "")

            async with aiofiles.open(proposal_dir / "response.json", "w", encoding="utf-8") as f:
                await f.write(json.dumps({"status": status}))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Error resolving diff %s: %s", diff_path, e)
            return DiffResolution(success=False, error=str(e))

        logger.info("Resolved diff %s as %s", proposal_dir, status)
        return DiffResolution(success=True)
