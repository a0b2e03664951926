"""FastAPI web server for session-rewind."""

import logging

from fastapi import Body, FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from .core import SessionIndexEntry, SessionKey, format_iso
from .diff import DiffResolver
from .errors import NotFoundError, ParseError
from .history import to_ui_history
from .store import SessionStore, is_session_file

logger = logging.getLogger(__name__)


class EnsureInProjectRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hash: str = Field(min_length=1)
    file_name: str = Field(alias="fileName", min_length=1)
    target_path: str = Field(alias="targetPath", min_length=1)


def create_app(store: SessionStore | None = None, resolver: DiffResolver | None = None) -> FastAPI:
    """Build the app around an explicit store and diff resolver."""
    app = FastAPI(title="session-rewind", version="0.1.0")
    app.state.store = store or SessionStore()
    app.state.resolver = resolver or DiffResolver()

    @app.get("/api/sessions")
    async def get_sessions(request: Request):
        """Return every stored session, most recent first."""
        entries = await request.app.state.store.list_recent()
        return {
            "total": len(entries),
            "sessions": [_entry_to_dict(e) for e in entries],
        }

    @app.get("/api/session/{hash}/{file_name}")
    async def get_session(hash: str, file_name: str, request: Request):
        """Return one record with display ids assigned."""
        store = request.app.state.store
        key = _key(hash, file_name)
        try:
            record = await store.load(key)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ParseError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except OSError as e:
            logger.error("Failed to read session %s: %s", key, e)
            raise HTTPException(status_code=500, detail=f"Failed to read session: {e}")

        return {
            "session_id": record.session_id,
            "project_path": store.resolve_project_path(hash, record),
            "start_time": format_iso(record.start_time) if record.start_time else None,
            "last_updated": format_iso(record.last_updated) if record.last_updated else None,
            "history": [item.to_dict() for item in to_ui_history(record.messages)],
        }

    @app.post("/api/sessions/ensure-in-project")
    async def ensure_in_project(body: EnsureInProjectRequest, request: Request):
        """Copy a session into another project's directory so it can be resumed there."""
        key = _key(body.hash, body.file_name)
        await request.app.state.store.ensure_in_project(key, body.target_path)
        return {"success": True}

    @app.delete("/api/session/{hash}/{file_name}")
    async def delete_session(hash: str, file_name: str, request: Request):
        """Delete one session file."""
        try:
            await request.app.state.store.delete(_key(hash, file_name))
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete session: {e}")
        return {"success": True}

    @app.post("/api/diff/resolve")
    async def resolve_diff(request: Request, payload: dict = Body(...)):
        """Approve or reject a pending diff proposal."""
        result = await request.app.state.resolver.resolve_payload(payload)
        return result.to_dict()

    return app


def _key(hash: str, file_name: str) -> SessionKey:
    # Both halves become path segments under the session root
    if "/" in hash or "\\" in hash or hash in (".", ".."):
        raise HTTPException(status_code=400, detail="Invalid project hash")
    if not is_session_file(file_name) or "/" in file_name or "\\" in file_name:
        raise HTTPException(status_code=400, detail="Invalid session file name")
    return SessionKey(hash, file_name)


def _entry_to_dict(entry: SessionIndexEntry) -> dict:
    """Convert a SessionIndexEntry to a JSON-serializable dict."""
    return {
        "session_id": entry.session_id,
        "display_name": entry.display_name,
        "message_count": entry.message_count,
        "project_path": entry.project_path,
        "mtime": format_iso(entry.mtime),
        "hash": entry.hash,
        "file_name": entry.file_name,
    }
