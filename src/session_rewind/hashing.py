"""Map workspace paths to the project hash used as a session directory name.

The digest is the SHA-256 hex of the canonical path. Case folding follows the
host: os.path.normcase lowercases on Windows and is a no-op on POSIX, so
"/Work/App" and "/work/app" are one project on Windows and two elsewhere.
"""

import hashlib
import os


def canonicalize_path(path: str | os.PathLike) -> str:
    """Expand ~, absolutize and normalize a path without touching the disk."""
    expanded = os.path.expanduser(os.fspath(path))
    return os.path.normcase(os.path.abspath(expanded))


def project_hash(path: str | os.PathLike) -> str:
    """Return the project hash for a workspace path."""
    canonical = canonicalize_path(path)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
