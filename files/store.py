"""
files/store.py -- Disk-backed storage for files uploaded by authenticated users.

Uploads are streamed into a temporary file inside the upload directory while
being hashed and size-checked, then atomically renamed to their final name:

    {owner}_{YYYYmmdd_HHMMSS}_{sha256[:16]}{ext}

Downloads resolve a bare filename inside the upload directory. Anything that
could step outside it (path separators, "..") or reach a hidden in-progress
upload (leading ".") is rejected before touching the filesystem.

Usage:
    store = FileStore(Path("uploads"), max_bytes=10 * 1024 * 1024)
    stored = store.save("admin", "report.pdf", upload.file)
    path = store.resolve(stored.filename)
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger("tokengate.files")

_CHUNK_SIZE = 64 * 1024
_DEFAULT_MAX_BYTES = 10 * 1024 * 1024
_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")
_UNSAFE_OWNER_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class FileStoreError(Exception):
    """Base class for upload/download failures the route layer maps to 4xx."""


class InvalidFilename(FileStoreError):
    pass


class FileTooLarge(FileStoreError):
    pass


@dataclass(frozen=True)
class StoredFile:
    filename: str
    size: int


class FileStore:
    def __init__(self, root: Path, max_bytes: int = _DEFAULT_MAX_BYTES) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, owner: str, original_name: str | None, stream: BinaryIO) -> StoredFile:
        """Copy stream into the store and return the stored name and byte count.

        Raises FileTooLarge once more than max_bytes have been read; the
        partial temp file is removed.
        """
        digest = hashlib.sha256()
        size = 0
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".upload-")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise FileTooLarge(f"Upload exceeds {self.max_bytes} bytes")
                    digest.update(chunk)
                    out.write(chunk)
            filename = self._build_name(owner, original_name, digest.hexdigest())
            os.replace(tmp_path, self.root / filename)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info("Stored upload %s (%d bytes) for %s", filename, size, owner)
        return StoredFile(filename=filename, size=size)

    def resolve(self, filename: str) -> Path:
        """Return the on-disk path for filename.

        Raises InvalidFilename for unsafe names and FileNotFoundError when the
        file does not exist.
        """
        validate_filename(filename)
        path = self.root / filename
        if not path.is_file():
            raise FileNotFoundError(filename)
        return path

    @staticmethod
    def _build_name(owner: str, original_name: str | None, hexdigest: str) -> str:
        ext = Path(original_name or "").suffix
        if not _EXTENSION_RE.match(ext):
            ext = ""
        safe_owner = _UNSAFE_OWNER_CHARS.sub("_", owner) or "anonymous"
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return f"{safe_owner}_{stamp}_{hexdigest[:16]}{ext}"


def validate_filename(filename: str) -> None:
    """Raise InvalidFilename unless filename is a plain name inside the store."""
    if not filename:
        raise InvalidFilename("Filename required")
    if ".." in filename or "/" in filename or "\\" in filename or "\x00" in filename:
        raise InvalidFilename("Invalid filename")
    if filename.startswith("."):
        raise InvalidFilename("Invalid filename")
